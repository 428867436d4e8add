"""
paramiko 传输层测试
"""

import base64
import hashlib
import threading
import pytest
from types import SimpleNamespace
from unittest.mock import Mock, patch

import paramiko

from ssh_system.exceptions import ConnectionError, ExecutionError
from ssh_system.transport import ParamikoTransport


@pytest.fixture
def transport():
    return ParamikoTransport(connect_timeout=5)


class TestConnect:
    def test_connect_failure(self, transport):
        with patch(
            "ssh_system.transport.socket.create_connection",
            side_effect=OSError("Connection refused"),
        ):
            with pytest.raises(ConnectionError, match="Connection refused"):
                transport.connect("example.com", 22)

    def test_handshake_failure_closes_transport(self, transport):
        sock = Mock()
        handle = Mock()
        handle.start_client.side_effect = paramiko.SSHException("Error reading SSH protocol banner")

        with patch("ssh_system.transport.socket.create_connection", return_value=sock), \
                patch("ssh_system.transport.paramiko.Transport", return_value=handle):
            with pytest.raises(ConnectionError, match="banner"):
                transport.connect("example.com", 22)

        handle.close.assert_called_once()

    def test_connect(self, transport):
        handle = Mock()
        with patch("ssh_system.transport.socket.create_connection", return_value=Mock()), \
                patch("ssh_system.transport.paramiko.Transport", return_value=handle):
            assert transport.connect("example.com", 2222) is handle
        handle.start_client.assert_called_once_with(timeout=5)


def test_fingerprint(transport):
    key = Mock()
    key.asbytes.return_value = b"host-key-blob"
    handle = Mock()
    handle.get_remote_server_key.return_value = key

    expected = base64.b64encode(hashlib.sha256(b"host-key-blob").digest()).decode().rstrip("=")
    assert transport.fingerprint(handle) == "SHA256:" + expected


class TestAuthentication:
    def test_password_rejected(self, transport):
        handle = Mock()
        handle.auth_password.side_effect = paramiko.AuthenticationException("denied")
        assert not transport.auth_password(handle, "user", "pw")

    def test_password_accepted(self, transport):
        handle = Mock()
        handle.is_authenticated.return_value = True
        assert transport.auth_password(handle, "user", "pw")
        handle.auth_password.assert_called_once_with("user", "pw")

    def test_publickey(self, transport, tmp_path):
        public = tmp_path / "id.pub"
        public.write_text("ssh-ed25519 AAAAKEY user@host\n")
        pkey = Mock()
        pkey.get_base64.return_value = "AAAAKEY"
        handle = Mock()
        handle.is_authenticated.return_value = True

        with patch("ssh_system.transport.paramiko.PKey.from_path", return_value=pkey) as from_path:
            assert transport.auth_publickey(handle, "user", str(public), "/keys/id", "pass")

        from_path.assert_called_once_with("/keys/id", passphrase="pass")
        handle.auth_publickey.assert_called_once_with("user", pkey)

    def test_publickey_mismatch(self, transport, tmp_path):
        public = tmp_path / "id.pub"
        public.write_text("ssh-ed25519 OTHERKEY user@host\n")
        pkey = Mock()
        pkey.get_base64.return_value = "AAAAKEY"
        handle = Mock()

        with patch("ssh_system.transport.paramiko.PKey.from_path", return_value=pkey):
            assert not transport.auth_publickey(handle, "user", str(public), "/keys/id")
        handle.auth_publickey.assert_not_called()

    def test_unreadable_private_key(self, transport):
        with patch(
            "ssh_system.transport.paramiko.PKey.from_path",
            side_effect=paramiko.PasswordRequiredException("private key file is encrypted"),
        ):
            assert not transport.auth_publickey(Mock(), "user", "/k.pub", "/k")


class ScriptedChannel:
    """按顺序交付输出块的会话通道"""

    def __init__(self, stdout=(), stderr=(), exit_code=0, stdout_waits_for_stderr=False):
        self.stdout = list(stdout)
        self.stderr = list(stderr)
        self.exit_code = exit_code
        self.stdout_waits_for_stderr = stdout_waits_for_stderr
        self.status_event = threading.Event()
        self.command = None
        self.closed = False

    def exec_command(self, command):
        self.command = command

    def recv_ready(self):
        if self.stdout_waits_for_stderr and self.stderr:
            return False
        return bool(self.stdout)

    def recv(self, size):
        return self.stdout.pop(0)

    def recv_stderr_ready(self):
        return bool(self.stderr)

    def recv_stderr(self, size):
        return self.stderr.pop(0)

    def exit_status_ready(self):
        return not self.stdout and not self.stderr

    def recv_exit_status(self):
        return self.exit_code

    def close(self):
        self.closed = True


class TestExecute:
    def test_reads_both_streams(self, transport):
        channel = ScriptedChannel([b"hel", b"lo\n"], [b"warn\n"], exit_code=3)
        handle = Mock()
        handle.open_session.return_value = channel

        assert transport.execute(handle, "echo hello; exit 3") == ("hello\n", "warn\n", 3)
        assert channel.command == "echo hello; exit 3"
        assert channel.closed

    def test_stderr_drained_while_stdout_pending(self, transport):
        stderr = [b"e" * 65536] * 64
        channel = ScriptedChannel([b"done\n"], stderr, stdout_waits_for_stderr=True)
        handle = Mock()
        handle.open_session.return_value = channel

        stdout, errors, exit_code = transport.execute(handle, "noisy")
        assert stdout == "done\n"
        assert len(errors) == 64 * 65536
        assert exit_code == 0

    def test_session_not_active(self, transport):
        handle = Mock()
        handle.open_session.side_effect = paramiko.SSHException("SSH session not active")

        with pytest.raises(ConnectionError, match="SSH session not active"):
            transport.execute(handle, "echo a")

    def test_channel_failure_closes_channel(self, transport):
        channel = ScriptedChannel()
        channel.exec_command = Mock(side_effect=paramiko.SSHException("Channel closed."))
        handle = Mock()
        handle.open_session.return_value = channel

        with pytest.raises(ExecutionError, match="Channel closed") as excinfo:
            transport.execute(handle, "echo a")
        assert excinfo.value.command == "echo a"
        assert channel.closed


class TestSftp:
    def test_stat_missing(self, transport):
        channel = Mock()
        channel.lstat.side_effect = FileNotFoundError(2, "No such file")
        assert transport.stat(channel, "/nope") is None

    def test_stat(self, transport):
        channel = Mock()
        channel.lstat.return_value = SimpleNamespace(st_mode=0o040755, st_size=4096, st_mtime=10)
        stat = transport.stat(channel, "/srv")
        assert stat.mode == 0o040755
        assert stat.mtime == 10

    def test_stat_ssh_exception_becomes_os_error(self, transport):
        channel = Mock()
        channel.lstat.side_effect = paramiko.SSHException("SSH session not active")
        with pytest.raises(OSError, match="SSH session not active"):
            transport.stat(channel, "/srv")

    def test_stat_permission_error_propagates(self, transport):
        channel = Mock()
        channel.lstat.side_effect = PermissionError(13, "Permission denied")
        with pytest.raises(PermissionError):
            transport.stat(channel, "/root/secret")

    def test_mkdir_recursive(self, transport):
        channel = Mock()
        existing = {"/srv"}

        def lstat(path):
            if path in existing:
                return SimpleNamespace(st_mode=0o040755)
            raise FileNotFoundError(2, "No such file")

        channel.lstat.side_effect = lstat
        transport.mkdir(channel, "/srv/a/b", 0o755, recursive=True)

        assert [c.args for c in channel.mkdir.call_args_list] == [
            ("/srv/a", 0o755),
            ("/srv/a/b", 0o755),
        ]

    def test_mkdir_ssh_exception_becomes_os_error(self, transport):
        channel = Mock()
        channel.mkdir.side_effect = paramiko.SSHException("channel closed")
        with pytest.raises(OSError, match="channel closed"):
            transport.mkdir(channel, "/srv/a")

    def test_open_stat_channel_failure(self, transport):
        with patch(
            "ssh_system.transport.paramiko.SFTPClient.from_transport",
            side_effect=paramiko.SSHException("subsystem request failed"),
        ):
            with pytest.raises(ConnectionError):
                transport.open_stat_channel(Mock())
