import io
import os
import posixpath
import shlex
import sys
import pytest

# Add project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from ssh_system.authentication import PasswordSSHAuthentication  # noqa: E402
from ssh_system.exceptions import ConnectionError  # noqa: E402
from ssh_system.models import FileStat  # noqa: E402
from ssh_system.ssh_manager import SSHSystem  # noqa: E402

MTIME = 1700000000


class FakeRemoteFile(io.BytesIO):
    """内存中的远程文件，关闭时写回"""

    def __init__(self, transport, path, mode):
        initial = transport.contents.get(path, b"") if ("r" in mode or "a" in mode) else b""
        super().__init__(initial)
        self.transport = transport
        self.path = path
        self.writable_mode = "w" in mode or "a" in mode
        if "a" in mode:
            self.seek(0, io.SEEK_END)

    def close(self):
        if self.writable_mode and not self.closed:
            self.transport.add_file(self.path, self.getvalue())
        super().close()


class FakeTransport:
    """模拟传输层：内存中的文件树和一个最小的 shell"""

    def __init__(self, fingerprint="fp1", password="secret", cwd="/home/user"):
        self.live_fingerprint = fingerprint
        self.password = password
        self.accept_keys = True
        self.cwd = cwd
        self.entries = {"/": FileStat(mode=0o040755, size=4096, mtime=MTIME)}
        self.contents = {}
        self.commands = []
        self.responses = {}
        self.connect_error = None
        self.mkdir_error = None
        self.connect_count = 0
        self.closed_handles = []
        self.stat_channels_opened = 0
        self.stat_channels_closed = 0
        self.add_dir(cwd)

    # 文件树
    def add_dir(self, path, mode=0o755):
        self._add_parents(path)
        self.entries[path] = FileStat(mode=0o040000 | mode, size=4096, mtime=MTIME)

    def add_file(self, path, content=b"", mode=0o644):
        self._add_parents(path)
        self.entries[path] = FileStat(mode=0o100000 | mode, size=len(content), mtime=MTIME)
        self.contents[path] = content

    def _add_parents(self, path):
        parent = posixpath.dirname(path)
        if parent and parent not in self.entries:
            self.add_dir(parent)

    def children(self, path):
        prefix = path.rstrip("/") + "/"
        return sorted(
            entry[len(prefix):]
            for entry in self.entries
            if entry.startswith(prefix) and entry != prefix and "/" not in entry[len(prefix):]
        )

    # 传输接口
    def connect(self, host, port):
        if self.connect_error:
            raise ConnectionError(f"无法连接到 {host}:{port}: {self.connect_error}")
        self.connect_count += 1
        return object()

    def fingerprint(self, handle):
        return self.live_fingerprint

    def auth_password(self, handle, username, password):
        return password == self.password

    def auth_publickey(self, handle, username, public_key_file, private_key_file, passphrase=None):
        self.last_key_auth = (username, public_key_file, private_key_file, passphrase)
        return self.accept_keys

    def execute(self, handle, command):
        self.commands.append(command)
        if command in self.responses:
            return self.responses[command]

        argv = shlex.split(command)
        name = argv[0]

        if name == "pwd":
            return self.cwd + "\n", "", 0
        if name == "exit":
            return "", "", int(argv[1]) if len(argv) > 1 else 0
        if name == "echo":
            return " ".join(argv[1:]) + "\n", "", 0
        if name == "ls":
            path = argv[-1]
            stat = self.entries.get(path)
            if stat is None:
                return "", f"ls: cannot access '{path}': No such file or directory\n", 2
            if not stat.has_mode(0o040000):
                return path + "\n", "", 0
            return "".join(f"{child}\n" for child in self.children(path)), "", 0
        if name == "rm":
            path = argv[-1]
            for entry in list(self.entries):
                if entry == path or entry.startswith(path.rstrip("/") + "/"):
                    del self.entries[entry]
                    self.contents.pop(entry, None)
            return "", "", 0
        if name == "chmod":
            mode, path = int(argv[1], 8), argv[2]
            stat = self.entries.get(path)
            if stat is None:
                return "", f"chmod: cannot access '{path}': No such file or directory\n", 1
            stat.mode = (stat.mode & ~0o7777) | mode
            return "", "", 0

        return "", f"sh: 1: {name}: not found\n", 127

    def open_stat_channel(self, handle):
        self.stat_channels_opened += 1
        return "sftp-channel"

    def close_stat_channel(self, channel):
        self.stat_channels_closed += 1

    def stat(self, channel, path):
        return self.entries.get(path)

    def mkdir(self, channel, path, mode=0o755, recursive=False):
        if self.mkdir_error:
            raise OSError(self.mkdir_error)
        self.add_dir(path, mode)
        self.last_mkdir = (path, mode, recursive)

    def open(self, channel, path, mode="rb"):
        if "r" in mode and path not in self.contents:
            raise FileNotFoundError(2, "No such file", path)
        return FakeRemoteFile(self, path, mode)

    def close(self, handle):
        self.closed_handles.append(handle)


@pytest.fixture
def transport():
    """模拟传输层"""
    return FakeTransport()


@pytest.fixture
def system(transport):
    """使用模拟传输层的 SSH 会话"""
    ssh = SSHSystem(
        PasswordSSHAuthentication("user", "secret"), "example.com", transport=transport
    )
    yield ssh
    ssh.disconnect()


@pytest.fixture
def fs(system):
    """远程文件系统"""
    return system.get_file_system()
