"""
SSH 传输层

基于 paramiko 封装连接、主机指纹、认证、命令执行和 SFTP 属性通道，
为会话管理器和远程文件系统提供统一的底层原语。
"""

import base64
import hashlib
import logging
import socket
from typing import IO, Optional, Tuple

import paramiko

from .exceptions import ConnectionError, ExecutionError
from .models import FileStat

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 65536


class ParamikoTransport:
    """paramiko 传输实现"""

    def __init__(self, connect_timeout: Optional[float] = 30):
        self.connect_timeout = connect_timeout

    def connect(self, host: str, port: int) -> paramiko.Transport:
        """打开到 host:port 的传输连接并完成 SSH 握手"""
        sock = None
        transport = None
        try:
            sock = socket.create_connection((host, port), timeout=self.connect_timeout)
            transport = paramiko.Transport(sock)
            transport.start_client(timeout=self.connect_timeout)
            return transport
        except (socket.error, paramiko.SSHException, OSError) as e:
            if transport:
                transport.close()
            elif sock:
                sock.close()
            raise ConnectionError(f"无法连接到 {host}:{port}: {e}") from e

    def fingerprint(self, handle: paramiko.Transport) -> str:
        """获取远程主机密钥指纹，格式与 OpenSSH 相同 (SHA256:...)"""
        key = handle.get_remote_server_key()
        digest = hashlib.sha256(key.asbytes()).digest()
        return "SHA256:" + base64.b64encode(digest).decode("ascii").rstrip("=")

    def auth_password(self, handle: paramiko.Transport, username: str, password: str) -> bool:
        """使用用户名和密码认证"""
        try:
            handle.auth_password(username, password)
        except paramiko.AuthenticationException as e:
            logger.debug(f"密码认证被拒绝: {e}")
            return False
        return handle.is_authenticated()

    def auth_publickey(
        self,
        handle: paramiko.Transport,
        username: str,
        public_key_file: str,
        private_key_file: str,
        passphrase: Optional[str] = None,
    ) -> bool:
        """使用公私钥对认证

        私钥文件无法读取、口令错误或公钥与私钥不匹配时视为认证被拒绝。
        """
        try:
            pkey = paramiko.PKey.from_path(private_key_file, passphrase=passphrase)
        except (paramiko.SSHException, OSError, ValueError) as e:
            logger.debug(f"无法加载私钥 {private_key_file}: {e}")
            return False

        try:
            with open(public_key_file, "r", encoding="utf-8") as f:
                fields = f.read().split()
        except OSError as e:
            logger.debug(f"无法读取公钥 {public_key_file}: {e}")
            return False

        if len(fields) < 2 or fields[1] != pkey.get_base64():
            logger.debug(f"公钥 {public_key_file} 与私钥 {private_key_file} 不匹配")
            return False

        try:
            handle.auth_publickey(username, pkey)
        except paramiko.AuthenticationException as e:
            logger.debug(f"公钥认证被拒绝: {e}")
            return False
        return handle.is_authenticated()

    def execute(self, handle: paramiko.Transport, command: str) -> Tuple[str, str, int]:
        """执行命令，同时读取标准输出和标准错误，返回 (stdout, stderr, exit_code)

        两个流交替读取，任一流写满通道窗口都不会使命令阻塞。
        """
        try:
            channel = handle.open_session()
        except (paramiko.SSHException, OSError, EOFError) as e:
            raise ConnectionError(f"无法打开会话通道执行命令 {command}: {e}") from e

        try:
            channel.exec_command(command)

            stdout_chunks = []
            stderr_chunks = []
            while True:
                finished = channel.exit_status_ready()
                received = False
                if channel.recv_ready():
                    stdout_chunks.append(channel.recv(READ_CHUNK_SIZE))
                    received = True
                if channel.recv_stderr_ready():
                    stderr_chunks.append(channel.recv_stderr(READ_CHUNK_SIZE))
                    received = True
                if received:
                    continue
                if finished:
                    break
                channel.status_event.wait(0.1)

            exit_code = channel.recv_exit_status()
        except (paramiko.SSHException, OSError, EOFError) as e:
            raise ExecutionError(f"执行命令 {command} 时连接中断: {e}", command=command) from e
        finally:
            channel.close()

        stdout_content = b"".join(stdout_chunks).decode("utf-8", errors="replace")
        stderr_content = b"".join(stderr_chunks).decode("utf-8", errors="replace")
        return stdout_content, stderr_content, exit_code

    def open_stat_channel(self, handle: paramiko.Transport) -> paramiko.SFTPClient:
        """在同一已认证连接上打开 SFTP 通道"""
        try:
            sftp = paramiko.SFTPClient.from_transport(handle)
        except (paramiko.SSHException, OSError) as e:
            raise ConnectionError(f"无法打开 SFTP 通道: {e}") from e
        if sftp is None:
            raise ConnectionError("无法打开 SFTP 通道")
        return sftp

    def close_stat_channel(self, channel: paramiko.SFTPClient):
        """关闭 SFTP 通道"""
        channel.close()

    def stat(self, channel: paramiko.SFTPClient, path: str) -> Optional[FileStat]:
        """获取路径属性，不跟随符号链接；路径不存在时返回 None"""
        try:
            attributes = channel.lstat(path)
        except FileNotFoundError:
            return None
        except paramiko.SSHException as e:
            raise OSError(str(e)) from e
        return FileStat.from_attributes(attributes)

    def mkdir(self, channel: paramiko.SFTPClient, path: str, mode: int = 0o755, recursive: bool = False):
        """创建目录，recursive 时逐级创建缺失的父目录"""
        if recursive:
            targets = []
            current = ""
            for part in path.strip("/").split("/"):
                current += "/" + part
                targets.append(current)
        else:
            targets = [path]

        try:
            for target in targets:
                if recursive and self.stat(channel, target) is not None:
                    continue
                channel.mkdir(target, mode)
        except paramiko.SSHException as e:
            raise OSError(str(e)) from e

    def open(self, channel: paramiko.SFTPClient, path: str, mode: str = "rb") -> IO[bytes]:
        """以文件对象方式打开远程文件"""
        try:
            return channel.open(path, mode)
        except paramiko.SSHException as e:
            raise OSError(str(e)) from e

    def close(self, handle: paramiko.Transport):
        """结束会话并关闭连接"""
        handle.close()
