"""
SSH 会话管理器

管理单个主机的 SSH 连接：建立、主机密钥校验、认证、断开，
以及远程命令的执行协议。
"""

import threading
import time
from datetime import datetime
from typing import Dict, List, Optional, Union
import logging

from .authentication import SSHAuthentication
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    ExecutionError,
    SecurityError,
    SSHSystemError,
)
from .file.ssh import SSHFileSystem
from .models import CommandResult, ConnectionInfo, ConnectionStatus
from .transport import ParamikoTransport

logger = logging.getLogger(__name__)

DEFAULT_PORT = 22


class SSHSystem:
    """SSH 会话

    每个实例持有到一个 host:port 的一条连接，串行使用。
    """

    def __init__(
        self,
        authentication: Optional[SSHAuthentication],
        host: str,
        port: int = DEFAULT_PORT,
        use_host_key_verification: bool = True,
        host_keys: Optional[Dict[str, str]] = None,
        transport=None,
    ):
        self.authentication = authentication
        self.host = host
        self.port = port
        self.use_host_key_verification = use_host_key_verification
        self.host_keys: Dict[str, str] = dict(host_keys or {})
        self.transport = transport or ParamikoTransport()
        self.fingerprint: Optional[str] = None
        self.connected_at: Optional[float] = None
        self._connection = None
        self._fs: Optional[SSHFileSystem] = None
        self._lock = threading.RLock()

    def __del__(self):
        if getattr(self, "_lock", None) is not None:
            self.disconnect()

    def __enter__(self) -> "SSHSystem":
        return self

    def __exit__(self, *exc):
        self.disconnect()

    def __str__(self) -> str:
        return self.host + (f":{self.port}" if self.port != DEFAULT_PORT else "")

    def get_client(self) -> Optional[str]:
        """获取当前使用者（认证用户名）"""
        if not self.authentication:
            return None
        return self.authentication.get_client()

    def get_host_keys(self) -> Dict[str, str]:
        return dict(self.host_keys)

    def set_host_keys(self, host_keys: Dict[str, str]):
        self.host_keys = dict(host_keys)

    def get_fingerprint(self) -> Optional[str]:
        """获取最近一次校验连接时的主机指纹"""
        return self.fingerprint

    def get_connection(self):
        """获取底层连接句柄"""
        return self._connection

    def is_connected(self) -> bool:
        return self._connection is not None

    def connect(self):
        """建立 SSH 连接并认证"""
        with self._lock:
            if self._connection is not None:
                return

            if not self.authentication:
                raise ConfigurationError(f"无法连接到 {self}: 未设置认证方式")

            logger.debug(f"正在连接 {self.host}:{self.port}")
            connection = self.transport.connect(self.host, self.port)

            fingerprint = None
            if self.use_host_key_verification:
                try:
                    fingerprint = self._verify_host_key(connection)
                except SecurityError:
                    self._close(connection)
                    raise

            logger.debug(f"正在认证 {self.host}:{self.port}")
            try:
                self.authentication.authenticate(self.transport, connection)
            except Exception as e:
                self._close(connection)
                raise AuthenticationError(
                    f"无法连接到 {self}: 连接认证失败: {e}"
                ) from e

            if fingerprint is not None:
                self.fingerprint = fingerprint
                self._register_host_key(fingerprint)

            self._connection = connection
            self.connected_at = time.time()

            logger.info(
                f"SSH 连接建立成功: {self.get_client()}@{self.host}:{self.port}"
            )

    def _verify_host_key(self, connection):
        """校验主机指纹，不匹配时抛出 SecurityError"""
        logger.debug(f"正在校验 {self.host}:{self.port} 的主机指纹")

        fingerprint = self.transport.fingerprint(connection)
        host_key = f"{self.host}:{self.port}"

        for key in (host_key, self.host):
            known = self.host_keys.get(key)
            if known is not None and known != fingerprint:
                raise SecurityError(
                    f"无法连接到 {self}: 主机密钥不匹配 ({key} 已记录 {known}，实际为 {fingerprint})"
                )

        return fingerprint

    def _register_host_key(self, fingerprint: str):
        """首次连接时记录主机指纹"""
        host_key = f"{self.host}:{self.port}"
        if host_key not in self.host_keys and self.host not in self.host_keys:
            self.host_keys[host_key] = fingerprint
            logger.info(f"首次连接，记录主机指纹: {host_key} {fingerprint}")

    def _close(self, connection):
        try:
            self.transport.close(connection)
        except Exception as e:
            logger.error(f"关闭连接 {self} 时出错: {e}")

    def disconnect(self):
        """断开 SSH 连接，可重复调用"""
        with self._lock:
            if self._connection is None:
                return

            if self._fs is not None:
                self._fs.disconnect()

            connection = self._connection
            self._connection = None
            self.connected_at = None

            try:
                self.transport.execute(connection, "exit")
            except Exception as e:
                logger.debug(f"向 {self} 发送 exit 失败: {e}")

            self._close(connection)

            logger.debug(f"已断开 {self.host}:{self.port}")

    def get_file_system(self) -> SSHFileSystem:
        """获取此会话的远程文件系统"""
        with self._lock:
            if self._fs is None:
                self._fs = SSHFileSystem(self)
            return self._fs

    def execute(
        self, command: Union[str, List[str]], want_exit_code: bool = False
    ) -> Union[CommandResult, List[Union[CommandResult, SSHSystemError]]]:
        """执行一条命令或按顺序执行多条命令"""
        if isinstance(command, (list, tuple)):
            return self.execute_commands(command, want_exit_code)

        return self.execute_command(command, want_exit_code)

    def execute_command(self, command: str, want_exit_code: bool = False) -> CommandResult:
        """执行远程命令

        标准错误非空时视为失败并抛出 ExecutionError。
        """
        with self._lock:
            if not self.is_connected():
                self.connect()

            logger.debug(f"在 {self} 上执行命令: {command}")

            start = time.time()
            stdout, stderr, exit_code = self.transport.execute(self._connection, command)
            execution_time = time.time() - start

        if stderr:
            raise ExecutionError(
                f"无法在 {self} 上执行命令 {command}: {stderr.strip()}",
                command=command,
                stderr=stderr,
                exit_code=exit_code,
            )

        logger.debug(f"命令在 {self} 上执行完成: {stdout}")

        stdout = stdout.strip()
        output = [line.strip() for line in stdout.split("\n")] if stdout else []

        return CommandResult(
            command=command,
            output=output,
            exit_code=exit_code if want_exit_code else None,
            execution_time=execution_time,
        )

    def execute_commands(
        self, commands: List[str], want_exit_code: bool = False
    ) -> List[Union[CommandResult, SSHSystemError]]:
        """按顺序执行多条命令，单条失败记录在对应位置而不中断"""
        results: List[Union[CommandResult, SSHSystemError]] = []

        for command in commands:
            try:
                results.append(self.execute_command(command, want_exit_code))
            except SSHSystemError as e:
                logger.warning(f"批量命令执行失败: {command}: {e}")
                results.append(e)

        return results

    def info(self) -> ConnectionInfo:
        """获取连接状态"""
        return ConnectionInfo(
            host=self.host,
            port=self.port,
            username=self.get_client(),
            status=(
                ConnectionStatus.CONNECTED
                if self.is_connected()
                else ConnectionStatus.DISCONNECTED
            ),
            fingerprint=self.fingerprint,
            host_key_verification=self.use_host_key_verification,
            connected_at=(
                datetime.fromtimestamp(self.connected_at) if self.connected_at else None
            ),
        )
