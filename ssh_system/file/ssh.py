"""
SSH 文件系统

通过 SSH 会话实现远程文件系统：路径规范化、基于 SFTP 属性通道的元数据，
以及以远程命令完成的目录和文件操作。
"""

import logging
import shlex
from typing import IO, Dict, Optional, Set, Union

from ..exceptions import ConfigurationError, ExecutionError, FileSystemError
from ..models import FileStat
from .base import DIRECTORY_SEPARATOR, File, FileSystem

logger = logging.getLogger(__name__)

DEFAULT_DIRECTORY_MODE = 0o755

MODE_DIRECTORY = 0o040000
MODE_OWNER_READ = 0o400
MODE_OWNER_WRITE = 0o200


class SSHFileSystem(FileSystem):
    """SSH 文件系统"""

    def __init__(self, system):
        self.system = system
        self._channel = None
        self._cwd: Optional[str] = None
        self._lock = system._lock

    def __del__(self):
        if getattr(self, "_lock", None) is not None:
            self.disconnect()

    def connect(self):
        """打开 SFTP 通道，必要时先建立会话"""
        with self._lock:
            if self._channel is not None:
                if self.system.is_connected():
                    return
                self.disconnect()

            if not self.system.is_connected():
                self.system.connect()

            self._channel = self.system.transport.open_stat_channel(
                self.system.get_connection()
            )
            logger.debug(f"SFTP 通道已打开: {self.system}")

    def is_connected(self) -> bool:
        return self._channel is not None

    def disconnect(self):
        """关闭 SFTP 通道"""
        with self._lock:
            if self._channel is None:
                return

            channel = self._channel
            self._channel = None
            try:
                self.system.transport.close_stat_channel(channel)
            except Exception as e:
                logger.error(f"关闭 SFTP 通道时出错: {e}")

    def _get_channel(self):
        with self._lock:
            if self._channel is None or not self.system.is_connected():
                self.connect()
            return self._channel

    def get_connection_string(self) -> str:
        """远程路径的内部前缀"""
        return f"sftp://{self.system}"

    def strip_connection_string(self, path: str) -> str:
        prefix = self.get_connection_string()
        if path.startswith(prefix):
            path = path[len(prefix):]
        return path

    def get_file(self, path: Union[str, File]) -> "SSHFile":
        return SSHFile(self, path)

    def get_current_working_directory(self) -> str:
        """远程工作目录，首次查询后缓存"""
        with self._lock:
            if self._cwd is None:
                result = self.system.execute("pwd")
                self._cwd = result.output[0] if result.output else DIRECTORY_SEPARATOR
            return self._cwd

    def get_local_path(self, file: File) -> str:
        """在远程 shell 命令中使用的路径"""
        return self.strip_connection_string(self.get_absolute_path(file))

    def get_absolute_path(self, file: File) -> str:
        path = file.get_path()

        if not self.is_absolute(file):
            path = self.get_current_working_directory() + DIRECTORY_SEPARATOR + path

        parts = []
        for part in path.split(DIRECTORY_SEPARATOR):
            if part in ("", "."):
                continue
            if part == "..":
                if parts:
                    parts.pop()
                continue
            parts.append(part)

        return (
            self.get_connection_string()
            + DIRECTORY_SEPARATOR
            + DIRECTORY_SEPARATOR.join(parts)
        )

    def is_absolute(self, file: File) -> bool:
        return self.strip_connection_string(file.get_path()).startswith(DIRECTORY_SEPARATOR)

    def is_root_path(self, path: str) -> bool:
        return path == DIRECTORY_SEPARATOR

    def get_parent(self, file: File) -> "SSHFile":
        path = file.get_path()

        if DIRECTORY_SEPARATOR not in path:
            return self.get_file(self.get_absolute_path(self.get_file(".")))

        name = file.get_name()
        parent = path[: -(len(name) + 1)]
        if not parent:
            return self.get_file(DIRECTORY_SEPARATOR)

        return self.get_file(parent)

    def exists(self, file: File) -> bool:
        return self.get_stat(file) is not None

    def is_directory(self, file: File) -> bool:
        stat = self.get_stat(file)
        return stat is not None and stat.has_mode(MODE_DIRECTORY)

    def is_readable(self, file: File) -> bool:
        stat = self.get_stat(file)
        return stat is not None and stat.has_mode(MODE_OWNER_READ)

    def is_writable(self, file: File) -> bool:
        stat = self.get_stat(file)
        return stat is not None and stat.has_mode(MODE_OWNER_WRITE)

    def _require_attribute(self, file: File, attribute: str, description: str):
        stat = self.get_stat(file)
        if stat is None:
            raise FileSystemError(
                f"无法获取 {self.system} 上 {file} 的{description}: 文件不存在",
                reason=FileSystemError.NOT_FOUND,
                path=file.get_path(),
            )

        value = getattr(stat, attribute)
        if value is None:
            raise FileSystemError(
                f"无法获取 {self.system} 上 {file} 的{description}: 未收到该属性",
                reason=FileSystemError.ATTRIBUTE_UNAVAILABLE,
                path=file.get_path(),
            )

        return value

    def get_modification_time(self, file: File) -> int:
        return self._require_attribute(file, "mtime", "修改时间")

    def get_size(self, file: File) -> int:
        return self._require_attribute(file, "size", "大小")

    def get_permissions(self, file: File) -> int:
        return self._require_attribute(file, "mode", "权限") & 0o777

    def set_permissions(self, file: File, permissions: int):
        if not self.exists(file):
            raise FileSystemError(
                f"无法设置 {self.system} 上 {file} 的权限为 {permissions:o}: 文件不存在",
                reason=FileSystemError.NOT_FOUND,
                path=file.get_path(),
            )

        path = self.get_local_path(file)
        command = f"chmod {permissions:o} {shlex.quote(path)}"

        try:
            result = self.system.execute(command, want_exit_code=True)
            if result.exit_code != 0:
                raise ExecutionError(
                    "\n".join(result.output) or f"退出码 {result.exit_code}",
                    command=command,
                    exit_code=result.exit_code,
                )
        except ExecutionError as e:
            raise FileSystemError(
                f"无法设置 {self.system} 上 {path} 的权限为 {permissions:o}: {e}",
                reason=FileSystemError.PERMISSION,
                path=path,
            ) from e

    def create(self, directory: File):
        if self.exists(directory):
            return

        path = self.get_local_path(directory)

        try:
            self.system.transport.mkdir(
                self._get_channel(), path, DEFAULT_DIRECTORY_MODE, recursive=True
            )
        except OSError as e:
            raise FileSystemError(
                f"无法在 {self.system} 上创建 {path}: {e}",
                reason=FileSystemError.CREATE,
                path=path,
            ) from e

        logger.debug(f"已在 {self.system} 上创建目录 {path}")

    def read_directory(self, directory: File, recursive: bool = False) -> Dict[str, "SSHFile"]:
        return self._read_directory(directory, recursive, set())

    def _read_directory(
        self, directory: File, recursive: bool, visited: Set[str]
    ) -> Dict[str, "SSHFile"]:
        path = self.get_local_path(directory)
        visited.add(path)

        command = f"ls -1A {shlex.quote(path)}"
        try:
            result = self.system.execute(command, want_exit_code=True)
            if result.exit_code != 0:
                raise ExecutionError(
                    f"退出码 {result.exit_code}", command=command, exit_code=result.exit_code
                )
        except ExecutionError as e:
            raise FileSystemError(
                f"无法读取 {self.system} 上的目录 {path}: {e}",
                reason=FileSystemError.LIST,
                path=path,
            ) from e

        files: Dict[str, SSHFile] = {}
        for name in result.output:
            if not name:
                continue

            file = directory.get_child(name)
            local_path = file.get_local_path()
            files[local_path] = file

            if recursive and local_path not in visited and file.is_directory():
                files.update(self._read_directory(file, True, visited))

        return files

    def delete(self, file: File):
        if not self.exists(file):
            return

        path = self.get_local_path(file)
        command = f"rm -rf {shlex.quote(path)}"

        try:
            result = self.system.execute(command, want_exit_code=True)
        except ExecutionError as e:
            raise FileSystemError(
                f"无法删除 {self.system} 上的 {path}: {e}",
                reason=FileSystemError.DELETE,
                path=path,
            ) from e

        if result.exit_code != 0:
            raise FileSystemError(
                f"无法删除 {self.system} 上的 {path}: 退出码 {result.exit_code} "
                + "\n".join(result.output),
                reason=FileSystemError.DELETE,
                path=path,
            )

        logger.debug(f"已删除 {self.system} 上的 {path}")

    def open(self, file: File, mode: str = "rb") -> IO[bytes]:
        path = self.get_local_path(file)
        try:
            return self.system.transport.open(self._get_channel(), path, mode)
        except OSError as e:
            reason = FileSystemError.READ if "r" in mode else FileSystemError.WRITE
            raise FileSystemError(
                f"无法打开 {self.system} 上的 {path}: {e}", reason=reason, path=path
            ) from e

    def get_stat(self, file: File) -> Optional[FileStat]:
        """获取文件属性，每次重新查询；不存在时返回 None"""
        path = self.get_local_path(file)
        try:
            return self.system.transport.stat(self._get_channel(), path)
        except OSError as e:
            raise FileSystemError(
                f"无法获取 {self.system} 上 {path} 的属性: {e}", path=path
            ) from e


class SSHFile(File):
    """SSH 文件"""

    def __init__(self, file_system: FileSystem, path: Union[str, File]):
        if not isinstance(file_system, SSHFileSystem):
            raise ConfigurationError("无法创建 SSH 文件: 未提供 SSHFileSystem")

        super().__init__(file_system, path)

    def set_path(self, path: Union[str, File]):
        if isinstance(path, File):
            path = path.get_path()

        super().set_path(self.file_system.strip_connection_string(path))

    def get_local_path(self) -> str:
        """在远程系统上使用的路径"""
        return self.file_system.get_local_path(self)
