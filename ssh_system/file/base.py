"""
通用文件抽象

定义 FileSystem 接口和 File 门面。远程和本地文件系统都实现同一接口，
调用方无需区分文件所在位置；跨文件系统复制通过字节流完成。
"""

import logging
import shutil
from abc import ABC, abstractmethod
from typing import IO, Dict, Optional, Union

from ..exceptions import FileSystemError

logger = logging.getLogger(__name__)

DIRECTORY_SEPARATOR = "/"

COPY_CHUNK_SIZE = 32768


class FileSystem(ABC):
    """文件系统接口"""

    @abstractmethod
    def get_file(self, path: Union[str, "File"]) -> "File":
        """获取文件实例"""

    @abstractmethod
    def get_absolute_path(self, file: "File") -> str:
        """获取文件的绝对路径"""

    @abstractmethod
    def is_absolute(self, file: "File") -> bool:
        """检查文件路径是否为绝对路径"""

    @abstractmethod
    def is_root_path(self, path: str) -> bool:
        """检查路径是否为根路径"""

    @abstractmethod
    def get_parent(self, file: "File") -> "File":
        """获取父目录"""

    @abstractmethod
    def exists(self, file: "File") -> bool:
        """检查文件是否存在"""

    @abstractmethod
    def is_directory(self, file: "File") -> bool:
        """检查是否为目录"""

    @abstractmethod
    def is_readable(self, file: "File") -> bool:
        """检查是否可读"""

    @abstractmethod
    def is_writable(self, file: "File") -> bool:
        """检查是否可写"""

    def is_hidden(self, file: "File") -> bool:
        """文件名以点开头即为隐藏文件"""
        return file.get_name().startswith(".")

    @abstractmethod
    def get_modification_time(self, file: "File") -> int:
        """获取最后修改时间"""

    @abstractmethod
    def get_size(self, file: "File") -> int:
        """获取文件大小（字节）"""

    @abstractmethod
    def get_permissions(self, file: "File") -> int:
        """获取权限位，例如 0o755"""

    @abstractmethod
    def set_permissions(self, file: "File", permissions: int):
        """设置权限位"""

    @abstractmethod
    def create(self, directory: "File"):
        """递归创建目录"""

    @abstractmethod
    def read_directory(self, directory: "File", recursive: bool = False) -> Dict[str, "File"]:
        """读取目录，返回 路径 -> File 的映射"""

    @abstractmethod
    def delete(self, file: "File"):
        """删除文件或目录"""

    @abstractmethod
    def open(self, file: "File", mode: str = "rb") -> IO[bytes]:
        """以二进制文件对象方式打开文件"""

    def read(self, file: "File") -> bytes:
        """读取文件内容"""
        with self.open(file, "rb") as f:
            return f.read()

    def write(self, file: "File", content: bytes, append: bool = False):
        """写入文件内容，必要时创建父目录"""
        self.get_parent(file).create()
        with self.open(file, "ab" if append else "wb") as f:
            f.write(content)

    def copy(self, source: "File", destination: "File"):
        """复制文件或目录，源和目标可位于不同文件系统"""
        if not source.exists():
            raise FileSystemError(
                f"无法复制 {source}: 文件不存在",
                reason=FileSystemError.NOT_FOUND,
                path=source.get_path(),
            )

        if source.is_directory():
            destination.create()
            for child in source.read_directory().values():
                self.copy(child, destination.get_child(child.get_name()))
            return

        destination.get_parent().create()

        logger.debug(f"复制 {source} -> {destination}")
        with source.file_system.open(source, "rb") as src:
            with destination.file_system.open(destination, "wb") as dst:
                shutil.copyfileobj(src, dst, COPY_CHUNK_SIZE)


class File:
    """文件门面，所有操作委托给所属文件系统"""

    def __init__(self, file_system: FileSystem, path: Union[str, "File"]):
        self.file_system = file_system
        self.set_path(path)

    def set_path(self, path: Union[str, "File"]):
        if isinstance(path, File):
            path = path.get_path()

        if not path:
            raise FileSystemError("无法创建文件: 路径为空")

        if len(path) > 1:
            path = path.rstrip(DIRECTORY_SEPARATOR) or DIRECTORY_SEPARATOR

        self.path = path

    def get_path(self) -> str:
        return self.path

    def get_name(self) -> str:
        return self.path.rsplit(DIRECTORY_SEPARATOR, 1)[-1]

    def get_extension(self) -> Optional[str]:
        name = self.get_name()
        if "." not in name.lstrip("."):
            return None
        return name.rsplit(".", 1)[-1]

    def get_child(self, name: str) -> "File":
        if self.path == DIRECTORY_SEPARATOR:
            return self.file_system.get_file(DIRECTORY_SEPARATOR + name)
        return self.file_system.get_file(self.path + DIRECTORY_SEPARATOR + name)

    def get_parent(self) -> "File":
        return self.file_system.get_parent(self)

    def get_absolute_path(self) -> str:
        return self.file_system.get_absolute_path(self)

    def is_absolute(self) -> bool:
        return self.file_system.is_absolute(self)

    def is_root_path(self) -> bool:
        return self.file_system.is_root_path(self.path)

    def exists(self) -> bool:
        return self.file_system.exists(self)

    def is_directory(self) -> bool:
        return self.file_system.is_directory(self)

    def is_readable(self) -> bool:
        return self.file_system.is_readable(self)

    def is_writable(self) -> bool:
        return self.file_system.is_writable(self)

    def is_hidden(self) -> bool:
        return self.file_system.is_hidden(self)

    def get_modification_time(self) -> int:
        return self.file_system.get_modification_time(self)

    def get_size(self) -> int:
        return self.file_system.get_size(self)

    def get_permissions(self) -> int:
        return self.file_system.get_permissions(self)

    def set_permissions(self, permissions: int):
        self.file_system.set_permissions(self, permissions)

    def create(self):
        self.file_system.create(self)

    def read_directory(self, recursive: bool = False) -> Dict[str, "File"]:
        return self.file_system.read_directory(self, recursive)

    def delete(self):
        self.file_system.delete(self)

    def open(self, mode: str = "rb") -> IO[bytes]:
        return self.file_system.open(self, mode)

    def read(self) -> bytes:
        return self.file_system.read(self)

    def write(self, content: bytes, append: bool = False):
        self.file_system.write(self, content, append)

    def copy(self, destination: "File"):
        self.file_system.copy(self, destination)

    def __str__(self) -> str:
        return self.path

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, File) or other.file_system is not self.file_system:
            return NotImplemented
        return self.get_absolute_path() == other.get_absolute_path()

    def __hash__(self) -> int:
        return hash((id(self.file_system), self.get_absolute_path()))
