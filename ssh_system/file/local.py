"""
本地文件系统

基于 os 和 shutil 实现 FileSystem 接口，用于本地与远程之间的复制。
"""

import os
import shutil
import stat
from typing import IO, Dict, Union

from ..exceptions import FileSystemError
from .base import DIRECTORY_SEPARATOR, File, FileSystem


class LocalFileSystem(FileSystem):
    """本地文件系统"""

    def get_file(self, path: Union[str, File]) -> File:
        return File(self, path)

    def get_absolute_path(self, file: File) -> str:
        return os.path.abspath(file.get_path())

    def is_absolute(self, file: File) -> bool:
        return os.path.isabs(file.get_path())

    def is_root_path(self, path: str) -> bool:
        return path == DIRECTORY_SEPARATOR

    def get_parent(self, file: File) -> File:
        return self.get_file(os.path.dirname(self.get_absolute_path(file)))

    def exists(self, file: File) -> bool:
        return os.path.lexists(file.get_path())

    def is_directory(self, file: File) -> bool:
        return os.path.isdir(file.get_path())

    def is_readable(self, file: File) -> bool:
        return os.access(file.get_path(), os.R_OK)

    def is_writable(self, file: File) -> bool:
        return os.access(file.get_path(), os.W_OK)

    def _stat(self, file: File, action: str) -> os.stat_result:
        try:
            return os.stat(file.get_path())
        except FileNotFoundError as e:
            raise FileSystemError(
                f"无法获取 {file} 的{action}: 文件不存在",
                reason=FileSystemError.NOT_FOUND,
                path=file.get_path(),
            ) from e

    def get_modification_time(self, file: File) -> int:
        return int(self._stat(file, "修改时间").st_mtime)

    def get_size(self, file: File) -> int:
        return self._stat(file, "大小").st_size

    def get_permissions(self, file: File) -> int:
        return stat.S_IMODE(self._stat(file, "权限").st_mode) & 0o777

    def set_permissions(self, file: File, permissions: int):
        try:
            os.chmod(file.get_path(), permissions)
        except OSError as e:
            raise FileSystemError(
                f"无法设置 {file} 的权限为 {permissions:o}: {e}",
                reason=FileSystemError.PERMISSION,
                path=file.get_path(),
            ) from e

    def create(self, directory: File):
        try:
            os.makedirs(directory.get_path(), 0o755, exist_ok=True)
        except OSError as e:
            raise FileSystemError(
                f"无法创建 {directory}: {e}",
                reason=FileSystemError.CREATE,
                path=directory.get_path(),
            ) from e

    def read_directory(self, directory: File, recursive: bool = False) -> Dict[str, File]:
        try:
            names = sorted(os.listdir(directory.get_path()))
        except OSError as e:
            raise FileSystemError(
                f"无法读取目录 {directory}: {e}",
                reason=FileSystemError.LIST,
                path=directory.get_path(),
            ) from e

        files: Dict[str, File] = {}
        for name in names:
            file = directory.get_child(name)
            files[file.get_absolute_path()] = file

            if recursive and file.is_directory() and not os.path.islink(file.get_path()):
                files.update(self.read_directory(file, True))

        return files

    def delete(self, file: File):
        path = file.get_path()
        if not os.path.lexists(path):
            return

        try:
            if os.path.isdir(path) and not os.path.islink(path):
                shutil.rmtree(path)
            else:
                os.remove(path)
        except OSError as e:
            raise FileSystemError(
                f"无法删除 {file}: {e}", reason=FileSystemError.DELETE, path=path
            ) from e

    def open(self, file: File, mode: str = "rb") -> IO[bytes]:
        if "b" not in mode:
            mode += "b"
        try:
            return open(file.get_path(), mode)
        except OSError as e:
            reason = FileSystemError.READ if "r" in mode else FileSystemError.WRITE
            raise FileSystemError(
                f"无法打开 {file}: {e}", reason=reason, path=file.get_path()
            ) from e
