from .base import DIRECTORY_SEPARATOR, File, FileSystem
from .local import LocalFileSystem
from .ssh import SSHFile, SSHFileSystem

__all__ = [
    "DIRECTORY_SEPARATOR",
    "File",
    "FileSystem",
    "LocalFileSystem",
    "SSHFile",
    "SSHFileSystem",
]
