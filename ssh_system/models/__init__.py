from .connection import AuthMethod, ConnectionInfo, ConnectionStatus
from .command import CommandResult
from .file import FileStat, FileType

__all__ = [
    "AuthMethod",
    "ConnectionInfo",
    "ConnectionStatus",
    "CommandResult",
    "FileStat",
    "FileType",
]
