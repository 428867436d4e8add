"""
SSH System - 基于单个 SSH 会话的远程文件系统与命令执行

一次认证后，以统一的文件系统接口列出、查询、创建、删除和复制远程文件，
或执行远程命令并获取输出与退出码。
"""

from .authentication import (
    PasswordSSHAuthentication,
    PublicKeySSHAuthentication,
    SSHAuthentication,
)
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    ConnectionError,
    ExecutionError,
    FileSystemError,
    SecurityError,
    SSHSystemError,
)
from .file import File, LocalFileSystem, SSHFile, SSHFileSystem
from .ssh_manager import SSHSystem

__version__ = "0.1.0"
__all__ = [
    "SSHSystem",
    "SSHAuthentication",
    "PasswordSSHAuthentication",
    "PublicKeySSHAuthentication",
    "File",
    "LocalFileSystem",
    "SSHFile",
    "SSHFileSystem",
    "SSHSystemError",
    "ConfigurationError",
    "ConnectionError",
    "SecurityError",
    "AuthenticationError",
    "ExecutionError",
    "FileSystemError",
]
