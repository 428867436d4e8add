"""
异常定义

SSH 系统的错误分类：配置、连接、主机密钥、认证、命令执行和文件系统错误。
"""

from typing import Optional


class SSHSystemError(Exception):
    """SSH 系统异常基类"""


class ConfigurationError(SSHSystemError):
    """缺少必要配置"""


class ConnectionError(SSHSystemError):
    """无法建立传输连接"""


class SecurityError(SSHSystemError):
    """主机密钥不匹配"""


class AuthenticationError(SSHSystemError):
    """认证失败"""


class ExecutionError(SSHSystemError):
    """命令执行时产生了标准错误输出"""

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        stderr: str = "",
        exit_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.command = command
        self.stderr = stderr
        self.exit_code = exit_code


class FileSystemError(SSHSystemError):
    """文件系统操作失败

    ``reason`` 区分失败原因，例如文件不存在与属性不可用。
    """

    NOT_FOUND = "does not exist"
    ATTRIBUTE_UNAVAILABLE = "attribute unavailable"
    PERMISSION = "permission"
    CREATE = "create"
    LIST = "list"
    DELETE = "delete"
    READ = "read"
    WRITE = "write"

    def __init__(self, message: str, reason: Optional[str] = None, path: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
        self.path = path
