"""
SSH 认证方式

提供密码认证和公钥认证两种实现，由会话管理器在建立连接时调用。
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from .exceptions import AuthenticationError, ConfigurationError
from .models import AuthMethod

logger = logging.getLogger(__name__)


class SSHAuthentication(ABC):
    """SSH 认证接口"""

    @abstractmethod
    def get_client(self) -> Optional[str]:
        """获取客户端标识（用户名）"""

    @abstractmethod
    def authenticate(self, transport, connection: Any) -> bool:
        """认证已打开的连接，失败时抛出异常"""


class AbstractSSHAuthentication(SSHAuthentication):
    """认证基类，负责用户名校验"""

    def __init__(self, username: Optional[str] = None):
        self.username = username

    def get_client(self) -> Optional[str]:
        return self.username

    def authenticate(self, transport, connection: Any) -> bool:
        if not self.username:
            raise ConfigurationError("无法认证 SSH 会话: 未设置用户名")

        logger.debug(f"认证用户: {self.username}")
        return self.authenticate_user(transport, connection, self.username)

    @abstractmethod
    def authenticate_user(self, transport, connection: Any, username: str) -> bool:
        """使用具体凭据认证用户"""


class PasswordSSHAuthentication(AbstractSSHAuthentication):
    """密码认证"""

    def __init__(self, username: Optional[str] = None, password: Optional[str] = None):
        super().__init__(username)
        self.password = password

    def authenticate_user(self, transport, connection: Any, username: str) -> bool:
        if not self.password:
            raise ConfigurationError("无法认证 SSH 会话: 未设置密码")

        if not transport.auth_password(connection, username, self.password):
            raise AuthenticationError(
                f"无法认证 SSH 会话: 用户名或密码错误 ({username})"
            )

        return True


class PublicKeySSHAuthentication(AbstractSSHAuthentication):
    """公钥认证"""

    def __init__(
        self,
        username: Optional[str] = None,
        public_key_file: Optional[str] = None,
        private_key_file: Optional[str] = None,
        passphrase: Optional[str] = None,
    ):
        super().__init__(username)
        self.public_key_file = public_key_file
        self.private_key_file = private_key_file
        self.passphrase = passphrase

    def authenticate_user(self, transport, connection: Any, username: str) -> bool:
        if not self.public_key_file:
            raise ConfigurationError("无法认证 SSH 会话: 未设置公钥文件")

        if not self.private_key_file:
            raise ConfigurationError("无法认证 SSH 会话: 未设置私钥文件")

        passphrase = self.passphrase or None

        if not transport.auth_publickey(
            connection, username, self.public_key_file, self.private_key_file, passphrase
        ):
            raise AuthenticationError(
                f"无法认证 SSH 会话: 用户名或密钥错误 ({username})"
            )

        return True


def create_authentication(
    auth_method: AuthMethod,
    username: Optional[str],
    password: Optional[str] = None,
    public_key_file: Optional[str] = None,
    private_key_file: Optional[str] = None,
    passphrase: Optional[str] = None,
) -> SSHAuthentication:
    """根据认证方式创建认证实例"""
    if AuthMethod(auth_method) == AuthMethod.KEY:
        return PublicKeySSHAuthentication(
            username, public_key_file, private_key_file, passphrase
        )

    return PasswordSSHAuthentication(username, password)
