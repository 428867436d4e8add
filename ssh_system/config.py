"""
配置管理模块

管理 SSH 连接配置（主机、端口、凭据、主机密钥校验）和应用设置。
"""

import os
import json
from typing import Dict, Optional
from dataclasses import dataclass, field
import logging

from .authentication import create_authentication
from .exceptions import ConfigurationError
from .models import AuthMethod
from .ssh_manager import DEFAULT_PORT, SSHSystem
from .transport import ParamikoTransport

logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    """服务器配置"""

    host: str
    username: str
    port: int = DEFAULT_PORT
    auth_method: str = AuthMethod.PASSWORD.value
    password: Optional[str] = None
    public_key_file: Optional[str] = None
    private_key_file: Optional[str] = None
    passphrase: Optional[str] = None
    host_key_verification: bool = True
    host_keys: Dict[str, str] = field(default_factory=dict)
    timeout: int = 30

    def create_system(self) -> SSHSystem:
        """根据配置创建 SSH 会话"""
        authentication = create_authentication(
            AuthMethod(self.auth_method),
            self.username,
            password=self.password,
            public_key_file=_expand(self.public_key_file),
            private_key_file=_expand(self.private_key_file),
            passphrase=self.passphrase,
        )

        return SSHSystem(
            authentication,
            self.host,
            self.port,
            use_host_key_verification=self.host_key_verification,
            host_keys=self.host_keys,
            transport=ParamikoTransport(connect_timeout=self.timeout),
        )

    def to_dict(self) -> Dict:
        return {
            "host": self.host,
            "username": self.username,
            "port": self.port,
            "auth_method": self.auth_method,
            "password": self.password,
            "public_key_file": self.public_key_file,
            "private_key_file": self.private_key_file,
            "passphrase": self.passphrase,
            "host_key_verification": self.host_key_verification,
            "host_keys": self.host_keys,
            "timeout": self.timeout,
        }


def _expand(path: Optional[str]) -> Optional[str]:
    return os.path.expanduser(path) if path else path


@dataclass
class AppConfig:
    """应用配置"""

    log_level: str = "INFO"
    default_timeout: int = 30
    connections: Dict[str, ServerConfig] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """从环境变量创建配置

        设置 SSH_SYSTEM_HOST 时额外生成名为 default 的连接。
        """
        config = cls(
            log_level=os.getenv("SSH_SYSTEM_LOG_LEVEL", "INFO"),
            default_timeout=int(os.getenv("SSH_SYSTEM_TIMEOUT", "30")),
        )

        host = os.getenv("SSH_SYSTEM_HOST")
        if host:
            config.connections["default"] = ServerConfig(
                host=host,
                username=os.getenv("SSH_SYSTEM_USERNAME", ""),
                port=int(os.getenv("SSH_SYSTEM_PORT", str(DEFAULT_PORT))),
                auth_method=os.getenv("SSH_SYSTEM_AUTH_METHOD", AuthMethod.PASSWORD.value),
                password=os.getenv("SSH_SYSTEM_PASSWORD"),
                public_key_file=os.getenv("SSH_SYSTEM_PUBLIC_KEY"),
                private_key_file=os.getenv("SSH_SYSTEM_PRIVATE_KEY"),
                passphrase=os.getenv("SSH_SYSTEM_PASSPHRASE"),
                host_key_verification=os.getenv(
                    "SSH_SYSTEM_HOST_KEY_VERIFICATION", "true"
                ).lower() == "true",
                timeout=config.default_timeout,
            )

        return config

    @classmethod
    def from_file(cls, config_path: str) -> Optional["AppConfig"]:
        """从配置文件创建配置"""
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)

            config = cls.from_env()

            for key in ["log_level", "default_timeout"]:
                if key in data:
                    setattr(config, key, data[key])

            # 更新连接配置
            for name, conn_data in data.get("connections", {}).items():
                conn_data.setdefault("timeout", config.default_timeout)
                config.connections[name] = ServerConfig(**conn_data)

            return config

        except (OSError, ValueError, TypeError) as e:
            logger.error(f"读取配置文件失败: {e}")
            return None

    def to_file(self, config_path: str) -> bool:
        """保存配置到文件"""
        try:
            data = {
                "log_level": self.log_level,
                "default_timeout": self.default_timeout,
                "connections": {
                    name: conn.to_dict() for name, conn in self.connections.items()
                },
            }

            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)

            return True

        except (OSError, TypeError) as e:
            logger.error(f"保存配置文件失败: {e}")
            return False


class ConfigManager:
    """配置管理器"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or os.getenv(
            "SSH_SYSTEM_CONFIG", os.path.expanduser("~/.ssh_system_config.json")
        )
        self.config: AppConfig = self._load_config()

    def _load_config(self) -> AppConfig:
        """加载配置"""
        # 首先从环境变量加载
        config = AppConfig.from_env()

        # 如果配置文件存在，则从文件加载并合并
        if os.path.exists(self.config_path):
            file_config = AppConfig.from_file(self.config_path)
            if file_config:
                config = file_config

        logger.info(f"配置加载完成，日志级别: {config.log_level}")
        return config

    def reload(self):
        """重新加载配置"""
        self.config = self._load_config()

    def save(self) -> bool:
        """保存配置到文件"""
        return self.config.to_file(self.config_path)

    def get_connection(self, name: str) -> Optional[ServerConfig]:
        """获取连接配置"""
        return self.config.connections.get(name)

    def add_connection(self, name: str, config: ServerConfig):
        """添加连接配置"""
        self.config.connections[name] = config

    def remove_connection(self, name: str) -> bool:
        """移除连接配置"""
        if name in self.config.connections:
            del self.config.connections[name]
            return True
        return False

    def list_connections(self) -> Dict[str, ServerConfig]:
        """列出所有连接配置"""
        return self.config.connections.copy()

    def create_system(self, name: str) -> SSHSystem:
        """根据命名连接创建 SSH 会话"""
        server = self.get_connection(name)
        if server is None:
            raise ConfigurationError(f"连接 {name} 不存在")
        return server.create_system()

    def remember_host_keys(self, name: str, system: SSHSystem) -> bool:
        """把会话中新记录的主机指纹写回配置文件"""
        server = self.get_connection(name)
        if server is None:
            return False
        server.host_keys = system.get_host_keys()
        return self.save()
