from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class AuthMethod(str, Enum):
    PASSWORD = "password"
    KEY = "key"


class ConnectionStatus(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ConnectionInfo(BaseModel):
    host: str = Field(..., description="Remote server hostname or IP")
    port: int = Field(default=22, description="SSH port")
    username: Optional[str] = Field(default=None, description="SSH username")
    status: ConnectionStatus = Field(default=ConnectionStatus.DISCONNECTED)
    fingerprint: Optional[str] = Field(
        default=None, description="Fingerprint of the verified host key"
    )
    host_key_verification: bool = Field(
        default=True, description="Whether host keys are verified on connect"
    )
    connected_at: Optional[datetime] = Field(default=None)

    class Config:
        use_enum_values = True
