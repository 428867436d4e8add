from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class CommandResult(BaseModel):
    command: str = Field(..., description="Executed command")
    output: List[str] = Field(
        default_factory=list, description="Trimmed standard output lines"
    )
    exit_code: Optional[int] = Field(
        default=None, description="Command exit code, when requested"
    )
    execution_time: float = Field(default=0.0, description="Execution time in seconds")
    timestamp: datetime = Field(default_factory=datetime.now)

    @property
    def success(self) -> bool:
        return self.exit_code in (None, 0)
