import stat
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class FileType(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    LINK = "link"
    SOCKET = "socket"
    BLOCK_DEVICE = "block_device"
    CHARACTER_DEVICE = "character_device"
    FIFO = "fifo"
    UNKNOWN = "unknown"


_TYPE_TESTS = (
    (stat.S_ISDIR, FileType.DIRECTORY),
    (stat.S_ISREG, FileType.FILE),
    (stat.S_ISLNK, FileType.LINK),
    (stat.S_ISSOCK, FileType.SOCKET),
    (stat.S_ISBLK, FileType.BLOCK_DEVICE),
    (stat.S_ISCHR, FileType.CHARACTER_DEVICE),
    (stat.S_ISFIFO, FileType.FIFO),
)


class FileStat(BaseModel):
    """Attributes of a remote entry, fetched on demand and never cached"""

    mode: Optional[int] = Field(default=None, description="Mode bits")
    size: Optional[int] = Field(default=None, description="Size in bytes")
    mtime: Optional[int] = Field(default=None, description="Modification timestamp")
    atime: Optional[int] = Field(default=None, description="Access timestamp")
    uid: Optional[int] = Field(default=None, description="Owner user id")
    gid: Optional[int] = Field(default=None, description="Owner group id")

    @classmethod
    def from_attributes(cls, attributes) -> "FileStat":
        """Build from any object exposing st_* fields (SFTPAttributes, os.stat_result)"""
        return cls(
            mode=getattr(attributes, "st_mode", None),
            size=getattr(attributes, "st_size", None),
            mtime=_as_int(getattr(attributes, "st_mtime", None)),
            atime=_as_int(getattr(attributes, "st_atime", None)),
            uid=getattr(attributes, "st_uid", None),
            gid=getattr(attributes, "st_gid", None),
        )

    @property
    def file_type(self) -> FileType:
        if self.mode is None:
            return FileType.UNKNOWN
        for test, file_type in _TYPE_TESTS:
            if test(self.mode):
                return file_type
        return FileType.UNKNOWN

    def has_mode(self, bits: int) -> bool:
        return self.mode is not None and bool(self.mode & bits)


def _as_int(value) -> Optional[int]:
    return None if value is None else int(value)
