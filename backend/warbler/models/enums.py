from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    """Application-wide roles."""

    USER = "user"
    ADMIN = "admin"


class TokenType(str, Enum):
    """Purposes a single-use token can be issued for."""

    CONFIRM_EMAIL = "confirm_email"
    RESET_PASSWORD = "reset_password"
    CHANGE_EMAIL = "change_email"


class FileType(str, Enum):
    """Top-level MIME families used to partition stored uploads."""

    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    OTHER = "other"

    @classmethod
    def from_mime(cls, content_type: str | None) -> "FileType":
        major = (content_type or "").split("/", 1)[0].lower()
        try:
            return cls(major)
        except ValueError:
            return cls.OTHER

    @property
    def directory(self) -> str:
        return f"{self.value}s"
