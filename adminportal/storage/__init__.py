"""Storage modules for the admin portal."""

from .database import Database
from .enums import SessionEvent, TransferKind, UserStatus

__all__ = ["Database", "SessionEvent", "TransferKind", "UserStatus"]
