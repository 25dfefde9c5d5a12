"""SQLite record store for the admin portal."""

from __future__ import annotations

from .db.activity import ActivityMixin
from .db.auth import AuthSessionsMixin
from .db.base import DatabaseBase
from .db.session_logs import SessionLogsMixin
from .db.users import UsersMixin
from .enums import SessionEvent, TransferKind, UserStatus


class Database(
    DatabaseBase,
    UsersMixin,
    AuthSessionsMixin,
    SessionLogsMixin,
    ActivityMixin,
):
    """Async SQLite database for users, sessions and activity."""


__all__ = ["Database", "SessionEvent", "TransferKind", "UserStatus"]
