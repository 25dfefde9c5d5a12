"""Shared storage enums."""

from __future__ import annotations

from enum import Enum


class UserStatus(str, Enum):
    """Account state used by the login lockout."""

    ACTIVE = "Active"
    LOCKED = "Locked"


class TransferKind(str, Enum):
    """Supervisor slot a user can be reassigned under."""

    TSM = "TSM"
    MANAGER = "Manager"

    @property
    def column(self) -> str:
        return "tsm" if self is TransferKind.TSM else "manager"


class SessionEvent(str, Enum):
    """Session log entry kinds."""

    LOGIN = "login"
    LOGOUT = "logout"
