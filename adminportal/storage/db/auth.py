"""Login session persistence."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from .helpers import utcnow_iso


class AuthSessionsMixin:
    """Opaque session tokens issued at login."""

    async def create_auth_session(self, user_id: str, ttl_seconds: int) -> str:
        token = secrets.token_urlsafe(32)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(ttl_seconds))
        async with self._lock:
            await self._connection.execute(
                "INSERT INTO auth_sessions (token, user_id, created_at, expires_at) VALUES (?, ?, ?, ?)",
                (token, user_id, utcnow_iso(), expires_at.isoformat()),
            )
            await self._connection.commit()
        return token

    async def get_auth_session(self, token: str) -> Optional[dict]:
        """Return the unexpired session joined with its user, or None."""
        if not token:
            return None
        async with self._lock:
            cursor = await self._connection.execute(
                """
                SELECT s.token, s.user_id, s.expires_at, u.email, u.department, u.status
                FROM auth_sessions s
                JOIN users u ON u.id = s.user_id
                WHERE s.token = ?
                """,
                (token,),
            )
            row = await self._fetchone_dict(cursor)
        if not row:
            return None
        try:
            expires_at = datetime.fromisoformat(str(row["expires_at"]))
        except ValueError:
            return None
        if expires_at <= datetime.now(timezone.utc):
            return None
        return row

    async def delete_auth_session(self, token: str) -> bool:
        async with self._lock:
            cursor = await self._connection.execute("DELETE FROM auth_sessions WHERE token = ?", (token,))
            await self._connection.commit()
            return (cursor.rowcount or 0) > 0

    async def purge_expired_auth_sessions(self) -> int:
        async with self._lock:
            cursor = await self._connection.execute(
                "DELETE FROM auth_sessions WHERE expires_at <= ?",
                (datetime.now(timezone.utc).isoformat(),),
            )
            await self._connection.commit()
            return cursor.rowcount or 0
