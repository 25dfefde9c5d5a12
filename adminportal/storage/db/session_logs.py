"""Session log (login/logout audit) operations."""

from __future__ import annotations

import logging
from typing import Optional

from .helpers import clean_ids, new_record_id, placeholders, utcnow_iso

logger = logging.getLogger(__name__)


def _to_api(row: dict) -> dict:
    return {
        "id": row.get("id"),
        "email": row.get("email"),
        "department": row.get("department"),
        "status": row.get("status"),
        "timestamp": row.get("timestamp"),
        "ipAddress": row.get("ip_address"),
        "deviceId": row.get("device_id"),
        "latitude": row.get("latitude"),
        "longitude": row.get("longitude"),
        "userAgent": row.get("user_agent"),
    }


class SessionLogsMixin:
    """Session log reads and deletes."""

    async def add_session_log(
        self,
        *,
        email: str,
        status: str,
        department: Optional[str] = None,
        timestamp: Optional[str] = None,
        ip_address: Optional[str] = None,
        device_id: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        user_agent: Optional[str] = None,
    ) -> str:
        log_id = new_record_id()
        async with self._lock:
            await self._connection.execute(
                """
                INSERT INTO session_logs (
                    id, email, department, status, timestamp,
                    ip_address, device_id, latitude, longitude, user_agent
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    log_id,
                    email,
                    department,
                    status,
                    timestamp if timestamp is not None else utcnow_iso(),
                    ip_address,
                    device_id,
                    latitude,
                    longitude,
                    user_agent,
                ),
            )
            await self._connection.commit()
        return log_id

    async def list_session_logs(self) -> list[dict]:
        async with self._lock:
            cursor = await self._connection.execute("SELECT * FROM session_logs")
            rows = await self._fetchall_dicts(cursor)
        return [_to_api(row) for row in rows]

    async def delete_session_logs(self, ids: list[str]) -> int:
        log_ids = clean_ids(ids)
        if not log_ids:
            return 0
        async with self._lock:
            cursor = await self._connection.execute(
                f"DELETE FROM session_logs WHERE id IN ({placeholders(log_ids)})",
                log_ids,
            )
            await self._connection.commit()
            deleted = cursor.rowcount or 0
        logger.info("Deleted %d session log(s)", deleted)
        return deleted
