"""Activity record operations."""

from __future__ import annotations

import logging
from typing import Optional

from .helpers import clean_ids, new_record_id, placeholders, utcnow_iso

logger = logging.getLogger(__name__)

ACTIVITY_FIELDS = (
    "activitynumber",
    "referenceid",
    "companyname",
    "contactperson",
    "contactnumber",
    "emailaddress",
    "address",
    "projectname",
    "projectcategory",
    "projecttype",
    "source",
    "targetquota",
    "csragent",
)


class ActivityMixin:
    """Activity reads and quota writes."""

    async def add_activity(self, *, date_created: Optional[str] = None, **fields) -> str:
        activity_id = new_record_id()
        now = utcnow_iso()
        async with self._lock:
            await self._connection.execute(
                f"""
                INSERT INTO activity (id, {", ".join(ACTIVITY_FIELDS)}, date_created, date_updated)
                VALUES (?, {placeholders(ACTIVITY_FIELDS)}, ?, ?)
                """,
                (
                    activity_id,
                    *[fields.get(key) for key in ACTIVITY_FIELDS],
                    date_created if date_created is not None else now,
                    now,
                ),
            )
            await self._connection.commit()
        return activity_id

    async def list_activities(self) -> list[dict]:
        async with self._lock:
            cursor = await self._connection.execute("SELECT * FROM activity")
            return await self._fetchall_dicts(cursor)

    async def update_activity_quota(self, identifier: str, targetquota: str) -> int:
        """Set the quota on every activity whose id, referenceid or activitynumber matches.

        One identifier may match several rows (a reference id shared by many
        activities); all of them are updated. Returns the affected row count.
        """
        async with self._lock:
            cursor = await self._connection.execute(
                """
                UPDATE activity
                SET targetquota = ?, date_updated = ?
                WHERE id = ? OR referenceid = ? OR activitynumber = ?
                """,
                (targetquota, utcnow_iso(), identifier, identifier, identifier),
            )
            await self._connection.commit()
            return cursor.rowcount or 0

    async def bulk_set_quota(self, ids: list[str], targetquota: str) -> list[dict]:
        """Set one quota on the given activity ids; returns the updated rows."""
        activity_ids = clean_ids(ids)
        if not activity_ids:
            return []
        async with self._lock:
            await self._connection.execute(
                f"""
                UPDATE activity
                SET targetquota = ?, date_updated = ?
                WHERE id IN ({placeholders(activity_ids)})
                """,
                (targetquota, utcnow_iso(), *activity_ids),
            )
            await self._connection.commit()
            cursor = await self._connection.execute(
                f"SELECT * FROM activity WHERE id IN ({placeholders(activity_ids)})",
                activity_ids,
            )
            rows = await self._fetchall_dicts(cursor)
        logger.info("Bulk-set target quota on %d activity record(s)", len(rows))
        return rows

    async def delete_activities(self, ids: list[str]) -> int:
        activity_ids = clean_ids(ids)
        if not activity_ids:
            return 0
        async with self._lock:
            cursor = await self._connection.execute(
                f"DELETE FROM activity WHERE id IN ({placeholders(activity_ids)})",
                activity_ids,
            )
            await self._connection.commit()
            deleted = cursor.rowcount or 0
        logger.info("Deleted %d activity record(s)", deleted)
        return deleted
