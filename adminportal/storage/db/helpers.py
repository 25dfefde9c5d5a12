"""Database row conversion helpers."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional


def new_record_id() -> str:
    return uuid.uuid4().hex


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def placeholders(values: Iterable[object]) -> str:
    return ",".join("?" for _ in values)


def clean_ids(ids: Iterable[object]) -> list[str]:
    """Stringify, strip and de-duplicate ids while keeping their order."""
    seen: list[str] = []
    for value in ids or []:
        if value is None:
            continue
        text = str(value).strip()
        if text and text not in seen:
            seen.append(text)
    return seen


class DatabaseFetchMixin:
    """Row conversion helpers."""

    async def _fetchone_dict(self, cursor) -> Optional[dict]:
        row = await cursor.fetchone()
        return dict(row) if row else None

    async def _fetchall_dicts(self, cursor) -> list[dict]:
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]
