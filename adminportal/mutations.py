"""Bulk write helpers shared by the mutation routes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from .storage.db.users import normalize_reference_id

logger = logging.getLogger(__name__)


class InvalidBatch(ValueError):
    """Request body does not carry a usable batch; nothing was written."""


def require_batch(body: Mapping[str, Any], key: str, *, message: str | None = None) -> list:
    """Return ``body[key]`` when it is a non-empty list, else raise ``InvalidBatch``."""
    value = body.get(key) if isinstance(body, Mapping) else None
    if not isinstance(value, list) or not value:
        raise InvalidBatch(message or f"No {key} provided.")
    return value


def _quota_value(entry: Mapping[str, Any]) -> Any:
    value = entry.get("targetquota")
    if value in (None, ""):
        value = entry.get("value")
    return value


async def apply_quota_updates(db, updates: Sequence[Any]) -> int:
    """Apply ``{id, targetquota}`` entries one statement at a time.

    Entries missing an id or a quota are skipped. The returned count is the
    number of entries processed, not rows touched. A write error propagates.
    """
    count = 0
    for entry in updates:
        if not isinstance(entry, Mapping):
            continue
        identifier = entry.get("id")
        quota = _quota_value(entry)
        if identifier in (None, "") or quota in (None, ""):
            continue
        await db.update_activity_quota(str(identifier), str(quota))
        count += 1
    logger.info("Applied %d of %d quota update(s)", count, len(updates))
    return count


@dataclass
class QuotaFixPlan:
    """Updates to send plus the rows to change locally once confirmed."""

    updates: list[dict] = field(default_factory=list)
    local_changes: dict[str, dict] = field(default_factory=dict)
    missing: int = 0

    @property
    def count(self) -> int:
        return len(self.updates)


def plan_quota_fixes(
    activities: Iterable[Mapping[str, Any]],
    quotas: Iterable[Mapping[str, Any]],
    selected_ids: Iterable[str],
) -> QuotaFixPlan:
    """Fill missing quotas on selected activities from the owning user's quota.

    Activities are matched to users on the normalized reference id; the first
    user carrying that reference id wins.
    """
    selected = {str(i) for i in selected_ids}
    by_reference: dict[str, str] = {}
    for quota in quotas:
        ref = normalize_reference_id(quota.get("referenceid"))
        if ref and ref not in by_reference:
            by_reference[ref] = str(quota.get("targetquota") or "")

    plan = QuotaFixPlan()
    for activity in activities:
        activity_id = str(activity.get("id") or "")
        if not activity_id or activity_id not in selected:
            continue
        if str(activity.get("targetquota") or "").strip():
            continue
        plan.missing += 1
        target = by_reference.get(normalize_reference_id(activity.get("referenceid")))
        if not target:
            continue
        plan.updates.append({"id": activity_id, "targetquota": target})
        plan.local_changes[activity_id] = {"targetquota": target}
    return plan
