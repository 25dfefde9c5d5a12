"""Tests for batch validation and quota update helpers."""

from __future__ import annotations

import pytest

from adminportal.mutations import InvalidBatch, apply_quota_updates, plan_quota_fixes, require_batch
from adminportal.storage import Database


@pytest.fixture
async def db(tmp_path):
    db = Database(tmp_path / "test.db")
    await db.connect()
    yield db
    await db.close()


@pytest.mark.parametrize("body", [{}, {"ids": []}, {"ids": "abc"}, {"ids": None}, ["ids"]])
def test_require_batch_rejects_missing_or_empty(body):
    with pytest.raises(InvalidBatch) as exc_info:
        require_batch(body, "ids", message="Invalid or missing 'ids' array.")
    assert str(exc_info.value) == "Invalid or missing 'ids' array."


def test_require_batch_default_message_and_passthrough():
    with pytest.raises(InvalidBatch, match="No updates provided."):
        require_batch({}, "updates")
    assert require_batch({"ids": ["a", "b"]}, "ids") == ["a", "b"]


@pytest.mark.asyncio
async def test_apply_quota_updates_skips_incomplete_entries(db):
    ids = [await db.add_activity(referenceid=f"REF{i}", activitynumber=f"A{i}") for i in range(5)]
    updates = [
        {"id": ids[0], "targetquota": "100"},
        {"id": ids[1], "targetquota": ""},
        {"id": ids[2], "value": "300"},
        {"targetquota": "400"},
        {"id": ids[4], "targetquota": "500"},
    ]

    count = await apply_quota_updates(db, updates)

    assert count == 3
    by_id = {row["id"]: row["targetquota"] for row in await db.list_activities()}
    assert by_id[ids[0]] == "100"
    assert by_id[ids[1]] is None
    assert by_id[ids[2]] == "300"
    assert by_id[ids[3]] is None
    assert by_id[ids[4]] == "500"


@pytest.mark.asyncio
async def test_quota_update_identifier_matches_reference_and_activity_number(db):
    shared = [await db.add_activity(referenceid="REF-SHARED") for _ in range(2)]
    numbered = await db.add_activity(activitynumber="ACT-7")

    count = await apply_quota_updates(
        db,
        [{"id": "REF-SHARED", "targetquota": "50"}, {"id": "ACT-7", "targetquota": "70"}],
    )

    # Count reports entries processed; the shared reference id touched two rows.
    assert count == 2
    by_id = {row["id"]: row["targetquota"] for row in await db.list_activities()}
    assert [by_id[i] for i in shared] == ["50", "50"]
    assert by_id[numbered] == "70"


def test_plan_quota_fixes_uses_first_user_per_reference():
    activities = [
        {"id": "a1", "referenceid": "Ref-1", "targetquota": ""},
        {"id": "a2", "referenceid": "ref-2", "targetquota": None},
        {"id": "a3", "referenceid": "ref-1", "targetquota": "900"},
        {"id": "a4", "referenceid": "ref-1", "targetquota": ""},
        {"id": "a5", "referenceid": "ref-3"},
    ]
    quotas = [
        {"referenceid": " REF-1 ", "targetquota": "10"},
        {"referenceid": "ref-1", "targetquota": "99"},
        {"referenceid": "ref-2", "targetquota": ""},
    ]

    plan = plan_quota_fixes(activities, quotas, ["a1", "a2", "a3", "a5"])

    assert plan.updates == [{"id": "a1", "targetquota": "10"}]
    assert plan.local_changes == {"a1": {"targetquota": "10"}}
    assert plan.count == 1
    # a1, a2 and a5 were selected with an empty quota; a4 was not selected.
    assert plan.missing == 3


def test_plan_quota_fixes_with_nothing_missing():
    plan = plan_quota_fixes([{"id": "a1", "targetquota": "5"}], [], ["a1"])
    assert plan.missing == 0
    assert plan.count == 0
