"""Tests for Cloudflare multi-zone aggregation."""

from __future__ import annotations

import asyncio

import pytest

from adminportal.cloudflare import (
    analytics_envelope,
    analytics_totals,
    dns_envelope,
    firewall_envelope,
    gather_zones,
    tag_dns_record,
    zones_envelope,
)
from adminportal.config import CloudflareSettings
from conftest import FakeHttpSession, FakeResponse, cf_ok

ZONES = ["z1", "z2", "z3", "z4"]


def _settings(zone_ids=None, token="tok"):
    return CloudflareSettings(api_token=token, zone_ids=list(ZONES if zone_ids is None else zone_ids))


def _dns_records(zone: str, count: int) -> list[dict]:
    return [
        {
            "id": f"r{i}",
            "type": "A",
            "name": f"host{i}.{zone}.example",
            "content": "192.0.2.1",
            "ttl": 1,
            "proxied": i % 2 == 0,
            "zone_name": f"{zone}.example",
            "modified_on": f"2024-01-{i + 1:02d}T00:00:00Z",
        }
        for i in range(count)
    ]


def _graphql_route(groups_by_zone: dict[str, list]):
    def _route(**kwargs):
        query = kwargs["json"]["query"]
        for zone, groups in groups_by_zone.items():
            if f'"{zone}"' in query:
                return FakeResponse(
                    200,
                    {"data": {"viewer": {"zones": [{"zoneTag": zone, "httpRequests1dGroups": groups}]}}},
                )
        return FakeResponse(200, {"data": {"viewer": {"zones": []}}})

    return _route


def test_tag_dns_record_namespaces_id_and_status():
    tagged = tag_dns_record("zoneA", {"id": "abc", "proxied": True, "zone_name": "a.example"})
    assert tagged["id"] == "zoneA-abc"
    assert tagged["status"] == "Proxied"
    assert tagged["zoneName"] == "a.example"
    assert tag_dns_record("zoneA", {"id": "x", "proxied": False})["status"] == "DNS Only"


@pytest.mark.asyncio
async def test_dns_colliding_ids_become_unique_in_zone_order():
    session = FakeHttpSession(
        {
            ("GET", "/zones/z1/dns_records"): cf_ok(_dns_records("z1", 10)),
            ("GET", "/zones/z2/dns_records"): cf_ok(_dns_records("z2", 10)),
        }
    )
    status, body = await dns_envelope(_settings(["z1", "z2"]), session)

    assert status == 200
    assert body["success"] is True
    ids = [r["id"] for r in body["data"]]
    assert len(ids) == 20
    assert len(set(ids)) == 20
    assert ids[:10] == [f"z1-r{i}" for i in range(10)]
    assert ids[10:] == [f"z2-r{i}" for i in range(10)]


@pytest.mark.asyncio
async def test_dns_one_failing_zone_fails_whole_request_and_cancels_siblings():
    slow = FakeResponse(200, {"success": True, "result": _dns_records("z4", 1)}, delay=5)
    session = FakeHttpSession(
        {
            ("GET", "/zones/z1/dns_records"): cf_ok(_dns_records("z1", 2)),
            ("GET", "/zones/z2/dns_records"): cf_ok(_dns_records("z2", 2)),
            ("GET", "/zones/z3/dns_records"): FakeResponse(403, text='{"errors":[{"message":"denied"}]}'),
            ("GET", "/zones/z4/dns_records"): slow,
        }
    )
    status, body = await asyncio.wait_for(dns_envelope(_settings(), session), timeout=2)

    assert status == 500
    assert body["success"] is False
    assert "z3" in body["error"]
    assert "data" not in body
    assert slow.cancelled is True


@pytest.mark.asyncio
async def test_dns_upstream_timeout_names_the_zone():
    session = FakeHttpSession(
        {
            ("GET", "/zones/z1/dns_records"): cf_ok(_dns_records("z1", 2)),
            ("GET", "/zones/z2/dns_records"): FakeResponse(raises=asyncio.TimeoutError()),
        }
    )
    status, body = await dns_envelope(_settings(["z1", "z2"]), session)

    assert status == 500
    assert body["success"] is False
    assert "Zone z2" in body["error"]
    assert "timed out" in body["error"]


@pytest.mark.asyncio
async def test_dns_non_object_record_is_an_error_envelope():
    session = FakeHttpSession({("GET", "/zones/z1/dns_records"): cf_ok(["not-a-record"])})
    status, body = await dns_envelope(_settings(["z1"]), session)

    assert status == 500
    assert "unexpected result shape" in body["error"]


@pytest.mark.asyncio
async def test_zones_timeout_is_a_504_envelope():
    session = FakeHttpSession({("GET", "/zones"): FakeResponse(raises=asyncio.TimeoutError())})
    status, body = await zones_envelope(_settings(), session)

    assert status == 504
    assert body["success"] is False
    assert "timed out" in body["error"]


@pytest.mark.asyncio
async def test_zone_calls_run_concurrently():
    gate = asyncio.Event()
    entered = {"count": 0}

    class GateResponse(FakeResponse):
        async def __aenter__(self):
            entered["count"] += 1
            if entered["count"] == len(ZONES):
                gate.set()
            # Sequential calls would never open the gate.
            await asyncio.wait_for(gate.wait(), timeout=1)
            return self

    session = FakeHttpSession(
        {("GET", f"/zones/{z}/dns_records"): GateResponse(200, {"success": True, "result": []}) for z in ZONES}
    )
    status, body = await dns_envelope(_settings(), session)
    assert status == 200
    assert body["data"] == []
    assert entered["count"] == len(ZONES)


@pytest.mark.asyncio
async def test_gather_zones_keeps_configured_order():
    async def fetch(zone_id: str) -> str:
        await asyncio.sleep(0.01 if zone_id == "a" else 0)
        return zone_id.upper()

    assert await gather_zones(["a", "b", "c"], fetch) == ["A", "B", "C"]
    assert await gather_zones([], fetch) == []


@pytest.mark.asyncio
async def test_firewall_rules_carry_zone_id_and_errors_key_on_failure():
    ok = FakeHttpSession(
        {
            ("GET", "/zones/z1/firewall/rules"): cf_ok([{"id": "f1", "action": "block"}]),
            ("GET", "/zones/z2/firewall/rules"): cf_ok([{"id": "f1", "action": "allow"}]),
        }
    )
    status, body = await firewall_envelope(_settings(["z1", "z2"]), ok)
    assert status == 200
    assert [(r["id"], r["zone_id"]) for r in body["data"]] == [("f1", "z1"), ("f1", "z2")]

    failing = FakeHttpSession(
        {
            ("GET", "/zones/z1/firewall/rules"): cf_ok([]),
            ("GET", "/zones/z2/firewall/rules"): FakeResponse(
                200, {"success": False, "errors": [{"code": 10000, "message": "Authentication error"}]}
            ),
        }
    )
    status, body = await firewall_envelope(_settings(["z1", "z2"]), failing)
    assert status == 500
    assert body["success"] is False
    assert "Zone z2" in body["errors"]
    assert "Authentication error" in body["errors"]


@pytest.mark.asyncio
async def test_analytics_returns_entry_for_zone_without_data():
    group = {"dimensions": {"datetime": "2024-05-01T00:00:00Z"}, "sum": {"requests": 10, "threats": 1}}
    session = FakeHttpSession({("POST", "/graphql"): _graphql_route({"z1": [group], "z2": []})})

    status, body = await analytics_envelope(_settings(["z1", "z2"]), session)

    assert status == 200
    assert body["data"] == [
        {"zoneId": "z1", "data": group},
        {"zoneId": "z2", "data": None},
    ]


@pytest.mark.asyncio
async def test_analytics_permission_error_names_zone():
    def _route(**kwargs):
        return FakeResponse(200, {"data": None, "errors": [{"message": "permission denied for zone"}]})

    session = FakeHttpSession({("POST", "/graphql"): _route})
    status, body = await analytics_envelope(_settings(["z9"]), session)
    assert status == 500
    assert body["errors"].startswith("Zone z9 Permission error")


@pytest.mark.asyncio
async def test_missing_configuration_is_a_500_with_message():
    session = FakeHttpSession()

    status, body = await dns_envelope(_settings(token=""), session)
    assert status == 500
    assert body == {"success": False, "error": "Missing CLOUDFLARE_API_TOKEN"}

    status, body = await firewall_envelope(_settings(zone_ids=[]), session)
    assert status == 500
    assert "CLOUDFLARE_ZONE_IDS" in body["errors"]
    assert session.calls == []


@pytest.mark.asyncio
async def test_zones_passes_through_upstream_status():
    session = FakeHttpSession({("GET", "/zones"): FakeResponse(403, text="forbidden")})
    status, body = await zones_envelope(_settings(), session)
    assert status == 403
    assert body == {"success": False, "error": "forbidden"}

    session = FakeHttpSession({("GET", "/zones"): cf_ok([{"id": "z1", "name": "a.example"}])})
    status, body = await zones_envelope(_settings(), session)
    assert status == 200
    assert body["data"][0]["name"] == "a.example"


def test_analytics_totals_treats_missing_data_as_zero():
    totals = analytics_totals(
        [
            {"zoneId": "a", "data": {"sum": {"requests": 5, "bandwidth": 100, "threats": 2, "cachedRequests": 1}}},
            {"zoneId": "b", "data": None},
            {"zoneId": "c", "data": {"sum": {"requests": "7"}}},
        ]
    )
    assert totals == {"requests": 12, "cachedRequests": 1, "bandwidth": 100, "threats": 2}
