"""Fan-out over configured zones and the JSON envelopes built from it."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

from ..config import CloudflareSettings, ConfigurationError
from .client import CloudflareAPIError, CloudflareClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

Envelope = tuple[int, dict]


async def gather_zones(zone_ids: Sequence[str], fetch: Callable[[str], Awaitable[T]]) -> list[T]:
    """Run ``fetch`` for every zone concurrently; results keep configured order.

    The first failure cancels the sibling tasks still in flight and is
    re-raised. No partial result is returned.
    """
    tasks = [asyncio.create_task(fetch(zone_id)) for zone_id in zone_ids]
    if not tasks:
        return []
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        pending = [t for t in tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        raise


def tag_dns_record(zone_id: str, record: dict) -> dict:
    return {
        "id": f"{zone_id}-{record.get('id')}",
        "type": record.get("type"),
        "name": record.get("name"),
        "content": record.get("content"),
        "ttl": record.get("ttl"),
        "status": "Proxied" if record.get("proxied") else "DNS Only",
        "zoneName": record.get("zone_name"),
        "lastModified": record.get("modified_on"),
    }


def tag_firewall_rule(zone_id: str, rule: dict) -> dict:
    return {**rule, "zone_id": zone_id}


def analytics_entry(zone_id: str, result: dict) -> dict:
    return {
        "zoneId": result.get("zoneTag") or zone_id,
        "data": result.get("group"),
    }


def _client(settings: CloudflareSettings, session) -> CloudflareClient:
    return CloudflareClient(settings.require_token(), session, settings.api_base)


async def dns_envelope(settings: CloudflareSettings, session) -> Envelope:
    try:
        client = _client(settings, session)
        zone_ids = settings.require_zone_ids()
    except ConfigurationError as exc:
        return 500, {"success": False, "error": str(exc)}

    async def _fetch(zone_id: str) -> list[dict]:
        records = await client.list_dns_records(zone_id)
        return [tag_dns_record(zone_id, r) for r in records]

    try:
        per_zone = await gather_zones(zone_ids, _fetch)
    except CloudflareAPIError as exc:
        logger.warning("DNS aggregation failed: %s", exc)
        return 500, {"success": False, "error": str(exc)}
    merged = [record for records in per_zone for record in records]
    return 200, {"success": True, "data": merged}


async def firewall_envelope(settings: CloudflareSettings, session) -> Envelope:
    try:
        client = _client(settings, session)
        zone_ids = settings.require_zone_ids()
    except ConfigurationError as exc:
        return 500, {"success": False, "errors": str(exc)}

    async def _fetch(zone_id: str) -> list[dict]:
        rules = await client.list_firewall_rules(zone_id)
        return [tag_firewall_rule(zone_id, r) for r in rules]

    try:
        per_zone = await gather_zones(zone_ids, _fetch)
    except CloudflareAPIError as exc:
        logger.warning("Firewall aggregation failed: %s", exc)
        return 500, {"success": False, "errors": str(exc)}
    merged = [rule for rules in per_zone for rule in rules]
    return 200, {"success": True, "data": merged}


async def analytics_envelope(settings: CloudflareSettings, session) -> Envelope:
    try:
        client = _client(settings, session)
        zone_ids = settings.require_zone_ids()
    except ConfigurationError as exc:
        return 500, {"success": False, "errors": str(exc)}

    async def _fetch(zone_id: str) -> dict:
        return analytics_entry(zone_id, await client.zone_analytics(zone_id))

    try:
        entries = await gather_zones(zone_ids, _fetch)
    except CloudflareAPIError as exc:
        logger.warning("Analytics aggregation failed: %s", exc)
        return 500, {"success": False, "errors": str(exc) or "Unknown error"}
    return 200, {"success": True, "data": entries}


async def zones_envelope(settings: CloudflareSettings, session) -> Envelope:
    try:
        client = _client(settings, session)
    except ConfigurationError as exc:
        return 500, {"success": False, "error": str(exc)}

    try:
        zones = await client.list_zones()
    except CloudflareAPIError as exc:
        logger.warning("Zone listing failed: %s", exc)
        status: Optional[int] = exc.status
        if status is not None and not (200 <= status < 300):
            return status, {"success": False, "error": exc.detail}
        return 500, {"success": False, "error": exc.detail}
    return 200, {"success": True, "data": zones}


def analytics_totals(entries: Sequence[dict[str, Any]]) -> dict[str, int]:
    """Sum the per-zone analytics counters; zones without data count as zero."""
    totals = {"requests": 0, "cachedRequests": 0, "bandwidth": 0, "threats": 0}
    for entry in entries:
        summed = ((entry or {}).get("data") or {}).get("sum") or {}
        for key in totals:
            try:
                totals[key] += int(summed.get(key) or 0)
            except (TypeError, ValueError):
                continue
    return totals
