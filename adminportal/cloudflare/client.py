"""
Cloudflare v4 API client.

Thin wrapper over an aiohttp session covering the four upstream reads the
portal aggregates:
- zones: account zone list
- DNS records per zone
- firewall rules per zone
- GraphQL HTTP analytics per zone (most recent daily group)

No retries. Every failure surfaces as ``CloudflareAPIError`` naming the zone.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import aiohttp

from ..config import DEFAULT_CLOUDFLARE_API_BASE

logger = logging.getLogger(__name__)

ANALYTICS_QUERY = """
query {
  viewer {
    zones(filter: { zoneTag: "%s" }) {
      zoneTag
      httpRequests1dGroups(limit: 1, orderBy: [datetime_DESC]) {
        dimensions {
          datetime
        }
        sum {
          requests
          threats
          bandwidth
          cachedRequests
        }
      }
    }
  }
}
"""


class CloudflareAPIError(Exception):
    """Upstream transport or payload failure."""

    def __init__(
        self,
        message: str,
        *,
        zone_id: Optional[str] = None,
        status: Optional[int] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.zone_id = zone_id
        self.status = status
        self.detail = detail if detail is not None else message


class CloudflareClient:
    """Authenticated reads against the Cloudflare API."""

    def __init__(self, token: str, session: aiohttp.ClientSession, base_url: str = DEFAULT_CLOUDFLARE_API_BASE):
        self.token = token
        self.session = session
        self.base_url = (base_url or DEFAULT_CLOUDFLARE_API_BASE).rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, *, zone_id: str | None, label: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with self.session.request(method, url, headers=self._headers(), **kwargs) as resp:
                if resp.status < 200 or resp.status >= 300:
                    text = await resp.text()
                    raise CloudflareAPIError(
                        f"{label}: {text}",
                        zone_id=zone_id,
                        status=resp.status,
                        detail=text,
                    )
                try:
                    return await resp.json(content_type=None)
                except ValueError as exc:
                    raise CloudflareAPIError(f"{label}: invalid JSON response ({exc})", zone_id=zone_id) from exc
        except aiohttp.ClientError as exc:
            raise CloudflareAPIError(f"{label}: {exc or exc.__class__.__name__}", zone_id=zone_id) from exc
        except asyncio.TimeoutError as exc:
            raise CloudflareAPIError(f"{label}: request timed out", zone_id=zone_id, status=504) from exc

    @staticmethod
    def _result(payload: Any, *, zone_id: str | None, label: str) -> list[dict]:
        if not isinstance(payload, dict) or not payload.get("success"):
            errors = payload.get("errors") if isinstance(payload, dict) else payload
            serialized = json.dumps(errors)
            raise CloudflareAPIError(f"{label}: {serialized}", zone_id=zone_id, detail=serialized)
        result = payload.get("result")
        if not isinstance(result, list) or not all(isinstance(item, dict) for item in result):
            raise CloudflareAPIError(f"{label}: unexpected result shape", zone_id=zone_id)
        return result

    async def list_zones(self) -> list[dict]:
        payload = await self._request("GET", "/zones", zone_id=None, label="Cloudflare API error")
        return self._result(payload, zone_id=None, label="Cloudflare API error")

    async def list_dns_records(self, zone_id: str) -> list[dict]:
        payload = await self._request(
            "GET",
            f"/zones/{zone_id}/dns_records",
            zone_id=zone_id,
            label=f"Cloudflare API error (Zone {zone_id})",
        )
        return self._result(payload, zone_id=zone_id, label=f"Cloudflare API failed for Zone {zone_id}")

    async def list_firewall_rules(self, zone_id: str) -> list[dict]:
        label = f"Zone {zone_id}"
        payload = await self._request("GET", f"/zones/{zone_id}/firewall/rules", zone_id=zone_id, label=label)
        return self._result(payload, zone_id=zone_id, label=label)

    async def zone_analytics(self, zone_id: str) -> dict:
        """Return ``{"zoneTag": ..., "group": ...}`` for the zone's latest day."""
        payload = await self._request(
            "POST",
            "/graphql",
            zone_id=zone_id,
            label=f"Zone {zone_id} API error",
            json={"query": ANALYTICS_QUERY % zone_id},
        )
        if not isinstance(payload, dict):
            raise CloudflareAPIError(f"Zone {zone_id} GraphQL error: unexpected response", zone_id=zone_id)

        errors = payload.get("errors")
        if errors:
            for err in errors if isinstance(errors, list) else []:
                message = str((err or {}).get("message") or "") if isinstance(err, dict) else ""
                lowered = message.lower()
                if "permission" in lowered or "unauthorized" in lowered:
                    raise CloudflareAPIError(f"Zone {zone_id} Permission error: {message}", zone_id=zone_id)
            raise CloudflareAPIError(f"Zone {zone_id} GraphQL error: {json.dumps(errors)}", zone_id=zone_id)

        data = payload.get("data")
        viewer = data.get("viewer") if isinstance(data, dict) else None
        zones = viewer.get("zones") if isinstance(viewer, dict) else None
        zone = zones[0] if isinstance(zones, list) and zones and isinstance(zones[0], dict) else None
        groups = (zone or {}).get("httpRequests1dGroups")
        groups = groups if isinstance(groups, list) else []
        return {
            "zoneTag": (zone or {}).get("zoneTag"),
            "group": groups[0] if groups else None,
        }
