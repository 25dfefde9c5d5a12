"""Cloudflare aggregation routes."""

from __future__ import annotations

from aiohttp import web

from ..cloudflare import aggregation

_ENVELOPE_BUILDERS = {
    "dns": aggregation.dns_envelope,
    "firewall": aggregation.firewall_envelope,
    "zones": aggregation.zones_envelope,
    "analytics": aggregation.analytics_envelope,
}


class PortalServerCloudflareApiMixin:
    """Read-only Cloudflare endpoints; every zone must succeed or the call fails."""

    async def _cloudflare_envelope(self, resource: str) -> tuple[int, dict]:
        builder = _ENVELOPE_BUILDERS[resource]
        return await builder(self.cloudflare, self._get_http_session())

    async def _api_cloudflare(self, request: web.Request) -> web.Response:
        resource = request.match_info.get("resource", "")
        if resource not in _ENVELOPE_BUILDERS:
            raise web.HTTPNotFound(text="Unknown Cloudflare resource.")
        status, body = await self._cloudflare_envelope(resource)
        return web.json_response(body, status=status)
