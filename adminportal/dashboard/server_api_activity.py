"""Activity API handlers (quota writes and deletes)."""

from __future__ import annotations

from aiohttp import web

from ..mutations import InvalidBatch, apply_quota_updates, require_batch
from .server_helpers import _json_error


class PortalServerActivityApiMixin:
    """Activity list plus quota batch updates."""

    async def _api_activity(self, request: web.Request) -> web.Response:
        activities = await self._require_database().list_activities()
        return web.json_response({"success": True, "data": activities})

    async def _api_activity_update_quota_batch(self, request: web.Request) -> web.Response:
        """Apply ``{updates: [{id, targetquota}]}``; malformed entries are skipped."""
        db = self._require_database()
        body = await self._read_json(request)
        try:
            updates = require_batch(body, "updates", message="No updates provided.")
        except InvalidBatch as exc:
            return _json_error(400, str(exc), key="message")

        count = await apply_quota_updates(db, updates)
        return web.json_response({"success": True, "count": count})

    async def _api_activity_bulk_edit(self, request: web.Request) -> web.Response:
        db = self._require_database()
        body = await self._read_json(request)
        try:
            ids = require_batch(body, "userIds", message="No activity IDs provided.")
        except InvalidBatch as exc:
            return _json_error(400, str(exc), key="message")
        quota = body.get("targetquota")
        if quota in (None, ""):
            return _json_error(400, "No target quota provided.", key="message")

        rows = await db.bulk_set_quota(ids, str(quota))
        return web.json_response({"success": True, "data": rows, "count": len(rows)})

    async def _api_activity_delete(self, request: web.Request) -> web.Response:
        db = self._require_database()
        body = await self._read_json(request)
        try:
            ids = require_batch(body, "ids", message="No activity IDs provided.")
        except InvalidBatch as exc:
            return _json_error(400, str(exc), key="message")

        count = await db.delete_activities(ids)
        return web.json_response({"success": True, "count": count})
