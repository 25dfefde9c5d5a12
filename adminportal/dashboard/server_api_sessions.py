"""Session log API handlers."""

from __future__ import annotations

from aiohttp import web

from ..mutations import InvalidBatch, require_batch
from .server_helpers import _json_error


class PortalServerSessionsApiMixin:
    """Session log list and bulk delete."""

    async def _api_sessions(self, request: web.Request) -> web.Response:
        logs = await self._require_database().list_session_logs()
        return web.json_response({"success": True, "data": logs})

    async def _api_sessions_delete(self, request: web.Request) -> web.Response:
        db = self._require_database()
        body = await self._read_json(request)
        try:
            ids = require_batch(body, "ids", message="No session IDs provided.")
        except InvalidBatch as exc:
            return _json_error(400, str(exc), key="message")

        count = await db.delete_session_logs(ids)
        return web.json_response({"success": True, "count": count, "message": f"{count} session log(s) deleted."})
