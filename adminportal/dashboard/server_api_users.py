"""User management API handlers."""

from __future__ import annotations

import logging

from aiohttp import web

from ..mutations import InvalidBatch, require_batch
from ..storage.enums import TransferKind
from .server_helpers import _json_error

logger = logging.getLogger(__name__)


class PortalServerUsersApiMixin:
    """User list plus bulk delete/transfer/email conversion."""

    async def _api_users(self, request: web.Request) -> web.Response:
        users = await self._require_database().list_users()
        return web.json_response({"success": True, "data": users})

    async def _api_user_quotas(self, request: web.Request) -> web.Response:
        quotas = await self._require_database().list_user_quotas()
        return web.json_response({"success": True, "data": quotas})

    async def _api_users_delete(self, request: web.Request) -> web.Response:
        db = self._require_database()
        body = await self._read_json(request)
        try:
            ids = require_batch(body, "ids", message="Invalid or missing 'ids' array.")
        except InvalidBatch as exc:
            return _json_error(400, str(exc), key="message")

        count = await db.delete_users(ids)
        if count == 0:
            return web.json_response(
                {"success": False, "count": 0, "message": "No users found to delete."},
                status=404,
            )
        return web.json_response({"success": True, "count": count, "message": "Users deleted successfully."})

    async def _api_users_transfer(self, request: web.Request) -> web.Response:
        db = self._require_database()
        body = await self._read_json(request)
        try:
            ids = require_batch(body, "ids", message="No user IDs provided.")
        except InvalidBatch as exc:
            return _json_error(400, str(exc), key="message")

        try:
            kind = TransferKind(body.get("type"))
        except ValueError:
            return _json_error(400, "Invalid transfer type.", key="message")
        target_id = str(body.get("targetId") or "").strip()
        if not target_id:
            return _json_error(400, "No target ID provided.", key="message")

        count = await db.transfer_users(ids, kind, target_id)
        return web.json_response(
            {
                "success": True,
                "count": count,
                "message": f"Successfully transferred {count} user(s) to {kind.value}.",
            }
        )

    async def _api_users_convert_email(self, request: web.Request) -> web.Response:
        db = self._require_database()
        body = await self._read_json(request)
        try:
            ids = require_batch(body, "ids", message="No user IDs provided")
        except InvalidBatch as exc:
            return _json_error(400, str(exc), key="message")

        count = await db.convert_emails(
            ids,
            domain=self.config.email_domain,
            company_by_domain=self.config.company_by_email_domain,
        )
        return web.json_response(
            {"success": True, "count": count, "message": f"{count} emails updated successfully"}
        )
