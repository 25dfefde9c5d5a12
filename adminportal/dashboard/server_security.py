"""Session auth, CSRF and request helpers for the portal server."""

from __future__ import annotations

import asyncio
import logging
import secrets
from typing import Optional

import aiosqlite
from aiohttp import web

from ..config import ConfigurationError
from .server_helpers import CSRF_COOKIE, SESSION_COOKIE, _build_query_link, _json_error, _json_http_error

logger = logging.getLogger(__name__)

# Reachable without a session.
PUBLIC_API_PATHS = ("/api/login",)


def _is_protected(path: str) -> bool:
    if path.startswith("/admin"):
        return True
    return path.startswith("/api/") and path not in PUBLIC_API_PATHS


class PortalServerSecurityMixin:
    """Auth middleware, error envelopes and CSRF helpers."""

    @web.middleware
    async def _error_envelope_middleware(self, request: web.Request, handler):  # type: ignore[override]
        try:
            return await handler(request)
        except ConfigurationError as exc:
            logger.warning("%s %s: %s", request.method, request.path, exc)
            return _json_error(500, str(exc))
        except aiosqlite.Error as exc:
            logger.exception("Database error on %s %s", request.method, request.path)
            return _json_error(500, f"Database error: {exc}")
        except asyncio.TimeoutError:
            logger.warning("Timed out handling %s %s", request.method, request.path)
            return _json_error(504, "Upstream request timed out.")

    @web.middleware
    async def _auth_middleware(self, request: web.Request, handler):  # type: ignore[override]
        path = request.path or ""
        if not self.config.auth_required or not _is_protected(path):
            request["session"] = None
            return await handler(request)

        session = await self._current_session(request)
        if session is None:
            if path.startswith("/api/"):
                return _json_error(401, "Authentication required.")
            raise web.HTTPFound(location=_build_query_link("/login", next=request.path_qs))

        request["session"] = session
        return await handler(request)

    async def _current_session(self, request: web.Request) -> Optional[dict]:
        token = (request.cookies.get(SESSION_COOKIE) or "").strip()
        if not token:
            return None
        return await self._require_database().get_auth_session(token)

    def _get_or_set_csrf(self, request: web.Request, response: web.StreamResponse) -> str:
        token = (request.cookies.get(CSRF_COOKIE) or "").strip()
        if not token:
            token = secrets.token_urlsafe(32)
            response.set_cookie(
                CSRF_COOKIE,
                token,
                path="/",
                httponly=True,
                samesite="Strict",
                secure=self.config.secure_cookies,
            )
        return token

    async def _require_csrf(self, request: web.Request) -> web.MultiDictProxy:
        cookie = (request.cookies.get(CSRF_COOKIE) or "").strip()
        data = await request.post()
        sent = str(data.get("csrf") or "").strip()
        if not cookie or not sent or sent != cookie:
            raise web.HTTPForbidden(text="CSRF check failed.")
        return data

    def _require_csrf_header(self, request: web.Request) -> None:
        cookie = (request.cookies.get(CSRF_COOKIE) or "").strip()
        sent = (request.headers.get("X-CSRF-Token") or "").strip()
        if not cookie or not sent or sent != cookie:
            raise _json_http_error(web.HTTPForbidden, "CSRF check failed.")

    async def _read_json(self, request: web.Request, *, allow_empty: bool = False) -> dict:
        if allow_empty:
            if not request.can_read_body or request.content_length in (None, 0):
                return {}
        try:
            data = await request.json()
        except ValueError:
            raise _json_http_error(web.HTTPBadRequest, "Invalid JSON payload")
        if not isinstance(data, dict):
            raise _json_http_error(web.HTTPBadRequest, "Invalid JSON payload")
        return data

    async def _read_payload(self, request: web.Request) -> dict:
        """JSON object or form fields, depending on the request content type."""
        if request.content_type == "application/json":
            return await self._read_json(request, allow_empty=True)
        data = await request.post()
        return {key: data.get(key) for key in data.keys()}

    def _client_ip(self, request: web.Request) -> str:
        """Best-effort client IP extraction (supports X-Forwarded-For)."""
        forwarded = request.headers.get("X-Forwarded-For", "")
        if forwarded:
            return forwarded.split(",")[0].strip()
        remote = (request.remote or "").split(":")[0]
        return remote or "unknown"
