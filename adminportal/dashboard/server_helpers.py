"""Shared helpers/constants for the portal server."""

from __future__ import annotations

import html
import json
from typing import Any, Iterable
from urllib.parse import urlencode

from aiohttp import web

SESSION_COOKIE = "session"
CSRF_COOKIE = "portal_csrf"

DATABASE_NOT_CONFIGURED = "Database not configured (set PORTAL_DATABASE_PATH)"

# Pages that render the generic list view, keyed by URL segment.
CLOUDFLARE_PAGES = ("dns", "firewall", "zones", "analytics")
RECORD_PAGES = ("sessions", "activity", "users")


def _escape(value: object) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def _build_query_link(base: str, **params: object) -> str:
    clean = {k: v for k, v in params.items() if v not in (None, "", [], False)}
    if not clean:
        return base
    return f"{base}?{urlencode(clean, doseq=True)}"


def _json_error(status: int, message: str, *, key: str = "error") -> web.Response:
    return web.json_response({"success": False, key: message}, status=status)


def _json_http_error(exc_cls: type[web.HTTPException], message: str) -> web.HTTPException:
    """Build an aiohttp HTTP exception whose body is the JSON error envelope."""
    return exc_cls(
        text=json.dumps({"success": False, "error": message}),
        content_type="application/json",
    )


def _flash(msg: str | None, *, error: bool = False) -> str:
    if not msg:
        return ""
    cls = "pt-flash pt-flash-error" if error else "pt-flash pt-flash-success"
    icon = "&#10005;" if error else "&#10003;"
    return f'<div class="{cls}"><span>{icon}</span><span>{_escape(msg)}</span></div>'


def _format_number(value: Any) -> str:
    try:
        return f"{int(value or 0):,}"
    except (TypeError, ValueError):
        return _escape(value)


def _format_bytes(num: int) -> str:
    """Human-readable bytes."""
    step = 1024.0
    units = ["B", "KB", "MB", "GB", "TB"]
    n = float(num or 0)
    for unit in units:
        if n < step:
            return f"{n:.1f} {unit}" if unit != "B" else f"{int(n)} B"
        n /= step
    return f"{n:.1f} PB"


def _hidden_inputs(values: Iterable[tuple[str, object]]) -> str:
    return "".join(
        f'<input type="hidden" name="{_escape(name)}" value="{_escape(value)}" />'
        for name, value in values
        if value not in (None, "")
    )
