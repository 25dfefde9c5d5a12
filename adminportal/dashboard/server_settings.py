"""Settings page (theme preference)."""

from __future__ import annotations

import logging

from aiohttp import web

from ..preferences import THEMES
from .server_helpers import _build_query_link, _escape, _flash

logger = logging.getLogger(__name__)


class PortalServerSettingsMixin:
    """Read/write the persisted UI preferences."""

    async def _admin_settings(self, request: web.Request) -> web.Response:
        msg = request.query.get("msg")
        error = request.query.get("error") == "1"
        current = self.preferences.theme
        options = "".join(
            f'<option value="{_escape(theme)}"{" selected" if theme == current else ""}>{_escape(theme.title())}</option>'
            for theme in THEMES
        )
        body = f"""
        {_flash(msg, error=error)}
        <div class="pt-panel">
          <form method="post" action="/admin/settings" class="pt-row">
            <input type="hidden" name="csrf" value="__SET_COOKIE__" />
            <label>Theme <select class="pt-select" name="theme">{options}</select></label>
            <button class="pt-btn" type="submit">Save</button>
          </form>
        </div>
        """
        return self._render_html(request, title="Settings", body=body)

    async def _admin_settings_save(self, request: web.Request) -> web.Response:
        data = await self._require_csrf(request)
        try:
            self.preferences.theme = str(data.get("theme") or "")
        except ValueError as exc:
            raise web.HTTPSeeOther(location=_build_query_link("/admin/settings", msg=str(exc), error=1))
        except OSError as exc:
            logger.warning("Saving preferences failed: %s", exc)
            raise web.HTTPSeeOther(
                location=_build_query_link("/admin/settings", msg=f"Could not save settings: {exc}", error=1)
            )
        logger.info("Theme set to %s", self.preferences.theme)
        raise web.HTTPSeeOther(location=_build_query_link("/admin/settings", msg="Settings saved."))
