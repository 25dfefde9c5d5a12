"""Core portal server initialization and lifecycle."""

from __future__ import annotations

import logging

import aiohttp
from aiohttp import web

from ..applications import build_catalog
from ..config import CloudflareSettings, ConfigurationError
from ..export.jobs import ExportJobRegistry
from ..preferences import PreferencesStore
from ..storage.database import Database
from .server_config import PortalConfig
from .server_helpers import DATABASE_NOT_CONFIGURED

logger = logging.getLogger(__name__)


class PortalServerCoreMixin:
    """Core portal server lifecycle."""

    def __init__(
        self,
        *,
        config: PortalConfig,
        database: Database | None,
        cloudflare: CloudflareSettings | None = None,
        preferences: PreferencesStore | None = None,
        applications: list[dict] | None = None,
        http_session: aiohttp.ClientSession | None = None,
    ):
        self.config = config
        self.database = database
        self.cloudflare = cloudflare or CloudflareSettings()
        self.preferences = preferences or PreferencesStore()
        self.applications = build_catalog(applications)
        self.exports = ExportJobRegistry()

        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        # An injected session belongs to the caller and is never closed here.
        self._http_session: aiohttp.ClientSession | None = http_session
        self._owns_http_session = http_session is None

        self._app = web.Application(
            middlewares=[
                self._error_envelope_middleware,
                self._auth_middleware,
            ]
        )
        self._register_routes()

    async def start(self) -> None:
        if not self.config.enabled:
            return
        if self._runner:
            return
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, host=self.config.host, port=int(self.config.port))
        await self._site.start()

    async def stop(self) -> None:
        await self.exports.close()
        if self._runner:
            await self._runner.cleanup()
        self._runner = None
        self._site = None
        if self._owns_http_session and self._http_session and not self._http_session.closed:
            await self._http_session.close()
            self._http_session = None

    def _get_http_session(self) -> aiohttp.ClientSession:
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession()
            self._owns_http_session = True
        return self._http_session

    def _require_database(self) -> Database:
        if self.database is None:
            raise ConfigurationError(DATABASE_NOT_CONFIGURED)
        return self.database

    async def _healthz(self, request: web.Request) -> web.Response:
        return web.json_response({"ok": True})

    async def _index(self, request: web.Request) -> web.Response:
        raise web.HTTPFound(location="/admin/cloudflare/dns")
