"""Composed portal server class."""

from __future__ import annotations

from .server_api_activity import PortalServerActivityApiMixin
from .server_api_cloudflare import PortalServerCloudflareApiMixin
from .server_api_sessions import PortalServerSessionsApiMixin
from .server_api_users import PortalServerUsersApiMixin
from .server_auth import PortalServerAuthMixin
from .server_config import PortalConfig
from .server_core import PortalServerCoreMixin
from .server_exports import PortalServerExportsMixin
from .server_pages import PortalServerPagesMixin
from .server_routes import PortalServerRoutesMixin
from .server_security import PortalServerSecurityMixin
from .server_settings import PortalServerSettingsMixin


class PortalServer(
    PortalServerCoreMixin,
    PortalServerSecurityMixin,
    PortalServerAuthMixin,
    PortalServerCloudflareApiMixin,
    PortalServerUsersApiMixin,
    PortalServerSessionsApiMixin,
    PortalServerActivityApiMixin,
    PortalServerExportsMixin,
    PortalServerPagesMixin,
    PortalServerSettingsMixin,
    PortalServerRoutesMixin,
):
    """Portal server composed from mixins."""


__all__ = ["PortalConfig", "PortalServer"]
