"""Portal server configuration dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..config import DEFAULT_COMPANY_BY_EMAIL_DOMAIN, DEFAULT_EMAIL_DOMAIN


@dataclass(slots=True)
class PortalConfig:
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8080
    secure_cookies: bool = True
    auth_required: bool = True
    session_ttl_seconds: int = 24 * 60 * 60
    lockout_threshold: int = 3
    lockout_years: int = 50
    email_domain: str = DEFAULT_EMAIL_DOMAIN
    company_by_email_domain: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_COMPANY_BY_EMAIL_DOMAIN)
    )
