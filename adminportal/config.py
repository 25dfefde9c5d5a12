"""Configuration management for the admin portal."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


DEFAULT_CLOUDFLARE_API_BASE = "https://api.cloudflare.com/client/v4"

# Per-tenant zone variables, read in this order when CLOUDFLARE_ZONE_IDS is unset.
TENANT_ZONE_ENV_VARS: list[str] = [
    "CLOUDFLARE_ZONE_ID_ECOSHIFT",
    "CLOUDFLARE_ZONE_ID_DISRUPTIVE",
    "CLOUDFLARE_ZONE_ID_BUILDCHEM",
    "CLOUDFLARE_ZONE_ID_ESHOME",
]

DEFAULT_EMAIL_DOMAIN = "disruptivesolutionsinc.com"

# Company names derived from a user's original email domain during normalisation.
DEFAULT_COMPANY_BY_EMAIL_DOMAIN: dict[str, str] = {
    "disruptivesolutionsinc.com": "Disruptive Solutions Inc",
    "ecoshiftcorp.com": "Ecoshift Corporation",
}


class ConfigurationError(RuntimeError):
    """Raised when a route needs configuration that is not set."""


@dataclass
class CloudflareSettings:
    """Upstream Cloudflare credentials and the configured zones."""

    api_token: str = ""
    zone_ids: list[str] = field(default_factory=list)
    api_base: str = DEFAULT_CLOUDFLARE_API_BASE

    def require_token(self) -> str:
        token = (self.api_token or "").strip()
        if not token:
            raise ConfigurationError("Missing CLOUDFLARE_API_TOKEN")
        return token

    def require_zone_ids(self) -> list[str]:
        zone_ids = [z for z in self.zone_ids if z]
        if not zone_ids:
            raise ConfigurationError("No Cloudflare zone IDs configured (set CLOUDFLARE_ZONE_IDS)")
        return zone_ids


@dataclass
class Config:
    """Application configuration loaded from environment."""

    cloudflare: CloudflareSettings = field(default_factory=CloudflareSettings)

    # Record store; routes backed by it fail with a 500 when unset.
    database_path: Optional[Path] = None

    # HTTP server
    host: str = "127.0.0.1"
    port: int = 8080
    secure_cookies: bool = True
    auth_required: bool = True

    # Persisted UI preferences (theme)
    preferences_path: Path = field(default_factory=lambda: Path("./data/preferences.json"))
    config_dir: Path = field(default_factory=lambda: Path("./config"))

    # User management
    email_domain: str = DEFAULT_EMAIL_DOMAIN
    company_by_email_domain: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_COMPANY_BY_EMAIL_DOMAIN)
    )

    log_level: str = "INFO"

    # Optional application catalog override (config/applications.yaml)
    applications: list[dict] = field(default_factory=list)

    def __post_init__(self):
        if self.database_path is not None:
            self.database_path = Path(self.database_path)
        self.preferences_path = Path(self.preferences_path)
        self.config_dir = Path(self.config_dir)


def _parse_zone_ids() -> list[str]:
    raw = os.getenv("CLOUDFLARE_ZONE_IDS", "")
    if raw.strip():
        return [z.strip() for z in raw.split(",") if z.strip()]
    return [os.getenv(name, "").strip() for name in TENANT_ZONE_ENV_VARS if os.getenv(name, "").strip()]


def _load_applications(config_dir: Path) -> list[dict]:
    """Load catalog overrides from config/applications.yaml (optional)."""
    path = Path(config_dir or ".") / "applications.yaml"
    if not path.exists():
        return []

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        logger.warning("Failed to parse applications.yaml: %s", exc)
        return []

    raw = data.get("applications") if isinstance(data, dict) else data
    items: list[dict] = []
    for entry in raw or []:
        if not isinstance(entry, dict):
            continue
        title = str(entry.get("title") or "").strip()
        if not title:
            continue
        items.append(
            {
                "title": title,
                "description": str(entry.get("description") or "").strip(),
                "image": str(entry.get("image") or "").strip() or None,
            }
        )
    return items


def load_config() -> Config:
    """Load configuration from environment variables."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    database_path = os.getenv("PORTAL_DATABASE_PATH", "").strip()

    return Config(
        cloudflare=CloudflareSettings(
            api_token=os.getenv("CLOUDFLARE_API_TOKEN", ""),
            zone_ids=_parse_zone_ids(),
            api_base=os.getenv("CLOUDFLARE_API_BASE", DEFAULT_CLOUDFLARE_API_BASE).rstrip("/"),
        ),
        database_path=Path(database_path) if database_path else None,
        host=os.getenv("PORTAL_HOST", "127.0.0.1"),
        port=int(os.getenv("PORTAL_PORT", "8080")),
        secure_cookies=os.getenv("PORTAL_SECURE_COOKIES", "true").lower() == "true",
        auth_required=os.getenv("PORTAL_AUTH_REQUIRED", "true").lower() == "true",
        preferences_path=Path(os.getenv("PORTAL_PREFERENCES_PATH", "./data/preferences.json")),
        config_dir=config_dir,
        email_domain=os.getenv("PORTAL_EMAIL_DOMAIN", DEFAULT_EMAIL_DOMAIN).strip().lower() or DEFAULT_EMAIL_DOMAIN,
        log_level=os.getenv("PORTAL_LOG_LEVEL", "INFO").upper(),
        applications=_load_applications(config_dir),
    )


def validate_config(config: Config) -> list[str]:
    """Return warnings for configuration that will disable individual routes."""
    warnings: list[str] = []
    if not (config.cloudflare.api_token or "").strip():
        warnings.append("CLOUDFLARE_API_TOKEN is not set; Cloudflare routes will fail")
    if not config.cloudflare.zone_ids:
        warnings.append("No Cloudflare zone IDs configured; DNS, firewall and analytics routes will fail")
    if config.database_path is None:
        warnings.append("PORTAL_DATABASE_PATH is not set; user, session and activity routes will fail")
    return warnings
