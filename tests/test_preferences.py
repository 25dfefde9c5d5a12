"""Tests for preferences, the applications catalog and config loading."""

from __future__ import annotations

import json

import pytest

from adminportal.applications import DEFAULT_APPLICATIONS, build_catalog
from adminportal.config import ConfigurationError, CloudflareSettings, load_config, validate_config
from adminportal.preferences import PreferencesStore


def test_theme_defaults_to_system(tmp_path):
    store = PreferencesStore(tmp_path / "prefs.json")
    assert store.theme == "system"
    assert not (tmp_path / "prefs.json").exists()


def test_theme_persists_across_instances(tmp_path):
    path = tmp_path / "nested" / "prefs.json"
    PreferencesStore(path).theme = "Dark"

    assert json.loads(path.read_text()) == {"theme": "dark"}
    assert PreferencesStore(path).theme == "dark"


def test_unknown_theme_is_rejected(tmp_path):
    store = PreferencesStore(tmp_path / "prefs.json")
    with pytest.raises(ValueError, match="Unknown theme"):
        store.theme = "neon"
    assert store.theme == "system"


def test_corrupt_preferences_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("{not json")
    assert PreferencesStore(path).theme == "system"


def test_store_without_path_keeps_values_in_memory():
    store = PreferencesStore()
    store.set("theme", "light")
    assert store.get("theme") == "light"
    assert store.get("missing", 3) == 3


def test_catalog_defaults_have_sequential_ids():
    catalog = build_catalog()
    assert len(catalog) == len(DEFAULT_APPLICATIONS)
    assert [item["id"] for item in catalog] == list(range(1, len(catalog) + 1))
    assert set(catalog[0]) == {"id", "title", "description", "image"}


def test_catalog_overrides_replace_defaults():
    catalog = build_catalog([{"title": "Wiki"}, {"title": ""}, {"title": "CRM", "image": "/crm.png"}])
    assert [(c["id"], c["title"]) for c in catalog] == [(1, "Wiki"), (2, "CRM")]
    assert catalog[0]["description"] == "Description for Wiki"
    assert catalog[0]["image"] == "/logo/default.jpg"
    assert catalog[1]["image"] == "/crm.png"


def test_cloudflare_settings_require_values():
    with pytest.raises(ConfigurationError, match="CLOUDFLARE_API_TOKEN"):
        CloudflareSettings(api_token="  ").require_token()
    with pytest.raises(ConfigurationError):
        CloudflareSettings(api_token="t", zone_ids=["", ""]).require_zone_ids()
    assert CloudflareSettings(api_token="t", zone_ids=["a", "", "b"]).require_zone_ids() == ["a", "b"]


def test_load_config_reads_environment(tmp_path, monkeypatch):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "applications.yaml").write_text(
        "applications:\n  - title: Wiki\n    description: Team wiki\n  - description: no title\n"
    )
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CONFIG_DIR", str(config_dir))
    monkeypatch.setenv("CLOUDFLARE_API_TOKEN", "tok")
    monkeypatch.setenv("CLOUDFLARE_ZONE_IDS", "z1, z2,,")
    monkeypatch.setenv("PORTAL_DATABASE_PATH", str(tmp_path / "portal.db"))
    monkeypatch.setenv("PORTAL_PORT", "9001")
    monkeypatch.setenv("PORTAL_SECURE_COOKIES", "false")
    monkeypatch.setenv("PORTAL_EMAIL_DOMAIN", "Example.COM")

    config = load_config()

    assert config.cloudflare.api_token == "tok"
    assert config.cloudflare.zone_ids == ["z1", "z2"]
    assert config.database_path == tmp_path / "portal.db"
    assert config.port == 9001
    assert config.secure_cookies is False
    assert config.email_domain == "example.com"
    assert config.applications == [{"title": "Wiki", "description": "Team wiki", "image": None}]
    assert validate_config(config) == []


def test_load_config_falls_back_to_tenant_zone_variables(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CLOUDFLARE_ZONE_IDS", raising=False)
    monkeypatch.delenv("CLOUDFLARE_API_TOKEN", raising=False)
    monkeypatch.delenv("PORTAL_DATABASE_PATH", raising=False)
    monkeypatch.setenv("CLOUDFLARE_ZONE_ID_ECOSHIFT", "eco")
    monkeypatch.setenv("CLOUDFLARE_ZONE_ID_ESHOME", "home")

    config = load_config()

    assert config.cloudflare.zone_ids[0] == "eco"
    assert config.cloudflare.zone_ids[-1] == "home"
    warnings = validate_config(config)
    assert any("CLOUDFLARE_API_TOKEN" in w for w in warnings)
    assert any("PORTAL_DATABASE_PATH" in w for w in warnings)
