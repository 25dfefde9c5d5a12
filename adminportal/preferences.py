"""Persisted UI preferences (theme)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

THEMES = ("light", "dark", "system")
DEFAULT_THEME = "system"


class PreferencesStore:
    """Small JSON-backed key/value store, loaded once and written on change."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._values: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        path = self.path
        if not path or not path.exists():
            return
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Preferences: failed to load %s: %s", path, e)
            return
        if isinstance(data, dict):
            self._values = data

    def _save(self) -> None:
        path = self.path
        if not path:
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._values, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(path)

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if self._values.get(key) == value and key in self._values:
            return
        self._values[key] = value
        self._save()

    @property
    def theme(self) -> str:
        value = self._values.get("theme")
        return value if value in THEMES else DEFAULT_THEME

    @theme.setter
    def theme(self, value: str) -> None:
        theme = (value or "").strip().lower()
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {value!r} (expected one of {', '.join(THEMES)})")
        self.set("theme", theme)
