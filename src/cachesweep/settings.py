"""User configuration stored as JSON under the XDG config directory."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from cachesweep.utils import xdg_config_home

log = logging.getLogger(__name__)

_SETTINGS_DIR = "cachesweep"
_SETTINGS_FILE = "settings.json"

DEFAULTS: dict[str, Any] = {
    "clean": {
        "use_trash": True,
        "retry_pause": 0.5,
    },
    "scan": {
        "download_age_days": 30,
        "workers": 4,
    },
    "safety": {
        "protected_paths": [],
    },
}


class Settings:
    """cachesweep configuration.

    Keys are dotted paths into the nested JSON document:
        settings.get("clean.use_trash")  # reads data["clean"]["use_trash"]
        settings.set("scan.workers", 2)  # writes + saves

    Keys missing from the file fall back to ``DEFAULTS``.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or (xdg_config_home() / _SETTINGS_DIR / _SETTINGS_FILE)
        self._data: dict[str, Any] = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for *key*, then the built-in default, then *default*."""
        for source in (self._data, DEFAULTS):
            found, value = _lookup(source, key)
            if found:
                return value
        return default

    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key* and write the file."""
        *parents, leaf = key.split(".")
        node = self._data
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[leaf] = value
        self._save()

    def _load(self) -> None:
        """Read the file if present; unreadable or malformed files leave the defaults in place."""
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            log.warning("Could not load settings from %s: %s", self._path, e)
            return
        if not isinstance(data, dict):
            log.warning("Ignoring settings file %s: top level is not an object", self._path)
            return
        self._data = data

    def _save(self) -> None:
        """Write the current values, logging instead of raising on failure."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(self._data, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            log.warning("Could not save settings to %s: %s", self._path, e)


def _lookup(data: dict[str, Any], key: str) -> tuple[bool, Any]:
    node: Any = data
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return False, None
        node = node[part]
    return True, node
