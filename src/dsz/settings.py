"""JSON-backed defaults for command-line options."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

from dsz.models.options import SortMode
from dsz.utils import xdg_config_home

log = logging.getLogger(__name__)

_SETTINGS_DIR = "dsz"
_SETTINGS_FILE = "settings.json"


def _is_flag(value: Any) -> bool:
    return isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def _is_sort_mode(value: Any) -> bool:
    return value in {mode.value for mode in SortMode}


# Keys that supply option defaults, with the check a stored value must pass.
OPTION_KEYS: dict[str, Callable[[Any], bool]] = {
    "size.show_bytes": _is_flag,
    "size.workers": _is_positive_int,
    "tree.depth": _is_positive_int,
    "tree.no_hidden": _is_flag,
    "tree.reverse": _is_flag,
    "tree.show_size": _is_flag,
    "tree.sort": _is_sort_mode,
}


class Settings:
    """Persistent settings backed by a JSON file.

    Uses dot-notation keys for nested access:
        settings.get("tree.depth")  # reads data["tree"]["depth"]
        settings.set("tree.sort", "size")  # writes + saves
    """

    _instance: Settings | None = None

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or (xdg_config_home() / _SETTINGS_DIR / _SETTINGS_FILE)
        self._data: dict[str, Any] = {}
        self._load()

    @classmethod
    def instance(cls) -> Settings:
        """Return the singleton settings instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def path(self) -> Path:
        return self._path

    def as_dict(self) -> dict[str, Any]:
        return json.loads(json.dumps(self._data))

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key."""
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    @staticmethod
    def is_valid(key: str, value: Any) -> bool:
        """Whether *value* is acceptable for the option key *key*."""
        check = OPTION_KEYS.get(key)
        return check is not None and check(value)

    def option(self, key: str) -> Any:
        """Stored default for option *key*, or None when unset or invalid."""
        value = self.get(key)
        if value is None:
            return None
        if not self.is_valid(key, value):
            log.warning("Ignoring invalid setting %s=%r", key, value)
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a value by dot-notation key and persist to disk."""
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            if part not in node or not isinstance(node[part], dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
        self._save()

    def _load(self) -> None:
        """Load settings from disk, gracefully handling errors."""
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            log.warning("Could not load settings from %s: %s", self._path, e)
            return
        if not isinstance(data, dict):
            log.warning("Ignoring settings in %s: expected a JSON object", self._path)
            return
        self._data = data

    def _save(self) -> None:
        """Persist settings to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(self._data, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            log.warning("Could not save settings to %s: %s", self._path, e)
