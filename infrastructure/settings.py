"""Settings access helpers for JSON-based configuration."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger


class JsonSettings:
    """Lightweight JSON settings reader with dotted-key access."""

    def __init__(self, settings_path: str | Path) -> None:
        self._path = Path(settings_path)
        if not self._path.exists():
            raise FileNotFoundError(f"settings.json not found: {self._path}")
        with self._path.open("r", encoding="utf-8") as f:
            self._data = json.load(f)

    @property
    def path(self) -> Path:
        """Location of the backing settings file."""
        return self._path

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return value for dotted `key`, or `default` if not present."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node


def setting_int(settings: object | None, key: str, default: int) -> int:
    """Read an int from optional `settings`; `default` when absent or invalid."""
    if settings is None:
        return default
    raw = settings.get(key, default)  # type: ignore[attr-defined]
    try:
        return int(raw if raw is not None else default)
    except (ValueError, TypeError):
        logger.debug("Invalid int setting {}={!r}, using {}", key, raw, default)
        return default


def setting_float(settings: object | None, key: str, default: float) -> float:
    """Read a float from optional `settings`; `default` when absent or invalid."""
    if settings is None:
        return default
    raw = settings.get(key, default)  # type: ignore[attr-defined]
    try:
        return float(raw if raw is not None else default)
    except (ValueError, TypeError):
        logger.debug("Invalid float setting {}={!r}, using {}", key, raw, default)
        return default


def setting_str(settings: object | None, key: str, default: str) -> str:
    """Read a non-empty string from optional `settings`, else `default`."""
    if settings is None:
        return default
    raw = settings.get(key, default)  # type: ignore[attr-defined]
    if isinstance(raw, str) and raw.strip():
        return raw
    return default
