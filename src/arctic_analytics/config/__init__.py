"""Configuration sources: in-memory mappings and YAML settings files.

YAML support requires optional dependencies: ``pip install arctic-analytics[yaml]``
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from arctic_analytics.config.loader import YamlConfigSource

SETTINGS_SECTION = "ArcticAnalytics.Settings"
SERVER_KEY = "Server"
SECRET_KEY = "Secret"


class MemoryConfigSource:
    """Config source backed by a ``{section: {key: value}}`` mapping."""

    def __init__(self, sections: Mapping[str, Mapping[str, str]] | None = None) -> None:
        self._sections: dict[str, dict[str, str]] = {name: dict(values) for name, values in (sections or {}).items()}

    @classmethod
    def for_upload(cls, server: str | None = None, secret: str | None = None) -> MemoryConfigSource:
        """Build a source holding the upload settings."""
        values = {}
        if server is not None:
            values[SERVER_KEY] = server
        if secret is not None:
            values[SECRET_KEY] = secret
        return cls({SETTINGS_SECTION: values})

    def get(self, section: str, key: str) -> str | None:
        return self._sections.get(section, {}).get(key)

    def set(self, section: str, key: str, value: str) -> None:
        self._sections.setdefault(section, {})[key] = value

    def delete(self, section: str, key: str) -> None:
        self._sections.get(section, {}).pop(key, None)


def load_settings(source: str | Path) -> YamlConfigSource:
    """Load and validate a YAML settings file. See :func:`loader.load_settings`."""
    from arctic_analytics.config.loader import load_settings as _load

    return _load(source)


__all__ = [
    "SECRET_KEY",
    "SERVER_KEY",
    "SETTINGS_SECTION",
    "MemoryConfigSource",
    "load_settings",
]
