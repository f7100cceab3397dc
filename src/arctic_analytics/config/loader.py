"""YAML Settings Loader — parse and validate against JSON Schema."""

from __future__ import annotations

import importlib.resources as _resources
from collections.abc import Mapping
from pathlib import Path
from typing import Any

try:
    import jsonschema
    import yaml
except ImportError as _exc:
    raise ImportError(
        "YAML settings require pyyaml and jsonschema. Install them with: pip install arctic-analytics[yaml]"
    ) from _exc

MAX_SETTINGS_SIZE = 65_536  # 64 KB

# Lazy-loaded schema singleton
_schema_cache: dict | None = None


def _get_schema() -> dict:
    """Load and cache the JSON Schema for validation."""
    global _schema_cache  # noqa: PLW0603
    if _schema_cache is None:
        import json

        schema_text = (
            _resources.files("arctic_analytics.config").joinpath("settings.schema.json").read_text(encoding="utf-8")
        )
        _schema_cache = json.loads(schema_text)
    return _schema_cache


class YamlConfigSource:
    """Config source backed by a validated settings file."""

    def __init__(self, data: Mapping[str, Any], path: Path | None = None) -> None:
        self._sections: dict[str, dict[str, str]] = {
            name: dict(values) for name, values in data.get("sections", {}).items()
        }
        self._analytics_dir = data.get("analytics_dir")
        self._path = path

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def analytics_dir(self) -> Path | None:
        """Directory for session documents, resolved against the settings file."""
        if self._analytics_dir is None:
            return None
        directory = Path(self._analytics_dir)
        if not directory.is_absolute() and self._path is not None:
            directory = self._path.parent / directory
        return directory

    def get(self, section: str, key: str) -> str | None:
        return self._sections.get(section, {}).get(key)


def _validate_schema(data: dict) -> None:
    """Validate parsed YAML against the settings JSON Schema."""
    from arctic_analytics import AnalyticsConfigError

    schema = _get_schema()
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        raise AnalyticsConfigError(f"Schema validation failed: {e.message}") from e


def load_settings(source: str | Path) -> YamlConfigSource:
    """Load and validate a YAML settings file.

    Args:
        source: Path to a YAML file.

    Returns:
        A YamlConfigSource exposing the file's sections.

    Raises:
        AnalyticsConfigError: If the file is too large, is not valid YAML,
            or fails schema validation.
        FileNotFoundError: If the file does not exist.
    """
    from arctic_analytics import AnalyticsConfigError

    path = Path(source)

    file_size = path.stat().st_size
    if file_size > MAX_SETTINGS_SIZE:
        raise AnalyticsConfigError(f"Settings file too large ({file_size} bytes, max {MAX_SETTINGS_SIZE})")

    raw_bytes = path.read_bytes()

    try:
        data = yaml.safe_load(raw_bytes)
    except yaml.YAMLError as e:
        raise AnalyticsConfigError(f"YAML parse error: {e}") from e

    if not isinstance(data, dict):
        raise AnalyticsConfigError("YAML document must be a mapping")

    _validate_schema(data)

    return YamlConfigSource(data, path)
