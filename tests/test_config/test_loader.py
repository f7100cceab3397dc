"""Tests for the YAML settings loader and in-memory config sources."""

from __future__ import annotations

from pathlib import Path

import pytest

from arctic_analytics import AnalyticsConfigError, MemoryConfigSource, load_settings
from arctic_analytics.config import SECRET_KEY, SERVER_KEY, SETTINGS_SECTION
from arctic_analytics.config.loader import MAX_SETTINGS_SIZE, YamlConfigSource

FIXTURES = Path(__file__).parent / "fixtures"


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_valid_settings_load(self):
        settings = load_settings(FIXTURES / "valid_settings.yaml")
        assert isinstance(settings, YamlConfigSource)
        assert settings.get(SETTINGS_SECTION, SERVER_KEY) == "https://collector.example.com/ingest"
        assert settings.get(SETTINGS_SECTION, SECRET_KEY) == "s3cret"
        assert settings.get("Game.Settings", "Region") == "eu-north"

    def test_unknown_keys_return_none(self):
        settings = load_settings(FIXTURES / "valid_settings.yaml")
        assert settings.get(SETTINGS_SECTION, "Missing") is None
        assert settings.get("Nope", SERVER_KEY) is None

    def test_path_recorded(self):
        path = FIXTURES / "valid_settings.yaml"
        assert load_settings(path).path == path

    def test_relative_analytics_dir_resolved_against_file(self):
        settings = load_settings(FIXTURES / "valid_settings.yaml")
        assert settings.analytics_dir == FIXTURES / "Saved" / "Analytics"

    def test_absolute_analytics_dir_kept(self, tmp_path):
        target = tmp_path / "docs"
        path = tmp_path / "settings.yaml"
        path.write_text(f"analytics_dir: {target}\nsections:\n  A:\n    k: v\n")
        assert load_settings(path).analytics_dir == target

    def test_analytics_dir_optional(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("sections:\n  A:\n    k: v\n")
        assert load_settings(path).analytics_dir is None

    def test_accepts_string_path(self):
        settings = load_settings(str(FIXTURES / "valid_settings.yaml"))
        assert settings.get(SETTINGS_SECTION, SECRET_KEY) == "s3cret"


class TestLoadSettingsErrors:
    def test_missing_sections_rejected(self):
        with pytest.raises(AnalyticsConfigError, match="Schema validation failed"):
            load_settings(FIXTURES / "invalid_missing_sections.yaml")

    def test_non_string_value_rejected(self):
        with pytest.raises(AnalyticsConfigError, match="Schema validation failed"):
            load_settings(FIXTURES / "invalid_non_string.yaml")

    def test_unknown_top_level_key_rejected(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("sections:\n  A:\n    k: v\nextra: 1\n")
        with pytest.raises(AnalyticsConfigError, match="Schema validation failed"):
            load_settings(path)

    def test_bad_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("sections: [unclosed\n")
        with pytest.raises(AnalyticsConfigError, match="YAML parse error"):
            load_settings(path)

    def test_scalar_document(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("just a string\n")
        with pytest.raises(AnalyticsConfigError, match="must be a mapping"):
            load_settings(path)

    def test_too_large(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("# " + "x" * MAX_SETTINGS_SIZE + "\n")
        with pytest.raises(AnalyticsConfigError, match="too large"):
            load_settings(path)

    def test_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "missing.yaml")


class TestMemoryConfigSource:
    def test_for_upload(self):
        config = MemoryConfigSource.for_upload("https://x", "k")
        assert config.get(SETTINGS_SECTION, SERVER_KEY) == "https://x"
        assert config.get(SETTINGS_SECTION, SECRET_KEY) == "k"

    def test_for_upload_omits_none(self):
        config = MemoryConfigSource.for_upload(server="https://x")
        assert config.get(SETTINGS_SECTION, SECRET_KEY) is None

    def test_set_and_delete(self):
        config = MemoryConfigSource()
        config.set(SETTINGS_SECTION, SERVER_KEY, "https://x")
        assert config.get(SETTINGS_SECTION, SERVER_KEY) == "https://x"
        config.delete(SETTINGS_SECTION, SERVER_KEY)
        assert config.get(SETTINGS_SECTION, SERVER_KEY) is None
        config.delete("Absent", SERVER_KEY)

    def test_source_is_copied(self):
        values = {SETTINGS_SECTION: {SERVER_KEY: "https://x"}}
        config = MemoryConfigSource(values)
        values[SETTINGS_SECTION][SERVER_KEY] = "changed"
        assert config.get(SETTINGS_SECTION, SERVER_KEY) == "https://x"
