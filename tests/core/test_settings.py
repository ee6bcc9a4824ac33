"""Tests for weaver.core.settings module."""

import pytest
from pydantic import ValidationError

from weaver.core.settings import WeaverSettings, clear_settings_cache, get_settings


class TestWeaverSettings:
    """Defaults and environment overrides."""

    def test_defaults(self):
        settings = WeaverSettings()
        assert settings.log_level == "INFO"
        assert settings.log_format == "console"
        assert settings.intercept_log_level == "INFO"
        assert settings.notify_event_name == "property_changed"
        assert settings.validate_return_values is True

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("WEAVER_LOG_LEVEL", "debug")
        monkeypatch.setenv("WEAVER_NOTIFY_EVENT_NAME", "changed")
        monkeypatch.setenv("WEAVER_VALIDATE_RETURN_VALUES", "false")
        settings = WeaverSettings()
        assert settings.log_level == "DEBUG"
        assert settings.notify_event_name == "changed"
        assert settings.validate_return_values is False

    def test_invalid_level_rejected(self, monkeypatch):
        monkeypatch.setenv("WEAVER_INTERCEPT_LOG_LEVEL", "loud")
        with pytest.raises(ValidationError):
            WeaverSettings()

    def test_invalid_format_rejected(self):
        with pytest.raises(ValidationError):
            WeaverSettings(log_format="xml")

    def test_env_file(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("WEAVER_LOG_FORMAT=json\n")
        monkeypatch.chdir(tmp_path)
        assert WeaverSettings().log_format == "json"


class TestGetSettings:
    """Caching behaviour."""

    def test_cached_instance(self):
        assert get_settings() is get_settings()

    def test_force_reload(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("WEAVER_LOG_LEVEL", "ERROR")
        assert get_settings() is first
        reloaded = get_settings(_force_reload=True)
        assert reloaded is not first
        assert reloaded.log_level == "ERROR"

    def test_clear_cache(self):
        first = get_settings()
        clear_settings_cache()
        assert get_settings() is not first
