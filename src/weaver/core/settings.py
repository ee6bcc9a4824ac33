"""Centralized settings for weaver.

Manifesto:
    One validated, cached settings object holds the few knobs the engine
    exposes: logging output and the behaviour of the stock interceptors.
    Values come from ``WEAVER_*`` environment variables or a ``.env`` file.

Tags:
    weaver-core, configuration, settings, pydantic, caching

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class WeaverSettings(BaseSettings):
    """Weaver configuration.

    Fields
    ──────
    log_level            : Level for ``configure_logging()``
    log_format           : ``console`` or ``json`` renderer
    intercept_log_level  : Level used by ``LogInterceptor`` entries
    notify_event_name    : Event fired by ``NotifyInterceptor``
    validate_return_values : Whether ``ValidatorInterceptor`` checks return values
    """

    model_config = SettingsConfigDict(
        env_prefix="WEAVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["console", "json"] = Field(default="console")

    # ── Interceptors ─────────────────────────────────────────────
    intercept_log_level: str = Field(default="INFO")
    notify_event_name: str = Field(default="property_changed")
    validate_return_values: bool = Field(default=True)

    @field_validator("log_level", "intercept_log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in _LEVELS:
            raise ValueError(f"log level must be one of {', '.join(_LEVELS)}, got {value!r}")
        return upper


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, WeaverSettings] = {}


def get_settings(*, _force_reload: bool = False) -> WeaverSettings:
    """Load, validate, and cache a :class:`WeaverSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    settings = WeaverSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()
