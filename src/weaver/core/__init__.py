"""
Weaver core primitives.

- errors: typed error hierarchy
- settings: pydantic-settings configuration
- logging: structlog configuration
- context: ambient per-call context stack
- registry: shared weaving caches
"""

from weaver.core.context import call_stack, current_call, push_call
from weaver.core.errors import (
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    UnsupportedOperationError,
    ValidationError,
    WeaveError,
    categorize_error,
)
from weaver.core.logging import configure_logging, get_logger
from weaver.core.registry import WeaveRegistry, default_registry, reset_default_registry
from weaver.core.settings import WeaverSettings, clear_settings_cache, get_settings

__all__ = [
    # Errors
    "WeaveError",
    "ConfigurationError",
    "UnsupportedOperationError",
    "ValidationError",
    "ErrorCategory",
    "ErrorContext",
    "categorize_error",
    # Settings
    "WeaverSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    # Context
    "call_stack",
    "current_call",
    "push_call",
    # Registry
    "WeaveRegistry",
    "default_registry",
    "reset_default_registry",
]
