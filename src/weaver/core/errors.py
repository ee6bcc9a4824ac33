"""
Structured error types for the weaver engine.

Every failure raised while weaving a type or running an intercepted call is a
typed error carrying a category and structured context. Synthesis-time errors
(configuration, unsupported strategy/member combinations) abort the whole
``create()`` call; runtime errors raised by validators travel through the
interception envelope exactly as if the woven member had raised them.

Manifesto:
    - **Typed Error Hierarchy:** One subclass per failure domain
    - **Rich Context:** Errors name the base type, member, order and policy
    - **Error Chaining:** The original exception is kept as ``cause``
    - **Never Swallowed:** Interceptors observe faults, they never replace them

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────┐
        │                       WeaveError                          │
        │            (category, context, cause)                     │
        ├──────────────────────────────────────────────────────────┤
        │  ConfigurationError      UnsupportedOperationError        │
        │  (CONFIG)                (SYNTHESIS)                      │
        │                                                           │
        │  ValidationError                                          │
        │  (VALIDATION: field, value, constraint)                   │
        └──────────────────────────────────────────────────────────┘

    Stub members raise the builtin ``NotImplementedError``.

Examples:
    >>> error = ConfigurationError("no declarations").with_context(base_type="Account")
    >>> error.context.base_type
    'Account'
    >>> error.to_dict()["category"]
    'CONFIG'

Tags:
    error-handling, exception-hierarchy, error-context, weaver-core

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification.

    Attributes:
        CONFIG: Bad declarations, invisible or undeclared base types
        SYNTHESIS: A strategy applied to a member kind it cannot build
        VALIDATION: A value rejected by a declared validator
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    CONFIG = "CONFIG"
    SYNTHESIS = "SYNTHESIS"
    VALIDATION = "VALIDATION"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a weaver error.

    Attributes:
        base_type: Name of the type being woven
        member: Member (method/accessor) being synthesized or called
        order: Declaration order of the failing pass
        policy: Name of the policy involved
        metadata: Additional key-value pairs
    """

    base_type: str | None = None
    member: str | None = None
    order: int | None = None
    policy: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["base_type", "member", "order", "policy"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class WeaveError(Exception):
    """
    Base exception for all weaver errors.

    Subclasses set ``default_category``; instances carry an
    :class:`ErrorContext` and an optional chained ``cause``.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> WeaveError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ConfigurationError("bad order").with_context(
                base_type="Account", member="withdraw"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# SYNTHESIS-TIME ERRORS
# =============================================================================


class ConfigurationError(WeaveError):
    """
    Invalid weaving configuration.

    Raised for base types that are not public or carry no declarations,
    ambiguous member policies, unresolvable intercept masks and interceptor
    lists that are not interceptor classes.
    """

    default_category = ErrorCategory.CONFIG


class UnsupportedOperationError(WeaveError):
    """A strategy was applied to a member kind it does not support."""

    default_category = ErrorCategory.SYNTHESIS


# =============================================================================
# RUNTIME ERRORS
# =============================================================================


class ValidationError(WeaveError):
    """
    A value failed its declared validator.

    Raised by ``ValidatorInterceptor`` for inputs (before the wrapped body
    runs), outputs and return values.
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.constraint = constraint

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        if self.constraint:
            result["constraint"] = self.constraint
        return result


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, WeaveError):
        return error.category
    if isinstance(error, NotImplementedError):
        return ErrorCategory.SYNTHESIS
    if isinstance(error, (TypeError, ValueError)):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "WeaveError",
    "ConfigurationError",
    "UnsupportedOperationError",
    "ValidationError",
    "categorize_error",
]
