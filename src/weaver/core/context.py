"""
Ambient per-call context stack using contextvars.

Every intercepted call pushes its context when it begins and pops it when it
finishes, so nested and recursive intercepted calls nest correctly: the most
recently pushed entry is the current one. The stack is an immutable tuple held
in a ``ContextVar``; each push returns a token and the matching pop resets the
variable with that token.

Design choice: contextvars
- Thread-safe and asyncio-compatible
- Concurrent calls on other threads or tasks never see this stack
- Clean integration with structlog processors

Usage:
    token = push_call(ctx)
    try:
        run_body()
    finally:
        token.restore()
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import Any

_call_stack: ContextVar[tuple[Any, ...]] = ContextVar("weaver_call_stack", default=())  # noqa: B039


def call_stack() -> tuple[Any, ...]:
    """Return the live call contexts, outermost first."""
    return _call_stack.get()


def current_call() -> Any | None:
    """Return the innermost live call context, or ``None`` outside any call."""
    stack = _call_stack.get()
    return stack[-1] if stack else None


class CallToken:
    """Token for popping a pushed call context exactly once."""

    __slots__ = ("_token", "_entry", "_restored")

    def __init__(self, token, entry):
        self._token = token
        self._entry = entry
        self._restored = False

    @property
    def entry(self) -> Any:
        return self._entry

    def restore(self) -> None:
        """Pop the pushed context, restoring the previous stack."""
        if self._restored:
            return
        self._restored = True
        _call_stack.reset(self._token)


def push_call(entry: Any) -> CallToken:
    """Push ``entry`` as the current call context."""
    token = _call_stack.set(_call_stack.get() + (entry,))
    return CallToken(token, entry)


def add_call_processor(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """
    Structlog processor that tags log entries with the current intercepted call.

    Adds ``intercept_type`` and ``intercept_method`` (without overriding keys
    already present) whenever a log call happens inside an intercepted call.
    """
    entry = current_call()
    if entry is None:
        return event_dict

    reflected = getattr(entry, "reflected_type", None)
    method = getattr(entry, "method", None)
    if reflected is not None:
        event_dict.setdefault("intercept_type", reflected.__name__)
    if method is not None:
        event_dict.setdefault("intercept_method", method.name)
    return event_dict
