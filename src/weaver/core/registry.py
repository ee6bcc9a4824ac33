"""Shared caches for woven types, backing fields, chains and validator tables.

Manifesto:
    Weaving is expensive and must happen at most once per base type, and the
    interceptor chains and validator tables built for a woven type must be
    shared by every call. Instead of hidden module globals, all of that state
    lives in one ``WeaveRegistry`` object with an explicit lifecycle
    (construct, use, ``clear()``), handed to the orchestrator and reachable
    from every intercepted call through its context.

Every first access goes through :meth:`WeaveRegistry.get_or_create`, which
runs the factory under the registry lock, so concurrent first requests for the
same key produce exactly one value. The lock is re-entrant because building
one entry (a woven type) creates others (backing fields, chains) on the same
thread.

Tags:
    weaver-core, registry, caching, thread-safety

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Hashable
from typing import Any, TypeVar

from weaver.core.logging import get_logger

logger = get_logger(__name__)

V = TypeVar("V")


class WeaveRegistry:
    """Thread-safe home of every process-wide weaving cache.

    Caches:
        generated_types : base type → woven type
        backing_fields  : (pass id, property/event name) → generated field
        chains          : (woven type, interceptor classes) → InterceptorChain
        masks           : intercepted member → InterceptTypes
        validator_tables: (woven type, member name) → {name: TypeAdapter}
        notify_events   : type → change-notification event name
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.generated_types: dict[type, type] = {}
        self.backing_fields: dict[tuple[int, str], Any] = {}
        self.chains: dict[tuple[type, tuple[type, ...]], Any] = {}
        self.masks: dict[Any, Any] = {}
        self.validator_tables: dict[tuple[type, str], dict[str, Any]] = {}
        self.notify_events: dict[type, str] = {}
        self._pass_counter = 0

    def get_or_create(self, cache: dict, key: Hashable, factory: Callable[[], V]) -> V:
        """Return ``cache[key]``, building it with ``factory`` on first access.

        The factory runs with the registry lock held; if it raises, nothing
        is stored and the error propagates.
        """
        try:
            return cache[key]
        except KeyError:
            pass

        with self._lock:
            if key in cache:
                return cache[key]
            value = factory()
            cache[key] = value
            return value

    def next_pass_id(self) -> int:
        """Allocate a unique identifier for one synthesis pass."""
        with self._lock:
            self._pass_counter += 1
            return self._pass_counter

    # ── Typed accessors ──────────────────────────────────────────

    def woven_type(self, base: type, factory: Callable[[], type]) -> type:
        return self.get_or_create(self.generated_types, base, factory)

    def backing_field(self, pass_id: int, owner: str, factory: Callable[[], V]) -> V:
        return self.get_or_create(self.backing_fields, (pass_id, owner), factory)

    def interceptor_chain(
        self,
        woven: type,
        interceptors: tuple[type, ...],
        factory: Callable[[], V],
    ) -> V:
        return self.get_or_create(self.chains, (woven, interceptors), factory)

    def intercept_mask(self, member: Any, factory: Callable[[], V]) -> V:
        return self.get_or_create(self.masks, member, factory)

    def validator_table(
        self,
        woven: type,
        member_name: str,
        factory: Callable[[], dict[str, Any]],
    ) -> dict[str, Any]:
        return self.get_or_create(self.validator_tables, (woven, member_name), factory)

    def notify_event(self, owner: type, factory: Callable[[], str]) -> str:
        return self.get_or_create(self.notify_events, owner, factory)

    # ── Lifecycle ────────────────────────────────────────────────

    def is_woven(self, base: type) -> bool:
        return base in self.generated_types

    def stats(self) -> dict[str, int]:
        """Entry counts per cache."""
        with self._lock:
            return {
                "generated_types": len(self.generated_types),
                "backing_fields": len(self.backing_fields),
                "chains": len(self.chains),
                "masks": len(self.masks),
                "validator_tables": len(self.validator_tables),
                "notify_events": len(self.notify_events),
            }

    def clear(self) -> None:
        """Drop every cached entry (teardown, primarily for testing)."""
        with self._lock:
            self.generated_types.clear()
            self.backing_fields.clear()
            self.chains.clear()
            self.masks.clear()
            self.validator_tables.clear()
            self.notify_events.clear()
        logger.debug("weave_registry_cleared")


# ── Process default ─────────────────────────────────────────────────────

_default_registry: WeaveRegistry | None = None
_default_lock = threading.Lock()


def default_registry() -> WeaveRegistry:
    """Return the process-wide registry, creating it on first use."""
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            _default_registry = WeaveRegistry()
        return _default_registry


def reset_default_registry() -> None:
    """Tear down the process-wide registry (primarily for testing)."""
    global _default_registry
    with _default_lock:
        if _default_registry is not None:
            _default_registry.clear()
        _default_registry = None
