"""Interceptor contract, chains and the stock cross-cutting interceptors.

An interceptor observes intercepted calls through four hooks, each receiving
the call's :class:`InterceptContext`::

    before_call  - inputs known, body not yet run        (BEGIN)
    after_call   - body returned normally                 (END)
    catch        - body or an earlier hook raised         (CATCH)
    finally_     - always, exactly once per call          (FINALLY)

Interceptors are instantiated once per woven type and shared by every call,
so they must keep per-call state on the context (``context.items``), not on
``self``.
"""

from __future__ import annotations

import inspect
import time
from collections.abc import Iterable
from typing import Annotated, Any, get_args

import pydantic
from pydantic import ConfigDict, TypeAdapter

from weaver.core.errors import ConfigurationError, ValidationError, WeaveError
from weaver.core.logging import get_logger
from weaver.core.settings import get_settings
from weaver.framework.declarations import RETURN_KEY
from weaver.framework.events import Event
from weaver.framework.interception.model import InterceptContext
from weaver.framework.introspection import (
    ACCESSOR_PREFIXES,
    MemberInfo,
    MemberKind,
    ParamMode,
    member_validators,
    unwrap_annotated,
)


class Interceptor:
    """Base interceptor; every hook is a no-op."""

    def before_call(self, context: InterceptContext) -> None:
        pass

    def after_call(self, context: InterceptContext) -> None:
        pass

    def catch(self, context: InterceptContext) -> None:
        pass

    def finally_(self, context: InterceptContext) -> None:
        pass


class InterceptorChain(Interceptor):
    """Broadcasts every hook to its interceptors in list order."""

    def __init__(self, interceptors: Iterable[Interceptor] = ()):
        self.interceptors: tuple[Interceptor, ...] = tuple(interceptors)

    @classmethod
    def of(cls, interceptor_types: Iterable[type[Interceptor]]) -> InterceptorChain:
        return cls(interceptor_type() for interceptor_type in interceptor_types)

    def before_call(self, context: InterceptContext) -> None:
        for interceptor in self.interceptors:
            interceptor.before_call(context)

    def after_call(self, context: InterceptContext) -> None:
        for interceptor in self.interceptors:
            interceptor.after_call(context)

    def catch(self, context: InterceptContext) -> None:
        for interceptor in self.interceptors:
            interceptor.catch(context)

    def finally_(self, context: InterceptContext) -> None:
        for interceptor in self.interceptors:
            interceptor.finally_(context)

    def __len__(self) -> int:
        return len(self.interceptors)

    def __repr__(self) -> str:
        names = ", ".join(type(interceptor).__name__ for interceptor in self.interceptors)
        return f"InterceptorChain([{names}])"


# =============================================================================
# Logging
# =============================================================================


class LogInterceptor(Interceptor):
    """Logs entry, normal exit and faults of intercepted calls.

    Events: ``intercept.begin``, ``intercept.end`` (with ``duration_ms``) and
    ``intercept.catch``, emitted at ``WEAVER_INTERCEPT_LOG_LEVEL``.
    """

    def __init__(self, level: str | None = None):
        self.logger = get_logger("weaver.intercept")
        self.level = (level or get_settings().intercept_log_level).lower()

    def _log(self, event: str, context: InterceptContext, **fields: Any) -> None:
        log = getattr(self.logger, self.level)
        log(event, type=context.type_name, method=context.method.name, **fields)

    def before_call(self, context: InterceptContext) -> None:
        context.items["log.started"] = time.perf_counter()
        self._log("intercept.begin", context, in_ref_args=dict(context.in_ref_args))

    def after_call(self, context: InterceptContext) -> None:
        fields: dict[str, Any] = {
            "return_value": context.return_value,
            "ref_out_args": dict(context.ref_out_args or {}),
        }
        started = context.items.get("log.started")
        if started is not None:
            fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 3)
        self._log("intercept.end", context, **fields)

    def catch(self, context: InterceptContext) -> None:
        fields: dict[str, Any] = {"exception": repr(context.exception)}
        if isinstance(context.exception, WeaveError):
            fields["error"] = context.exception.to_dict()
        self._log("intercept.catch", context, **fields)


# =============================================================================
# Change notification
# =============================================================================


def property_name(member: MemberInfo) -> str:
    """``set_balance`` → ``balance``; plain methods keep their name."""
    if member.owner is not None:
        return member.owner.name
    for prefix in ACCESSOR_PREFIXES.values():
        if member.name.startswith(prefix):
            return member.name[len(prefix) :]
    return member.name


def _notify_event_name(cls: type) -> str:
    name = get_settings().notify_event_name
    if not isinstance(inspect.getattr_static(cls, name, None), Event):
        raise ConfigurationError(
            f"{cls.__name__} has no '{name}' event to notify changes on"
        ).with_context(base_type=cls.__qualname__)
    return name


class NotifyInterceptor(Interceptor):
    """Fires the type's change-notification event after each call.

    Handlers receive ``(instance, property_name)``.
    """

    def after_call(self, context: InterceptContext) -> None:
        owner = type(context.instance)
        event_name = context.registry.notify_event(owner, lambda: _notify_event_name(owner))
        getattr(context.instance, event_name).fire(context.instance, property_name(context.method))


# =============================================================================
# Validation
# =============================================================================

_ADAPTER_CONFIG = ConfigDict(arbitrary_types_allowed=True)


def _split_annotated(tp: Any) -> tuple[Any, list[Any]]:
    if getattr(tp, "__metadata__", None) is not None:
        args = get_args(tp)
        return args[0], list(args[1:])
    return tp, []


def _value_key(member: MemberInfo) -> str:
    """Key an undirected validator applies to."""
    if member.kind in (MemberKind.SETTER, MemberKind.ADDER, MemberKind.REMOVER) and member.parameters:
        return member.parameters[0].name
    return RETURN_KEY


def build_validator_table(cls: type, member: MemberInfo) -> dict[str, TypeAdapter]:
    """Map parameter names (and ``"return"``) of ``member`` to TypeAdapters."""
    types: dict[str, Any] = {}
    constraints: dict[str, list[Any]] = {}
    owner_type = member.owner.value_type if member.owner is not None else Any

    for param in member.parameters:
        base, metadata = _split_annotated(param.value_type)
        types[param.name] = owner_type if base is Any else base
        constraints[param.name] = metadata

    if member.return_type is not None:
        base, metadata = _split_annotated(member.return_type)
        types[RETURN_KEY] = owner_type if base is Any else base
        constraints[RETURN_KEY] = metadata

    for declaration in member_validators(cls, member):
        key = declaration.param or _value_key(member)
        if key not in types:
            if key != RETURN_KEY:
                raise ConfigurationError(
                    f"validator targets unknown parameter '{key}' of {member.name}"
                ).with_context(base_type=cls.__qualname__, member=member.name)
            types[key] = unwrap_annotated(owner_type)
            constraints[key] = []
        constraints[key].extend(declaration.constraints)

    return {
        key: TypeAdapter(Annotated[(types[key], *metadata)], config=_ADAPTER_CONFIG)
        for key, metadata in constraints.items()
        if metadata
    }


class ValidatorInterceptor(Interceptor):
    """Rejects inputs, outputs and return values that break declared constraints.

    Inputs are checked before the body runs, so a rejected call has no side
    effects. Constraints come from ``Annotated[...]`` annotations and
    ``validate(...)`` declarations.
    """

    def _table(self, context: InterceptContext) -> dict[str, TypeAdapter]:
        return context.registry.validator_table(
            context.reflected_type,
            context.method.name,
            lambda: build_validator_table(context.reflected_type, context.method),
        )

    def before_call(self, context: InterceptContext) -> None:
        table = self._table(context)
        modes = {param.name: param.mode for param in context.method.parameters}
        for name, value in context.in_ref_args.items():
            if modes.get(name) is ParamMode.OUT or name not in table:
                continue
            self._check(context, table[name], name, value)

    def after_call(self, context: InterceptContext) -> None:
        table = self._table(context)
        for name, value in (context.ref_out_args or {}).items():
            if name in table:
                self._check(context, table[name], name, value)
        if RETURN_KEY in table and context.method.kind is not MemberKind.CONSTRUCTOR:
            if get_settings().validate_return_values:
                self._check(context, table[RETURN_KEY], RETURN_KEY, context.return_value)

    def _check(self, context: InterceptContext, adapter: TypeAdapter, name: str, value: Any) -> None:
        try:
            adapter.validate_python(value)
        except pydantic.ValidationError as exc:
            error = exc.errors()[0]
            raise ValidationError(
                f"{context.type_name}.{context.method.name}: '{name}' {error['msg']}",
                field=name,
                value=value,
                constraint=error["type"],
                cause=exc,
            ).with_context(base_type=context.type_name, member=context.method.name) from exc
