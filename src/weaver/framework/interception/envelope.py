"""The ``Interception`` policy and the envelope it wraps around member bodies.

Every call of an intercepted member runs::

    Begin      push context; before_call          (if BEGIN)
    try:
        body
        End    record results; after_call         (if END)
    except:
        Catch  record fault; catch                (if CATCH); re-raise unchanged
    finally:
        Finally  finally_                         (if FINALLY); pop context

Hooks go to the interceptor chain shared by every instance of the woven type.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from weaver.core.context import CallToken, push_call
from weaver.core.errors import ConfigurationError
from weaver.core.logging import get_logger
from weaver.framework.declarations import MemberPolicy
from weaver.framework.emit import Field
from weaver.framework.interception.interceptors import Interceptor, InterceptorChain
from weaver.framework.interception.model import CallState, InterceptContext, InterceptTypes
from weaver.framework.introspection import MemberInfo, MemberKind, ParamMode, Ref
from weaver.framework.strategies import DefaultStorage

logger = get_logger(__name__)


def resolve_hooks(hooks: Any) -> InterceptTypes:
    """Normalize a hook mask given as flags, names or an int."""
    if isinstance(hooks, InterceptTypes):
        return hooks
    if isinstance(hooks, int) and not isinstance(hooks, bool):
        try:
            return InterceptTypes(hooks)
        except ValueError as exc:
            raise ConfigurationError(f"invalid intercept mask {hooks!r}") from exc
    if isinstance(hooks, str):
        hooks = [part for part in hooks.replace(",", "|").split("|") if part.strip()]
    if isinstance(hooks, Iterable):
        mask = InterceptTypes.NONE
        for hook in hooks:
            if isinstance(hook, InterceptTypes):
                mask |= hook
                continue
            try:
                mask |= InterceptTypes[str(hook).strip().upper()]
            except KeyError as exc:
                raise ConfigurationError(f"unknown intercept hook {hook!r}") from exc
        return mask
    raise ConfigurationError(f"cannot resolve intercept mask from {hooks!r}")


@dataclass(frozen=True, init=False)
class Interception(MemberPolicy):
    """Wrap a member in the interception envelope.

    Usage:
        @Interception(LogInterceptor, ValidatorInterceptor, hooks=InterceptTypes.BEGIN | InterceptTypes.END)
        def withdraw(self, amount: Decimal) -> Decimal: ...

    Args:
        *interceptors: Interceptor classes, instantiated once per woven type
        hooks: Hooks to invoke (``InterceptTypes``, names like ``"begin|end"``)
        order: Weaving pass this policy belongs to
    """

    interceptors: tuple[type[Interceptor], ...] = ()
    hooks: Any = InterceptTypes.ALL

    def __init__(self, *interceptors: type[Interceptor], hooks: Any = InterceptTypes.ALL, order: int = 0):
        object.__setattr__(self, "interceptors", tuple(interceptors))
        object.__setattr__(self, "hooks", hooks)
        object.__setattr__(self, "order", order)

    def interceptor_types(self) -> tuple[type[Interceptor], ...]:
        for interceptor in self.interceptors:
            if not (isinstance(interceptor, type) and issubclass(interceptor, Interceptor)):
                raise ConfigurationError(f"{interceptor!r} is not an Interceptor class")
        return self.interceptors

    def wrapped_body(self, context, member: MemberInfo) -> Callable[..., Any]:
        """The body the envelope runs: the member itself, or default storage."""
        if member.kind is MemberKind.CONSTRUCTOR or member.is_abstract:
            storage = DefaultStorage(order=self.order)
            return {
                MemberKind.METHOD: storage.implement_method,
                MemberKind.CONSTRUCTOR: storage.implement_constructor,
                MemberKind.GETTER: storage.implement_getter,
                MemberKind.SETTER: storage.implement_setter,
                MemberKind.ADDER: storage.implement_adder,
                MemberKind.REMOVER: storage.implement_remover,
            }[member.kind](context, member)
        return member.function

    def _envelope(self, context, member: MemberInfo) -> Callable[..., Any]:
        body = self.wrapped_body(context, member)
        interceptor_types = self.interceptor_types()
        registry = context.registry
        mask = registry.intercept_mask(member, lambda: resolve_hooks(self.hooks))

        chain = context.builder.add_field(
            context.field_name("chain", member.name), InterceptorChain, static=True, policy=self
        )
        context.enqueue(
            chain,
            lambda compiled: registry.interceptor_chain(
                compiled, interceptor_types, lambda: InterceptorChain.of(interceptor_types)
            ),
        )
        return InterceptionEnvelope(member, mask, chain, registry).wrap(body)

    implement_method = _envelope
    implement_constructor = _envelope
    implement_getter = _envelope
    implement_setter = _envelope
    implement_adder = _envelope
    implement_remover = _envelope


class InterceptionEnvelope:
    """Runs one intercepted member's calls through Begin/End/Catch/Finally."""

    def __init__(self, member: MemberInfo, mask: InterceptTypes, chain: Field, registry: Any):
        self.member = member
        self.mask = mask
        self.chain = chain
        self.registry = registry
        self.signature = member.signature

    def wrap(self, body: Callable[..., Any]) -> Callable[..., Any]:
        envelope = self

        def intercepted(self, *args, **kwargs):
            return envelope.invoke(body, self, args, kwargs)

        return intercepted

    def invoke(self, body: Callable[..., Any], instance: Any, args: tuple, kwargs: dict) -> Any:
        bound = self.signature.bind(instance, *args, **kwargs)
        bound.apply_defaults()

        chain = self.chain.get()
        context, token = self.begin(instance, self.in_ref_args(bound))
        try:
            if InterceptTypes.BEGIN in self.mask:
                chain.before_call(context)
            result = body(instance, *args, **kwargs)
            context.state = CallState.COMPLETING
            returned = instance if self.member.kind is MemberKind.CONSTRUCTOR else result
            self.end(chain, context, returned, self.ref_out_args(bound))
            return result
        except BaseException as exc:
            self.catch(chain, context, exc)
            raise
        finally:
            self.finish(chain, context, token)

    # ── Steps ────────────────────────────────────────────────────

    def begin(self, instance: Any, in_ref_args: dict[str, Any]) -> tuple[InterceptContext, CallToken]:
        context = InterceptContext(
            instance=instance,
            method=self.member,
            in_ref_args=in_ref_args,
            enabled_hooks=self.mask,
            reflected_type=self.chain.owner,
            registry=self.registry,
        )
        context.state = CallState.BEGIN
        return context, push_call(context)

    def end(
        self,
        chain: InterceptorChain,
        context: InterceptContext,
        return_value: Any,
        ref_out_args: dict[str, Any],
    ) -> None:
        context.return_value = return_value
        context.ref_out_args = ref_out_args
        context.state = CallState.END
        if InterceptTypes.END in self.mask:
            chain.after_call(context)

    def catch(self, chain: InterceptorChain, context: InterceptContext, exception: BaseException) -> None:
        context.state = CallState.FAULTING
        context.exception = exception
        context.state = CallState.CATCH
        if InterceptTypes.CATCH not in self.mask:
            return
        try:
            chain.catch(context)
        except Exception:
            # The original fault is re-raised by the caller
            logger.exception("intercept.catch_hook_failed", type=context.type_name, method=self.member.name)

    def finish(self, chain: InterceptorChain, context: InterceptContext, token: CallToken) -> None:
        context.state = CallState.FINALLY
        try:
            if InterceptTypes.FINALLY in self.mask:
                chain.finally_(context)
        finally:
            token.restore()
            context.state = CallState.CLOSED

    # ── Arguments ────────────────────────────────────────────────

    def in_ref_args(self, bound: inspect.BoundArguments) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for param in self.member.parameters:
            value = bound.arguments.get(param.name)
            if param.mode is ParamMode.OUT:
                value = None
            elif param.mode is ParamMode.REF and isinstance(value, Ref):
                value = value.value
            values[param.name] = value
        return values

    def ref_out_args(self, bound: inspect.BoundArguments) -> dict[str, Any]:
        return {
            param.name: bound.arguments[param.name].value
            for param in self.member.parameters
            if param.mode is not ParamMode.IN and isinstance(bound.arguments.get(param.name), Ref)
        }
