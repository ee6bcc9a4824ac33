"""Type synthesis orchestrator.

``create(base)`` weaves a declared base type into a concrete runtime type:

    1. Check the base is public and carries ``@weave`` declarations
    2. Run one pass per declaration, in ascending order; each pass resolves a
       policy for every member, lets it build the member body, compiles the
       result and hands it to the next pass as the new base
    3. Cache the final type so every later ``create(base)`` returns it

Policy resolution for a member in the pass with order ``n``:

    1. a policy declared on the member (or accessor function) with order ``n``
    2. for accessors, a policy declared on the property/event with order ``n``
    3. ``DefaultStorage(order=n)`` for abstract members and the constructor
    4. otherwise the member is inherited unchanged
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from weaver.core.errors import ConfigurationError, WeaveError
from weaver.core.logging import get_logger
from weaver.core.registry import WeaveRegistry, default_registry
from weaver.framework.declarations import MemberPolicy, TypeDeclaration
from weaver.framework.emit import Field, TypeBuilder, declare_type
from weaver.framework.introspection import (
    MemberInfo,
    MemberKind,
    abstract_static_members,
    member_policies,
    members_of,
    owner_policies,
    type_declarations,
)
from weaver.framework.strategies import DefaultStorage

logger = get_logger(__name__)


@dataclass(eq=False)
class SynthesisContext:
    """Mutable state of one weaving pass.

    ``initializers`` queues (static field, factory) pairs whose values can
    only be computed once the pass's type is compiled, e.g. interceptor
    chains that are keyed by the generated type.
    """

    builder: TypeBuilder
    base_type: type
    declaration: TypeDeclaration
    registry: WeaveRegistry
    pass_id: int
    initializers: list[tuple[Field, Callable[[type], Any]]] = field(default_factory=list)

    @property
    def order(self) -> int:
        return self.declaration.order

    @property
    def fields(self) -> list[Field]:
        return self.builder.fields

    def field_name(self, *parts: str) -> str:
        """Name for a generated field, unique to this pass."""
        return "_weave_" + "_".join(parts) + f"_{self.pass_id}"

    def backing_field(self, owner_name: str, factory: Callable[[], Field]) -> Field:
        return self.registry.backing_field(self.pass_id, owner_name, factory)

    def enqueue(self, static_field: Field, factory: Callable[[type], Any]) -> None:
        self.initializers.append((static_field, factory))

    def apply_initializers(self, compiled: type) -> None:
        for static_field, factory in self.initializers:
            static_field.set(None, factory(compiled))
        self.initializers.clear()


def _first_with_order(policies: list[Any], order: int) -> MemberPolicy | None:
    for policy in policies:
        if policy.order == order:
            return policy
    return None


def resolve_policy(cls: type, member: MemberInfo, order: int) -> MemberPolicy | None:
    """Pick the policy implementing ``member`` in the pass with ``order``."""
    policy = _first_with_order(member_policies(cls, member), order)
    if policy is not None:
        return policy
    if member.owner is not None:
        policy = _first_with_order(owner_policies(cls, member.owner), order)
        if policy is not None:
            return policy
    if member.is_abstract or member.kind is MemberKind.CONSTRUCTOR:
        return DefaultStorage(order=order)
    return None


def is_public(cls: type) -> bool:
    """A type is public when no segment of its qualified name is private."""
    segments = [part for part in cls.__qualname__.split(".") if part != "<locals>"]
    return not any(part.startswith("_") for part in segments)


class Weaver:
    """Weaves declared base types into concrete types, once per base."""

    def __init__(self, registry: WeaveRegistry | None = None):
        self.registry = registry if registry is not None else WeaveRegistry()

    def create(self, base: type) -> type:
        """Return the woven type for ``base``, synthesizing it on first use."""
        if isinstance(base, type) and self.registry.is_woven(base):
            return self.registry.generated_types[base]
        declarations = self._declarations(base)
        return self.registry.woven_type(base, lambda: self._weave(base, declarations))

    def create_instance(self, base: type, *args: Any, **kwargs: Any) -> Any:
        return self.create(base)(*args, **kwargs)

    def _declarations(self, base: type) -> list[TypeDeclaration]:
        if not isinstance(base, type):
            raise ConfigurationError(f"expected a class, got {type(base).__name__}")
        if not is_public(base):
            raise ConfigurationError(f"{base.__qualname__} is not publicly visible").with_context(
                base_type=base.__qualname__
            )
        declarations = sorted(type_declarations(base), key=lambda declaration: declaration.order)
        if not declarations:
            raise ConfigurationError(f"{base.__qualname__} has no @weave declarations").with_context(
                base_type=base.__qualname__
            )
        orders = [declaration.order for declaration in declarations]
        if len(set(orders)) != len(orders):
            raise ConfigurationError(f"{base.__qualname__} declares the same order twice: {orders}").with_context(
                base_type=base.__qualname__
            )
        _check_members(base, set(orders))
        return declarations

    def _weave(self, base: type, declarations: list[TypeDeclaration]) -> type:
        working = base
        try:
            for declaration in declarations:
                working = self._run_pass(base, working, declaration)
        except WeaveError as exc:
            logger.warning("weave.failed", base_type=base.__qualname__, **exc.to_dict())
            raise

        logger.info("weave.type_created", base_type=base.__qualname__, passes=len(declarations))
        return working

    def _run_pass(self, base: type, working: type, declaration: TypeDeclaration) -> type:
        context = SynthesisContext(
            builder=declare_type(working),
            base_type=working,
            declaration=declaration,
            registry=self.registry,
            pass_id=self.registry.next_pass_id(),
        )
        logger.debug("weave.pass_started", base_type=base.__qualname__, order=declaration.order)

        for member in members_of(working):
            policy = resolve_policy(working, member, declaration.order)
            if policy is None:
                continue
            try:
                body = policy.implement(context, member)
            except WeaveError as exc:
                _fill_context(exc, base_type=base.__qualname__, member=member.name,
                              order=declaration.order, policy=type(policy).__name__)
                raise
            context.builder.define(member, body)
            logger.debug(
                "weave.member_implemented",
                base_type=base.__qualname__,
                member=member.name,
                policy=type(policy).__name__,
                order=declaration.order,
            )

        compiled = context.builder.compile()
        context.apply_initializers(compiled)
        return compiled


def _check_members(base: type, orders: set[int]) -> None:
    """Reject members no pass can implement and policies no pass will run."""
    static = abstract_static_members(base)
    if static:
        raise ConfigurationError(
            f"{base.__qualname__} has abstract static or class methods that cannot be woven: {static}"
        ).with_context(base_type=base.__qualname__, member=static[0])

    for member in members_of(base):
        policies = member_policies(base, member)
        if member.owner is not None:
            policies += owner_policies(base, member.owner)
        for policy in policies:
            if policy.order not in orders:
                raise ConfigurationError(
                    f"{type(policy).__name__} on {base.__qualname__}.{member.name} has order {policy.order}, "
                    f"which matches no @weave declaration {sorted(orders)}"
                ).with_context(
                    base_type=base.__qualname__, member=member.name, order=policy.order, policy=type(policy).__name__
                )


def _fill_context(error: WeaveError, **values: Any) -> None:
    """Set context keys the raiser left empty."""
    missing = {key: value for key, value in values.items() if getattr(error.context, key) is None}
    error.with_context(**missing)


# ── Process default ─────────────────────────────────────────────────────

_default_weaver: Weaver | None = None
_default_lock = threading.Lock()


def default_weaver() -> Weaver:
    """Return the process-wide weaver bound to the default registry."""
    global _default_weaver
    with _default_lock:
        if _default_weaver is None:
            _default_weaver = Weaver(default_registry())
        return _default_weaver


def reset_default_weaver() -> None:
    global _default_weaver
    with _default_lock:
        _default_weaver = None


def create(base: type) -> type:
    """Return the woven type for ``base`` using the process-wide weaver."""
    return default_weaver().create(base)


def create_instance(base: type, *args: Any, **kwargs: Any) -> Any:
    """Weave ``base`` if needed and instantiate the result."""
    return default_weaver().create_instance(base, *args, **kwargs)
