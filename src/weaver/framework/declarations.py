"""Declaration model: ordered type-level declarations and member policies.

A woven type is marked with one or more :class:`TypeDeclaration` decorators
(``@weave()``); each one is a weaving pass, run in ascending ``order``. Members
carry :class:`MemberPolicy` decorators saying how the pass with the same
``order`` implements them::

    @weave()
    @weave(order=1)
    class Account(abc.ABC):
        @DefaultStorage()
        @property
        @abc.abstractmethod
        def balance(self) -> Decimal: ...

        @Interception(LogInterceptor, order=1)
        def withdraw(self, amount: Decimal) -> Decimal: ...

Policies are immutable and may be attached to functions, properties (the
policy then applies to both accessors unless an accessor declares its own) and
:class:`~weaver.framework.events.Event` declarations.
"""

from __future__ import annotations

import types
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from weaver.core.errors import ConfigurationError, UnsupportedOperationError
from weaver.framework.events import Event
from weaver.framework.introspection import (
    DECLARATIONS_ATTR,
    NON_COPIED_ATTRS,
    POLICIES_ATTR,
    VALIDATORS_ATTR,
    MemberInfo,
    MemberKind,
)

if TYPE_CHECKING:
    from weaver.framework.synthesis import SynthesisContext


class DeclaredProperty(property):
    """A ``property`` that can carry policy and validator declarations.

    Declarations survive ``.getter``/``.setter``/``.deleter`` copies, so a
    policy may decorate either the first or the last definition.
    """

    def _carry(self, prop: property) -> property:
        for key, value in self.__dict__.items():
            if key != "__doc__":
                prop.__dict__[key] = value
        return prop

    def getter(self, fget):
        return self._carry(super().getter(fget))

    def setter(self, fset):
        return self._carry(super().setter(fset))

    def deleter(self, fdel):
        return self._carry(super().deleter(fdel))


def _attach(target: Any, attr: str, item: Any) -> Any:
    """Attach ``item`` to ``target``'s declaration tuple named ``attr``."""
    if isinstance(target, (staticmethod, classmethod)):
        raise ConfigurationError(f"{type(item).__name__} cannot decorate a {type(target).__name__}")
    if isinstance(target, property) and not isinstance(target, DeclaredProperty):
        target = DeclaredProperty(target.fget, target.fset, target.fdel, target.__doc__)
    elif not isinstance(target, (types.FunctionType, DeclaredProperty, Event)):
        raise ConfigurationError(
            f"{type(item).__name__} can only decorate functions, properties and events, "
            f"got {type(target).__name__}"
        )

    existing = tuple(getattr(target, attr, ()))
    setattr(target, attr, (item,) + existing)
    return target


# =============================================================================
# Type-level declarations
# =============================================================================


@dataclass(frozen=True)
class TypeDeclaration:
    """One weaving pass over the decorated type.

    Usage:
        @weave()
        @weave(order=1)
        class Quote: ...
    """

    order: int = 0

    def __call__(self, cls: type) -> type:
        if not isinstance(cls, type):
            raise ConfigurationError(f"@weave can only decorate classes, got {type(cls).__name__}")
        existing = tuple(cls.__dict__.get(DECLARATIONS_ATTR, ()))
        setattr(cls, DECLARATIONS_ATTR, existing + (self,))
        return cls


weave = TypeDeclaration


# =============================================================================
# Member-level policies
# =============================================================================


@dataclass(frozen=True)
class MemberPolicy:
    """Base class of every member synthesis strategy.

    Subclasses override the ``implement_<kind>`` hooks for the member kinds
    they support; everything else raises ``UnsupportedOperationError``.
    Each hook returns the body of the generated member; :meth:`implement`
    then copies the original member's metadata onto it.
    """

    order: int = field(default=0, kw_only=True)

    def __call__(self, target: Any) -> Any:
        for policy in getattr(target, POLICIES_ATTR, ()):
            if policy.order == self.order:
                raise ConfigurationError(
                    f"{type(policy).__name__} and {type(self).__name__} share order {self.order} "
                    f"on the same member"
                )
        return _attach(target, POLICIES_ATTR, self)

    def implement(self, context: SynthesisContext, member: MemberInfo) -> Callable[..., Any]:
        """Produce the body of ``member`` for the pass described by ``context``."""
        builders = {
            MemberKind.METHOD: self.implement_method,
            MemberKind.CONSTRUCTOR: self.implement_constructor,
            MemberKind.GETTER: self.implement_getter,
            MemberKind.SETTER: self.implement_setter,
            MemberKind.ADDER: self.implement_adder,
            MemberKind.REMOVER: self.implement_remover,
        }
        body = builders[member.kind](context, member)
        copy_member_metadata(body, member)
        return body

    def implement_method(self, context: SynthesisContext, member: MemberInfo) -> Callable[..., Any]:
        raise self.unsupported(member)

    def implement_constructor(self, context: SynthesisContext, member: MemberInfo) -> Callable[..., Any]:
        raise self.unsupported(member)

    def implement_getter(self, context: SynthesisContext, member: MemberInfo) -> Callable[..., Any]:
        raise self.unsupported(member)

    def implement_setter(self, context: SynthesisContext, member: MemberInfo) -> Callable[..., Any]:
        raise self.unsupported(member)

    def implement_adder(self, context: SynthesisContext, member: MemberInfo) -> Callable[..., Any]:
        raise self.unsupported(member)

    def implement_remover(self, context: SynthesisContext, member: MemberInfo) -> Callable[..., Any]:
        raise self.unsupported(member)

    def unsupported(self, member: MemberInfo) -> UnsupportedOperationError:
        return UnsupportedOperationError(
            f"{type(self).__name__} cannot implement {member.kind.value} '{member.name}'"
        ).with_context(member=member.name, policy=type(self).__name__, order=self.order)


def copy_member_metadata(body: Callable[..., Any], member: MemberInfo) -> None:
    """Copy the declared member's metadata (minus declarations) onto ``body``."""
    source = member.function
    name = getattr(source, "__name__", None) or member.name
    body.__name__ = name
    body.__qualname__ = f"{member.declaring_type.__qualname__}.{name}"
    body.__module__ = getattr(source, "__module__", None) or member.declaring_type.__module__
    body.__doc__ = getattr(source, "__doc__", None)

    for key, value in getattr(source, "__dict__", {}).items():
        if key not in NON_COPIED_ATTRS:
            body.__dict__[key] = value
    body.__signature__ = member.signature


# =============================================================================
# Validator declarations
# =============================================================================

RETURN_KEY = "return"


@dataclass(frozen=True)
class Validate:
    """Constraints for one parameter, the accessor value or the return value.

    ``constraints`` are pydantic/annotated-types metadata (``Ge(0)``,
    ``MaxLen(10)``, ``AfterValidator(fn)`` ...). ``param=None`` targets the
    accessor value when declared on a property or event, and the return value
    when declared on a method.
    """

    constraints: tuple[Any, ...]
    param: str | None = None


def validate(*constraints: Any, param: str | None = None) -> Callable[[Any], Any]:
    """Declare validator constraints consumed by ``ValidatorInterceptor``."""
    if not constraints:
        raise ConfigurationError("validate() needs at least one constraint")
    declaration = Validate(tuple(constraints), param)

    def decorator(target: Any) -> Any:
        return _attach(target, VALIDATORS_ATTR, declaration)

    return decorator
