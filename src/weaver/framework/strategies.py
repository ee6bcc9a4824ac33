"""Built-in member synthesis strategies.

``DefaultStorage``
    Plain backing storage for properties and events, zero-value bodies for
    methods and a forwarding constructor. The implicit strategy for abstract
    members and constructors that declare nothing.
``WrapperStorage``
    Stores a property inside an adapter object (``Nullable`` or any class with
    a ``value`` attribute) created by the constructor.
``LazyStorage``
    Builds a property's value on first read from fixed constructor arguments.
``UnsupportedStub``
    Members that raise ``NotImplementedError`` when used.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from weaver.core.errors import ConfigurationError
from weaver.framework.declarations import MemberPolicy
from weaver.framework.emit import Field
from weaver.framework.events import Delegate
from weaver.framework.introspection import MemberInfo, OwnerInfo, OwnerKind, ParamMode, Ref, unwrap_annotated, zero_value

if TYPE_CHECKING:
    from weaver.framework.synthesis import SynthesisContext

T = TypeVar("T")

_UNSET = object()


class Nullable(Generic[T]):
    """Adapter holding an optional value.

    Example:
        >>> box = Nullable[int]()
        >>> box.has_value
        False
        >>> box.value = 3
        >>> box.value
        3
    """

    def __init__(self, value: Any = _UNSET):
        self._value = value

    @property
    def has_value(self) -> bool:
        return self._value is not _UNSET

    @property
    def value(self) -> T | None:
        return None if self._value is _UNSET else self._value

    @value.setter
    def value(self, value: T | None) -> None:
        self._value = _UNSET if value is None else value

    def reset(self) -> None:
        self._value = _UNSET

    def __repr__(self) -> str:
        return f"Nullable({self.value!r})" if self.has_value else "Nullable()"


@dataclass(frozen=True)
class DefaultStorage(MemberPolicy):
    """Backing-field storage, zero-value methods and forwarding constructors."""

    def backing_field(self, context: SynthesisContext, member: MemberInfo) -> Field:
        """The pass's shared backing field for the member's property or event."""
        owner = member.owner
        generated = context.backing_field(owner.name, lambda: self.create_field(context, owner))
        if type(generated.policy) is not type(self):
            raise ConfigurationError(
                f"accessors of '{owner.name}' use conflicting storage policies "
                f"({type(generated.policy).__name__} and {type(self).__name__})"
            ).with_context(member=member.name, order=self.order)
        return generated

    def create_field(self, context: SynthesisContext, owner: OwnerInfo) -> Field:
        name = context.field_name(owner.name)
        if owner.kind is OwnerKind.EVENT:
            return context.builder.add_field(name, Delegate, initial=None, policy=self)
        return context.builder.add_field(name, owner.value_type, initial=zero_value(owner.value_type), policy=self)

    def implement_getter(self, context, member):
        storage = self.backing_field(context, member)

        def getter(self):
            return storage.get(self)

        return getter

    def implement_setter(self, context, member):
        storage = self.backing_field(context, member)

        def setter(self, value):
            storage.set(self, value)

        return setter

    def implement_adder(self, context, member):
        storage = self._event_storage(context, member)

        def adder(self, handler):
            storage.set(self, Delegate.combine(storage.get(self), handler))

        return adder

    def implement_remover(self, context, member):
        storage = self._event_storage(context, member)

        def remover(self, handler):
            storage.set(self, Delegate.remove(storage.get(self), handler))

        return remover

    def _event_storage(self, context: SynthesisContext, member: MemberInfo) -> Field:
        storage = self.backing_field(context, member)
        context.builder.set_invoker(member.owner, storage.get)
        return storage

    def implement_method(self, context, member):
        outputs = tuple(
            (param.name, zero_value(unwrap_annotated(param.value_type)))
            for param in member.parameters
            if param.mode is ParamMode.OUT
        )
        result = zero_value(unwrap_annotated(member.return_type))
        signature = member.signature

        def method(self, *args, **kwargs):
            if outputs:
                bound = signature.bind(self, *args, **kwargs)
                for name, value in outputs:
                    box = bound.arguments.get(name)
                    if isinstance(box, Ref):
                        box.value = value
            return result

        return method

    def implement_constructor(self, context, member):
        base_init = member.function
        # Wrapper adapters exist before the base constructor can touch them
        wrapped = tuple(f for f in context.builder.fields if isinstance(f.policy, WrapperStorage) and not f.static)

        def __init__(self, *args, **kwargs):
            for adapter_field in wrapped:
                adapter_field.set(self, adapter_field.value_type())
            base_init(self, *args, **kwargs)

        return __init__


@dataclass(frozen=True)
class WrapperStorage(DefaultStorage):
    """Property storage inside an adapter exposing a ``value`` attribute.

    Args:
        adapter: Adapter class; generic adapters are parameterized with the
            property's type (``Nullable`` becomes ``Nullable[int]``)
    """

    adapter: type = Nullable

    def create_field(self, context: SynthesisContext, owner: OwnerInfo) -> Field:
        adapter = self.adapter
        if getattr(adapter, "__parameters__", ()):
            adapter = adapter[owner.value_type]
        return context.builder.add_field(context.field_name(owner.name), adapter, initial=None, policy=self)

    def implement_getter(self, context, member):
        storage = self.backing_field(context, member)

        def getter(self):
            return storage.get(self).value

        return getter

    def implement_setter(self, context, member):
        storage = self.backing_field(context, member)

        def setter(self, value):
            storage.get(self).value = value

        return setter

    def implement_adder(self, context, member):
        raise self.unsupported(member)

    def implement_remover(self, context, member):
        raise self.unsupported(member)

    def implement_method(self, context, member):
        raise self.unsupported(member)

    def implement_constructor(self, context, member):
        raise self.unsupported(member)


@dataclass(frozen=True, init=False)
class LazyStorage(DefaultStorage):
    """Property built on first read as ``value_type(*args)``.

    The arguments are fixed at declaration time and kept in a static field of
    the generated type. Until assigned, every instance builds its own value
    once and returns that same object afterwards.
    """

    args: tuple[Any, ...] = ()

    def __init__(self, *args: Any, order: int = 0):
        object.__setattr__(self, "args", tuple(args))
        object.__setattr__(self, "order", order)

    def create_field(self, context: SynthesisContext, owner: OwnerInfo) -> Field:
        factory = unwrap_annotated(owner.value_type)
        if factory is Any or not isinstance(factory, type):
            raise ConfigurationError(f"LazyStorage needs a concrete property type for '{owner.name}', got {factory!r}")
        return context.builder.add_field(context.field_name(owner.name), factory, initial=None, policy=self)

    def implement_getter(self, context, member):
        storage = self.backing_field(context, member)
        factory = storage.value_type
        arguments = context.builder.add_field(
            context.field_name(member.owner.name, "args"), tuple, static=True, policy=self
        )
        declared = self.args
        context.enqueue(arguments, lambda compiled: declared)

        def getter(self):
            value = storage.get(self)
            if value is None:
                value = factory(*arguments.get())
                storage.set(self, value)
            return value

        return getter

    def implement_setter(self, context, member):
        raise self.unsupported(member)

    def implement_adder(self, context, member):
        raise self.unsupported(member)

    def implement_remover(self, context, member):
        raise self.unsupported(member)

    def implement_method(self, context, member):
        raise self.unsupported(member)

    def implement_constructor(self, context, member):
        raise self.unsupported(member)


@dataclass(frozen=True)
class UnsupportedStub(MemberPolicy):
    """Members that exist but raise ``NotImplementedError`` when called."""

    def _stub(self, member: MemberInfo) -> Callable[..., Any]:
        message = f"{member.declaring_type.__name__}.{member.name} is not implemented"

        def stub(self, *args, **kwargs):
            raise NotImplementedError(message)

        return stub

    def implement_method(self, context, member):
        return self._stub(member)

    def implement_constructor(self, context, member):
        return self._stub(member)

    def implement_getter(self, context, member):
        return self._stub(member)

    def implement_setter(self, context, member):
        return self._stub(member)

    def implement_adder(self, context, member):
        return self._stub(member)

    def implement_remover(self, context, member):
        return self._stub(member)
