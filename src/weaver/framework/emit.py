"""Runtime type emission: fields, generated members and type compilation.

A :class:`TypeBuilder` collects the output of one weaving pass (backing
fields, method bodies, property and event accessors) and compiles it into a
subclass of the pass's base type with ``types.new_class``. The generated type
keeps the base's name, module, qualified name and generic parameters, so it
reads exactly like the type the user declared.
"""

from __future__ import annotations

import inspect
import types
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from weaver.framework.events import Event
from weaver.framework.introspection import DECLARATIONS_ATTR, MemberInfo, MemberKind, OwnerInfo, OwnerKind

BASE_ATTR = "__weave_base__"


@dataclass(eq=False)
class Field:
    """A generated storage slot.

    Instance fields live in the instance ``__dict__``; static fields are class
    attributes of the compiled type (``owner``), shared by every instance.
    """

    name: str
    value_type: Any
    initial: Any = None
    static: bool = False
    policy: Any = None
    owner: type | None = None

    def get(self, instance: Any = None) -> Any:
        if self.static:
            return getattr(self._compiled_owner(), self.name)
        return instance.__dict__.get(self.name, self.initial)

    def set(self, instance: Any, value: Any) -> None:
        if self.static:
            setattr(self._compiled_owner(), self.name, value)
        else:
            instance.__dict__[self.name] = value

    def _compiled_owner(self) -> type:
        if self.owner is None:
            raise RuntimeError(f"static field '{self.name}' used before its type was compiled")
        return self.owner


class TypeBuilder:
    """Accumulates one pass's generated members and compiles the subtype."""

    def __init__(self, base: type):
        self.base = base
        self.fields: list[Field] = []
        self._methods: dict[str, Callable[..., Any]] = {}
        self._owners: dict[str, OwnerInfo] = {}
        self._accessors: dict[str, dict[MemberKind, Callable[..., Any]]] = {}
        self._invokers: dict[str, Callable[[Any], Any]] = {}
        self.compiled: type | None = None

    # ── Members ──────────────────────────────────────────────────

    def add_field(
        self,
        name: str,
        value_type: Any,
        *,
        initial: Any = None,
        static: bool = False,
        policy: Any = None,
    ) -> Field:
        if any(existing.name == name for existing in self.fields):
            raise ValueError(f"duplicate field '{name}' on {self.base.__name__}")
        new_field = Field(name, value_type, initial=initial, static=static, policy=policy)
        self.fields.append(new_field)
        return new_field

    def add_method(self, name: str, body: Callable[..., Any]) -> None:
        self._methods[name] = body

    def add_constructor(self, body: Callable[..., Any]) -> None:
        self._methods["__init__"] = body

    def add_accessor(self, owner: OwnerInfo, kind: MemberKind, body: Callable[..., Any]) -> None:
        self._owners[owner.name] = owner
        self._accessors.setdefault(owner.name, {})[kind] = body

    def set_invoker(self, owner: OwnerInfo, invoker: Callable[[Any], Any]) -> None:
        """Register how ``fire()`` reads the stored delegate of an event."""
        self._owners[owner.name] = owner
        self._accessors.setdefault(owner.name, {})
        self._invokers[owner.name] = invoker

    def define(self, member: MemberInfo, body: Callable[..., Any]) -> None:
        """Install ``body`` as the new implementation of ``member``."""
        if member.kind.is_accessor:
            self.add_accessor(member.owner, member.kind, body)
        elif member.kind is MemberKind.CONSTRUCTOR:
            self.add_constructor(body)
        else:
            self.add_method(member.name, body)

    # ── Compilation ──────────────────────────────────────────────

    def compile(self) -> type:
        if self.compiled is not None:
            return self.compiled

        base = self.base
        parameters = tuple(getattr(base, "__parameters__", ()))
        bases = (base[parameters],) if parameters else (base,)

        def exec_body(namespace: dict[str, Any]) -> None:
            namespace["__module__"] = base.__module__
            namespace["__qualname__"] = base.__qualname__
            namespace["__doc__"] = base.__doc__
            namespace[DECLARATIONS_ATTR] = ()
            namespace[BASE_ATTR] = getattr(base, BASE_ATTR, base)
            for static_field in self.fields:
                if static_field.static:
                    namespace[static_field.name] = static_field.initial
            namespace.update(self._methods)
            for name, accessors in self._accessors.items():
                namespace[name] = self._compose_owner(self._owners[name], accessors)

        compiled = types.new_class(base.__name__, bases, exec_body=exec_body)
        for generated in self.fields:
            generated.owner = compiled
        self.compiled = compiled
        return compiled

    def _compose_owner(self, owner: OwnerInfo, accessors: dict[MemberKind, Callable[..., Any]]) -> Any:
        """Merge generated accessors with the ones inherited from the base."""
        inherited = inspect.getattr_static(self.base, owner.name, None)

        if owner.kind is OwnerKind.PROPERTY:
            fget = accessors.get(MemberKind.GETTER, getattr(inherited, "fget", None))
            fset = accessors.get(MemberKind.SETTER, getattr(inherited, "fset", None))
            fdel = getattr(inherited, "fdel", None)
            return property(fget, fset, fdel, getattr(inherited, "__doc__", None))

        return Event(
            getattr(inherited, "handler_type", owner.value_type),
            adder=accessors.get(MemberKind.ADDER, getattr(inherited, "adder", None)),
            remover=accessors.get(MemberKind.REMOVER, getattr(inherited, "remover", None)),
            invoker=self._invokers.get(owner.name, getattr(inherited, "invoker", None)),
            doc=getattr(inherited, "__doc__", None),
        )


def declare_type(base: type) -> TypeBuilder:
    """Start a new generated subtype of ``base``."""
    return TypeBuilder(base)


def woven_base(cls: type) -> type:
    """The user-declared type a generated type was woven from."""
    return getattr(cls, BASE_ATTR, cls)
