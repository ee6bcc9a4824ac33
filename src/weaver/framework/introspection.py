"""Type introspection: members, accessors, parameters and declared metadata.

Walks a class and describes every member the weaver may (re)implement:
plain functions, the constructor, property getters/setters and event
adders/removers. Accessors keep a reference to their owning property or event
so policy resolution can fall back to the owner's declarations.

Declared metadata (policies, validators) is looked up through the whole MRO,
which lets a later weaving pass still find the policies a user put on the
original member after an earlier pass replaced it.
"""

from __future__ import annotations

import inspect
import types
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any, Generic, TypeVar, get_args, get_origin

from weaver.framework.events import Event

POLICIES_ATTR = "__weave_policies__"
VALIDATORS_ATTR = "__weave_validators__"
DECLARATIONS_ATTR = "__weave_declarations__"

# Metadata that never travels from a declared member to its generated override
NON_COPIED_ATTRS = frozenset({POLICIES_ATTR, VALIDATORS_ATTR, "__isabstractmethod__", "__wrapped__"})

T = TypeVar("T")

_ZERO_TYPES = (bool, int, float, complex, Decimal, Fraction)


class Ref(Generic[T]):
    """By-reference argument: the callee may read and replace ``value``."""

    __slots__ = ("value",)

    def __init__(self, value: Any = None):
        self.value = value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


class Out(Ref[T]):
    """Output-only argument: the callee sets ``value``; its input is ignored."""

    __slots__ = ()


class ParamMode(str, Enum):
    IN = "in"
    REF = "ref"
    OUT = "out"


class MemberKind(str, Enum):
    METHOD = "method"
    CONSTRUCTOR = "constructor"
    GETTER = "getter"
    SETTER = "setter"
    ADDER = "adder"
    REMOVER = "remover"

    @property
    def is_accessor(self) -> bool:
        return self in (MemberKind.GETTER, MemberKind.SETTER, MemberKind.ADDER, MemberKind.REMOVER)


class OwnerKind(str, Enum):
    PROPERTY = "property"
    EVENT = "event"


ACCESSOR_PREFIXES = {
    MemberKind.GETTER: "get_",
    MemberKind.SETTER: "set_",
    MemberKind.ADDER: "add_",
    MemberKind.REMOVER: "remove_",
}


@dataclass(frozen=True)
class ParameterInfo:
    """One parameter of a member, ``self`` excluded."""

    name: str
    kind: inspect._ParameterKind
    mode: ParamMode
    annotation: Any
    value_type: Any


@dataclass(frozen=True, eq=False)
class OwnerInfo:
    """The property or event that owns an accessor."""

    name: str
    kind: OwnerKind
    descriptor: Any
    value_type: Any


@dataclass(frozen=True, eq=False)
class MemberInfo:
    """A member of a type as seen by one weaving pass.

    ``function`` is the implementation currently visible on the type (``None``
    for an event accessor that was never given a body). Instances compare by
    identity, which makes them usable as cache keys.
    """

    name: str
    kind: MemberKind
    declaring_type: type
    function: Any
    owner: OwnerInfo | None
    is_abstract: bool
    signature: inspect.Signature
    parameters: tuple[ParameterInfo, ...]
    return_type: Any

    @property
    def has_return_value(self) -> bool:
        return self.return_type not in (None, type(None), inspect.Signature.empty)

    def __repr__(self) -> str:
        return f"MemberInfo({self.declaring_type.__name__}.{self.name}, {self.kind.value})"


# =============================================================================
# Type helpers
# =============================================================================


def is_value_type(tp: Any) -> bool:
    """True for types with a zero value (numbers, booleans, decimals)."""
    return isinstance(tp, type) and issubclass(tp, _ZERO_TYPES)


def zero_value(tp: Any) -> Any:
    """Default value of ``tp``: ``tp()`` for value types, ``None`` otherwise."""
    if is_value_type(tp):
        return tp()
    return None


def param_mode(annotation: Any) -> tuple[ParamMode, Any]:
    """Split a ``Ref[T]``/``Out[T]`` annotation into its mode and ``T``."""
    origin = get_origin(annotation) or annotation
    if isinstance(origin, type) and issubclass(origin, Ref):
        args = get_args(annotation)
        inner = args[0] if args else Any
        return (ParamMode.OUT if issubclass(origin, Out) else ParamMode.REF), inner
    return ParamMode.IN, annotation


# Failures that leave an annotation as its source string
_UNRESOLVED = (NameError, AttributeError, TypeError, SyntaxError)


def _resolve_annotation(annotation: Any, globalns: dict[str, Any], localns: dict[str, Any]) -> Any:
    if not isinstance(annotation, str):
        return annotation
    try:
        return eval(annotation, globalns, localns)
    except _UNRESOLVED:
        return annotation


def signature_of(func: Any, owner: type | None = None) -> inspect.Signature:
    """Signature with string annotations resolved one at a time.

    Names are looked up in the function's module globals, then in the
    namespaces along ``owner``'s MRO. An annotation that cannot be resolved
    stays a string without affecting the others.
    """
    signature = inspect.signature(func)
    globalns = getattr(inspect.unwrap(func), "__globals__", {})
    localns: dict[str, Any] = {}
    if owner is not None:
        for klass in reversed(owner.__mro__):
            localns.update((name, value) for name, value in vars(klass).items() if name not in globalns)
        localns.setdefault(owner.__name__, owner)

    parameters = [
        param.replace(annotation=_resolve_annotation(param.annotation, globalns, localns))
        for param in signature.parameters.values()
    ]
    return_annotation = _resolve_annotation(signature.return_annotation, globalns, localns)
    return signature.replace(parameters=parameters, return_annotation=return_annotation)


def parameters_of(signature: inspect.Signature, *, skip_self: bool = True) -> tuple[ParameterInfo, ...]:
    params = list(signature.parameters.values())
    if skip_self and params and params[0].kind in (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
    ):
        params = params[1:]

    result = []
    for param in params:
        annotation = param.annotation if param.annotation is not inspect.Parameter.empty else Any
        mode, value_type = param_mode(annotation)
        result.append(ParameterInfo(param.name, param.kind, mode, annotation, value_type))
    return tuple(result)


def unwrap_annotated(tp: Any) -> Any:
    """Strip ``Annotated[...]`` metadata, returning the bare type."""
    metadata = getattr(tp, "__metadata__", None)
    if metadata is not None:
        return get_args(tp)[0]
    return tp


def _accessor_signature(kind: MemberKind, value_type: Any) -> inspect.Signature:
    self_param = inspect.Parameter("self", inspect.Parameter.POSITIONAL_OR_KEYWORD)
    if kind is MemberKind.GETTER:
        return inspect.Signature([self_param], return_annotation=value_type)
    name = "value" if kind is MemberKind.SETTER else "handler"
    value_param = inspect.Parameter(name, inspect.Parameter.POSITIONAL_OR_KEYWORD, annotation=value_type)
    return inspect.Signature([self_param, value_param], return_annotation=None)


def _return_type(signature: inspect.Signature) -> Any:
    annotation = signature.return_annotation
    if annotation is inspect.Signature.empty:
        return None
    return annotation


def _is_abstract(func: Any) -> bool:
    return func is None or bool(getattr(func, "__isabstractmethod__", False))


# =============================================================================
# Member enumeration
# =============================================================================


def property_value_type(prop: property, owner: type | None = None) -> Any:
    if prop.fget is not None:
        annotation = signature_of(prop.fget, owner).return_annotation
        if annotation is not inspect.Signature.empty:
            return unwrap_annotated(annotation)
    if prop.fset is not None:
        params = parameters_of(signature_of(prop.fset, owner))
        if params and params[0].annotation is not Any:
            return unwrap_annotated(params[0].annotation)
    return Any


def _method_member(cls: type, name: str, func: Any, kind: MemberKind) -> MemberInfo:
    signature = signature_of(func, cls)
    return MemberInfo(
        name=name,
        kind=kind,
        declaring_type=cls,
        function=func,
        owner=None,
        is_abstract=kind is not MemberKind.CONSTRUCTOR and _is_abstract(func),
        signature=signature,
        parameters=parameters_of(signature),
        return_type=_return_type(signature),
    )


def _accessor_member(cls: type, owner: OwnerInfo, kind: MemberKind, func: Any) -> MemberInfo:
    if func is not None:
        signature = signature_of(func, cls)
    else:
        signature = _accessor_signature(kind, owner.value_type)
    return MemberInfo(
        name=ACCESSOR_PREFIXES[kind] + owner.name,
        kind=kind,
        declaring_type=cls,
        function=func,
        owner=owner,
        is_abstract=_is_abstract(func),
        signature=signature,
        parameters=parameters_of(signature),
        return_type=(_return_type(signature) or owner.value_type) if kind is MemberKind.GETTER else None,
    )


def _is_candidate_name(name: str) -> bool:
    if name.startswith("__") and name.endswith("__"):
        return False
    return not name.startswith("_weave")


def _candidate_names(cls: type) -> list[str]:
    names: dict[str, None] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name in klass.__dict__:
            if _is_candidate_name(name):
                names.setdefault(name, None)
    return list(names)


def members_of(cls: type) -> list[MemberInfo]:
    """Enumerate the overridable members of ``cls``.

    Order is deterministic: names in base-first definition order, each bound
    to its most-derived definition, with the constructor last.
    """
    members: list[MemberInfo] = []
    for name in _candidate_names(cls):
        attr = inspect.getattr_static(cls, name)
        if isinstance(attr, property):
            owner = OwnerInfo(name, OwnerKind.PROPERTY, attr, property_value_type(attr, cls))
            if attr.fget is not None:
                members.append(_accessor_member(cls, owner, MemberKind.GETTER, attr.fget))
            if attr.fset is not None:
                members.append(_accessor_member(cls, owner, MemberKind.SETTER, attr.fset))
        elif isinstance(attr, Event):
            owner = OwnerInfo(name, OwnerKind.EVENT, attr, attr.handler_type)
            members.append(_accessor_member(cls, owner, MemberKind.ADDER, attr.adder))
            members.append(_accessor_member(cls, owner, MemberKind.REMOVER, attr.remover))
        elif isinstance(attr, types.FunctionType):
            members.append(_method_member(cls, name, attr, MemberKind.METHOD))

    members.append(_method_member(cls, "__init__", cls.__init__, MemberKind.CONSTRUCTOR))
    return members


def find_member(cls: type, name: str) -> MemberInfo:
    """Look up one member by its method/accessor name (``get_balance``, ``withdraw``)."""
    for member in members_of(cls):
        if member.name == name:
            return member
    raise KeyError(f"{cls.__name__} has no member '{name}'")


def abstract_static_members(cls: type) -> list[str]:
    """Abstract static and class methods, which no policy can implement."""
    names = []
    for name in _candidate_names(cls):
        attr = inspect.getattr_static(cls, name)
        if isinstance(attr, (staticmethod, classmethod)) and getattr(attr, "__isabstractmethod__", False):
            names.append(name)
    return names


# =============================================================================
# Declared metadata lookup
# =============================================================================


def _accessor_function(attr: Any, kind: MemberKind) -> Any:
    if isinstance(attr, property):
        return {MemberKind.GETTER: attr.fget, MemberKind.SETTER: attr.fset}.get(kind)
    if isinstance(attr, Event):
        return {MemberKind.ADDER: attr.adder, MemberKind.REMOVER: attr.remover}.get(kind)
    return None


def _declared_sources(cls: type, member: MemberInfo) -> list[Any]:
    """Every definition of ``member`` along the MRO, most-derived first."""
    sources = []
    lookup = member.owner.name if member.owner is not None else member.name
    for klass in cls.__mro__:
        attr = klass.__dict__.get(lookup)
        if attr is None:
            continue
        if member.owner is not None:
            func = _accessor_function(attr, member.kind)
            if func is not None:
                sources.append(func)
        else:
            sources.append(attr)
    return sources


def _owner_sources(cls: type, owner: OwnerInfo) -> list[Any]:
    return [klass.__dict__[owner.name] for klass in cls.__mro__ if owner.name in klass.__dict__]


def member_policies(cls: type, member: MemberInfo) -> list[Any]:
    """Policies declared on the member itself (or its accessor function)."""
    policies: list[Any] = []
    for source in _declared_sources(cls, member):
        policies.extend(getattr(source, POLICIES_ATTR, ()))
    return policies


def owner_policies(cls: type, owner: OwnerInfo) -> list[Any]:
    """Policies declared on a property or event."""
    policies: list[Any] = []
    for source in _owner_sources(cls, owner):
        policies.extend(getattr(source, POLICIES_ATTR, ()))
    return policies


def member_validators(cls: type, member: MemberInfo) -> list[Any]:
    """Validator declarations on the member and, for accessors, on its owner."""
    validators: list[Any] = []
    for source in _declared_sources(cls, member):
        validators.extend(getattr(source, VALIDATORS_ATTR, ()))
    if member.owner is not None:
        for source in _owner_sources(cls, member.owner):
            validators.extend(getattr(source, VALIDATORS_ATTR, ()))
    return validators


def type_declarations(cls: type) -> tuple[Any, ...]:
    """Type-level declarations attached directly to ``cls`` (not inherited)."""
    return tuple(cls.__dict__.get(DECLARATIONS_ATTR, ()))
