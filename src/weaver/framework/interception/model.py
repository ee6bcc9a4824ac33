"""Interception data model: hook masks, call states and the per-call context."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, Flag, auto
from typing import Any

from weaver.framework.introspection import MemberInfo


class InterceptTypes(Flag):
    """Which interceptor hooks an intercepted member invokes."""

    NONE = 0
    BEGIN = auto()
    END = auto()
    CATCH = auto()
    FINALLY = auto()
    ALL = BEGIN | END | CATCH | FINALLY


class CallState(str, Enum):
    """Lifecycle of one intercepted call.

    ``IDLE → BEGIN → COMPLETING → END → FINALLY → CLOSED`` on success,
    ``IDLE → BEGIN → FAULTING → CATCH → FINALLY → CLOSED`` on failure.
    """

    IDLE = "idle"
    BEGIN = "begin"
    COMPLETING = "completing"
    END = "end"
    FAULTING = "faulting"
    CATCH = "catch"
    FINALLY = "finally"
    CLOSED = "closed"


@dataclass(eq=False)
class InterceptContext:
    """State of one in-flight intercepted call.

    Attributes:
        instance: The object the member was called on (borrowed for the call)
        method: The intercepted member
        in_ref_args: Inputs by parameter name; output parameters hold ``None``
        enabled_hooks: Resolved hook mask of the member
        reflected_type: The woven type that owns the interceptor chain
        registry: Registry holding the shared caches of that type
        ref_out_args: Final values of by-ref/output parameters, set at End
        return_value: The body's result, set at End (the instance for constructors)
        exception: The fault, set at Catch
    """

    instance: Any
    method: MemberInfo
    in_ref_args: dict[str, Any]
    enabled_hooks: InterceptTypes
    reflected_type: type
    registry: Any
    ref_out_args: dict[str, Any] | None = None
    return_value: Any = None
    exception: BaseException | None = None
    state: CallState = CallState.IDLE
    items: dict[str, Any] = field(default_factory=dict)

    @property
    def type_name(self) -> str:
        return self.reflected_type.__name__

    def __repr__(self) -> str:
        return f"InterceptContext({self.type_name}.{self.method.name}, state={self.state.value})"
