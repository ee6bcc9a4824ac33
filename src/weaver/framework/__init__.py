"""
Weaver framework: declaration model, type synthesis and interception.

- introspection: members, accessors and declared metadata of a class
- declarations: ``@weave`` passes, member policies, ``validate``
- emit: generated fields and type compilation
- strategies: DefaultStorage, WrapperStorage, LazyStorage, UnsupportedStub
- synthesis: the orchestrator behind ``create()``
- events: ``Event`` declarations and ``Delegate`` handlers
- interception: the call envelope and stock interceptors
"""

from weaver.framework.declarations import MemberPolicy, TypeDeclaration, Validate, validate, weave
from weaver.framework.emit import Field, TypeBuilder, declare_type, woven_base
from weaver.framework.events import Delegate, Event, EventHandle
from weaver.framework.interception import (
    CallState,
    Interception,
    InterceptContext,
    Interceptor,
    InterceptorChain,
    InterceptTypes,
    LogInterceptor,
    NotifyInterceptor,
    ValidatorInterceptor,
)
from weaver.framework.introspection import MemberInfo, MemberKind, Out, Ref, members_of
from weaver.framework.strategies import DefaultStorage, LazyStorage, Nullable, UnsupportedStub, WrapperStorage
from weaver.framework.synthesis import (
    SynthesisContext,
    Weaver,
    create,
    create_instance,
    default_weaver,
    reset_default_weaver,
    resolve_policy,
)

__all__ = [
    # Declarations
    "weave",
    "TypeDeclaration",
    "MemberPolicy",
    "Validate",
    "validate",
    # Strategies
    "DefaultStorage",
    "WrapperStorage",
    "LazyStorage",
    "UnsupportedStub",
    "Nullable",
    # Interception
    "Interception",
    "InterceptTypes",
    "InterceptContext",
    "CallState",
    "Interceptor",
    "InterceptorChain",
    "LogInterceptor",
    "NotifyInterceptor",
    "ValidatorInterceptor",
    # Events
    "Event",
    "EventHandle",
    "Delegate",
    # Introspection
    "MemberInfo",
    "MemberKind",
    "Ref",
    "Out",
    "members_of",
    # Emission
    "Field",
    "TypeBuilder",
    "declare_type",
    "woven_base",
    # Orchestration
    "SynthesisContext",
    "Weaver",
    "create",
    "create_instance",
    "default_weaver",
    "reset_default_weaver",
    "resolve_policy",
]
