"""Interception pipeline: the envelope policy, call context and interceptors."""

from weaver.framework.interception.envelope import Interception, InterceptionEnvelope, resolve_hooks
from weaver.framework.interception.interceptors import (
    Interceptor,
    InterceptorChain,
    LogInterceptor,
    NotifyInterceptor,
    ValidatorInterceptor,
    build_validator_table,
    property_name,
)
from weaver.framework.interception.model import CallState, InterceptContext, InterceptTypes

__all__ = [
    "Interception",
    "InterceptionEnvelope",
    "resolve_hooks",
    "InterceptTypes",
    "CallState",
    "InterceptContext",
    "Interceptor",
    "InterceptorChain",
    "LogInterceptor",
    "NotifyInterceptor",
    "ValidatorInterceptor",
    "build_validator_table",
    "property_name",
]
