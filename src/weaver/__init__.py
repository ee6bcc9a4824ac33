"""
Weaver - declarative type weaving and method interception.

Declare what a type's members should do, let ``create()`` synthesize the type:

    import abc
    from decimal import Decimal
    from weaver import DefaultStorage, Interception, LogInterceptor, create, weave

    @weave()
    class Account(abc.ABC):
        @property
        @abc.abstractmethod
        def balance(self) -> Decimal: ...

        @balance.setter
        @abc.abstractmethod
        def balance(self, value: Decimal) -> None: ...

        @Interception(LogInterceptor)
        def withdraw(self, amount: Decimal) -> Decimal:
            self.balance -= amount
            return self.balance

    account = create(Account)()
"""

__version__ = "0.1.0"

from weaver.core import (
    ConfigurationError,
    UnsupportedOperationError,
    ValidationError,
    WeaveError,
    WeaveRegistry,
    configure_logging,
    get_logger,
    get_settings,
)
from weaver.framework import *  # noqa: F403
from weaver.framework import __all__ as _framework_all

__all__ = [
    "__version__",
    "WeaveError",
    "ConfigurationError",
    "UnsupportedOperationError",
    "ValidationError",
    "WeaveRegistry",
    "configure_logging",
    "get_logger",
    "get_settings",
    *_framework_all,
]
