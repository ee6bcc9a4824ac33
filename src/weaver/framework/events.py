"""Events: declared add/remove accessor pairs backed by multicast delegates.

Python has no native events, so a woven type declares one with :class:`Event`
and lets a storage policy generate the accessors::

    @weave()
    class Quote(abc.ABC):
        property_changed = DefaultStorage()(Event())

    quote = create(Quote)()
    quote.property_changed += on_change      # add accessor
    quote.property_changed.fire(quote, "bid")
    quote.property_changed -= on_change      # remove accessor
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any


class Delegate:
    """Immutable, ordered list of handlers invoked as one callable."""

    __slots__ = ("handlers",)

    def __init__(self, handlers: tuple[Callable[..., Any], ...]):
        self.handlers = handlers

    @staticmethod
    def combine(current: Delegate | None, handler: Callable[..., Any] | None) -> Delegate | None:
        """Append ``handler`` (no-op for ``None``)."""
        if handler is None:
            return current
        if current is None:
            return Delegate((handler,))
        return Delegate(current.handlers + (handler,))

    @staticmethod
    def remove(current: Delegate | None, handler: Callable[..., Any] | None) -> Delegate | None:
        """Remove the last occurrence of ``handler``; empty delegates collapse to ``None``."""
        if current is None or handler is None:
            return current
        handlers = list(current.handlers)
        for index in range(len(handlers) - 1, -1, -1):
            if handlers[index] == handler:
                del handlers[index]
                break
        else:
            return current
        return Delegate(tuple(handlers)) if handlers else None

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        result = None
        for handler in self.handlers:
            result = handler(*args, **kwargs)
        return result

    def __len__(self) -> int:
        return len(self.handlers)

    def __repr__(self) -> str:
        return f"Delegate({len(self.handlers)} handlers)"


def _is_abstract(func: Any) -> bool:
    return func is None or bool(getattr(func, "__isabstractmethod__", False))


class Event:
    """Class-level event declaration.

    Args:
        handler_type: Declared handler type (informational, used as the
            value type of generated storage)
        adder: ``adder(self, handler)``; ``None`` leaves the accessor abstract
        remover: ``remover(self, handler)``; ``None`` leaves it abstract
        invoker: ``invoker(self) -> Delegate | None`` used by ``fire()``
    """

    def __init__(
        self,
        handler_type: Any = None,
        *,
        adder: Callable[[Any, Any], None] | None = None,
        remover: Callable[[Any, Any], None] | None = None,
        invoker: Callable[[Any], Delegate | None] | None = None,
        doc: str | None = None,
    ):
        self.handler_type = handler_type
        self.adder = adder
        self.remover = remover
        self.invoker = invoker
        self.name: str | None = None
        self.__doc__ = doc

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    @property
    def __isabstractmethod__(self) -> bool:
        return _is_abstract(self.adder) or _is_abstract(self.remover)

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return EventHandle(instance, self)

    def __set__(self, instance: Any, value: Any) -> None:
        # ``obj.event += handler`` rebinds the handle returned by __iadd__
        if isinstance(value, EventHandle) and value.instance is instance and value.event is self:
            return
        raise AttributeError(f"event '{self.name}' can only be changed with += and -=")

    def __repr__(self) -> str:
        return f"Event({self.name!r})"


class EventHandle:
    """An event bound to one instance."""

    __slots__ = ("instance", "event")

    def __init__(self, instance: Any, event: Event):
        self.instance = instance
        self.event = event

    def add(self, handler: Callable[..., Any]) -> None:
        if self.event.adder is None:
            raise NotImplementedError(f"event '{self.event.name}' has no add accessor")
        self.event.adder(self.instance, handler)

    def remove(self, handler: Callable[..., Any]) -> None:
        if self.event.remover is None:
            raise NotImplementedError(f"event '{self.event.name}' has no remove accessor")
        self.event.remover(self.instance, handler)

    def handlers(self) -> tuple[Callable[..., Any], ...]:
        delegate = self._delegate()
        return delegate.handlers if delegate is not None else ()

    def fire(self, *args: Any, **kwargs: Any) -> Any:
        """Invoke every subscribed handler in subscription order."""
        delegate = self._delegate()
        if delegate is None:
            return None
        return delegate(*args, **kwargs)

    def _delegate(self) -> Delegate | None:
        if self.event.invoker is None:
            raise NotImplementedError(f"event '{self.event.name}' has no storage to fire from")
        return self.event.invoker(self.instance)

    def __iadd__(self, handler: Callable[..., Any]) -> EventHandle:
        self.add(handler)
        return self

    def __isub__(self, handler: Callable[..., Any]) -> EventHandle:
        self.remove(handler)
        return self
