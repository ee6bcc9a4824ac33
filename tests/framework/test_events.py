"""Tests for weaver.framework.events module."""

import pytest

from weaver.framework.events import Delegate, Event, EventHandle


def handler_a(*args):
    return "a"


def handler_b(*args):
    return "b"


class TestDelegate:
    """Combining and removing handlers."""

    def test_combine_from_none(self):
        delegate = Delegate.combine(None, handler_a)
        assert delegate.handlers == (handler_a,)

    def test_combine_none_handler_is_noop(self):
        assert Delegate.combine(None, None) is None

    def test_combine_keeps_order(self):
        delegate = Delegate.combine(Delegate.combine(None, handler_a), handler_b)
        assert delegate.handlers == (handler_a, handler_b)

    def test_remove_last_occurrence(self):
        delegate = Delegate((handler_a, handler_b, handler_a))
        assert Delegate.remove(delegate, handler_a).handlers == (handler_a, handler_b)

    def test_remove_unknown_handler(self):
        delegate = Delegate((handler_a,))
        assert Delegate.remove(delegate, handler_b) is delegate

    def test_remove_to_empty_collapses(self):
        assert Delegate.remove(Delegate((handler_a,)), handler_a) is None

    def test_call_runs_all_and_returns_last(self):
        seen = []
        delegate = Delegate((lambda x: seen.append(("first", x)), lambda x: seen.append(("second", x)) or "done"))
        assert delegate(1) == "done"
        assert seen == [("first", 1), ("second", 1)]


class Publisher:
    """Event with hand-written accessors."""

    def _add(self, handler):
        self.delegate = Delegate.combine(getattr(self, "delegate", None), handler)

    def _remove(self, handler):
        self.delegate = Delegate.remove(getattr(self, "delegate", None), handler)

    changed = Event(adder=_add, remover=_remove, invoker=lambda self: getattr(self, "delegate", None))
    unbacked = Event()


class TestEvent:
    """Event descriptor behaviour."""

    def test_class_access_returns_event(self):
        assert isinstance(Publisher.changed, Event)
        assert Publisher.changed.name == "changed"

    def test_instance_access_returns_handle(self):
        publisher = Publisher()
        handle = publisher.changed
        assert isinstance(handle, EventHandle)
        assert handle.instance is publisher

    def test_subscribe_fire_unsubscribe(self):
        publisher = Publisher()
        seen = []

        def on_change(sender, name):
            seen.append((sender, name))

        publisher.changed += on_change
        publisher.changed.fire(publisher, "bid")
        publisher.changed -= on_change
        publisher.changed.fire(publisher, "ask")

        assert seen == [(publisher, "bid")]
        assert publisher.changed.handlers() == ()

    def test_plain_assignment_rejected(self):
        with pytest.raises(AttributeError, match="only be changed"):
            Publisher().changed = handler_a

    def test_abstract_when_accessors_missing(self):
        assert Publisher.unbacked.__isabstractmethod__
        assert not Publisher.changed.__isabstractmethod__

    def test_unbacked_event_raises(self):
        publisher = Publisher()
        with pytest.raises(NotImplementedError):
            publisher.unbacked.add(handler_a)
        with pytest.raises(NotImplementedError):
            publisher.unbacked.fire()
