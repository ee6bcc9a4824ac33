"""Tests for weaver.core.context module."""

import asyncio
import threading
from types import SimpleNamespace

from weaver.core.context import add_call_processor, call_stack, current_call, push_call


class TestCallStack:
    """Push/pop semantics of the ambient call stack."""

    def test_empty_outside_calls(self):
        assert current_call() is None
        assert call_stack() == ()

    def test_push_and_restore(self):
        token = push_call("outer")
        assert current_call() == "outer"
        token.restore()
        assert current_call() is None

    def test_nested_calls(self):
        outer = push_call("outer")
        inner = push_call("inner")
        assert call_stack() == ("outer", "inner")
        assert current_call() == "inner"
        inner.restore()
        assert current_call() == "outer"
        outer.restore()
        assert call_stack() == ()

    def test_restore_is_idempotent(self):
        token = push_call("entry")
        token.restore()
        token.restore()
        assert call_stack() == ()
        assert token.entry == "entry"

    def test_threads_do_not_share_stack(self):
        token = push_call("main")
        seen = []
        thread = threading.Thread(target=lambda: seen.append(current_call()))
        thread.start()
        thread.join()
        token.restore()
        assert seen == [None]

    def test_tasks_do_not_share_stack(self):
        async def task(name):
            token = push_call(name)
            await asyncio.sleep(0)
            seen = current_call()
            token.restore()
            return seen

        async def main():
            return await asyncio.gather(task("a"), task("b"))

        assert asyncio.run(main()) == ["a", "b"]


class TestAddCallProcessor:
    """Structlog processor tagging entries with the live call."""

    def test_no_call_leaves_event_untouched(self):
        assert add_call_processor(None, "info", {"event": "x"}) == {"event": "x"}

    def test_tags_current_call(self):
        class Account:
            pass

        entry = SimpleNamespace(reflected_type=Account, method=SimpleNamespace(name="withdraw"))
        token = push_call(entry)
        try:
            event = add_call_processor(None, "info", {"event": "x"})
        finally:
            token.restore()
        assert event["intercept_type"] == "Account"
        assert event["intercept_method"] == "withdraw"

    def test_existing_keys_win(self):
        entry = SimpleNamespace(reflected_type=int, method=SimpleNamespace(name="run"))
        token = push_call(entry)
        try:
            event = add_call_processor(None, "info", {"event": "x", "intercept_method": "custom"})
        finally:
            token.restore()
        assert event["intercept_method"] == "custom"
