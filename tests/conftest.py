"""
Shared pytest fixtures for weaver tests.

This module provides:
- State cleanup (settings cache, default registry/weaver, structlog config)
- A fresh ``WeaveRegistry`` and ``Weaver`` per test
- A factory for interceptors that record their hook calls

Usage:
    def test_something(weaver, recorder):
        calls = []
        First = recorder("I1", calls)
        ...
"""

from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from weaver.core.logging import reset_logging
from weaver.core.registry import WeaveRegistry, reset_default_registry
from weaver.core.settings import clear_settings_cache
from weaver.framework.interception import Interceptor
from weaver.framework.synthesis import Weaver, reset_default_weaver


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# State Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_weaver_state(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """
    Reset every process-wide cache before and after each test.

    Tests run from an empty directory so a developer's ``.env`` never leaks in.
    """
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    reset_default_registry()
    reset_default_weaver()
    yield
    reset_default_weaver()
    reset_default_registry()
    clear_settings_cache()
    reset_logging()


@pytest.fixture
def registry() -> WeaveRegistry:
    """A private registry, isolated from the process default."""
    return WeaveRegistry()


@pytest.fixture
def weaver(registry: WeaveRegistry) -> Weaver:
    """A weaver bound to the per-test registry."""
    return Weaver(registry)


# =============================================================================
# Interceptor Helpers
# =============================================================================


@pytest.fixture
def recorder() -> Callable[[str, list], type[Interceptor]]:
    """
    Build interceptor classes that append ``"<name>.<hook>"`` to a list.

    Each class records into the list given when it was built, so several
    interceptors can share one log and their relative order can be asserted.
    """

    def build(name: str, calls: list) -> type[Interceptor]:
        class Recording(Interceptor):
            def before_call(self, context):
                calls.append(f"{name}.before")

            def after_call(self, context):
                calls.append(f"{name}.after")

            def catch(self, context):
                calls.append(f"{name}.catch")

            def finally_(self, context):
                calls.append(f"{name}.finally")

        Recording.__name__ = Recording.__qualname__ = f"Recording{name}"
        return Recording

    return build
