"""Shared test fixtures: in-memory sheet, test config, deterministic clock."""

from __future__ import annotations

import itertools
from typing import Callable

import pytest

from storefront_mcp.config import StorefrontConfig
from storefront_mcp.data.repositories import Repositories
from storefront_mcp.data.storefront import set_config, set_store
from storefront_mcp.data.store import MemorySheetStore

# Low iteration count keeps PBKDF2 fast in tests.
TEST_ITERATIONS = 1_000


@pytest.fixture()
def config() -> StorefrontConfig:
    return StorefrontConfig(spreadsheet_id="test-sheet", passcode_iterations=TEST_ITERATIONS)


@pytest.fixture()
def store() -> MemorySheetStore:
    """A fresh, empty in-memory spreadsheet for each test."""
    return MemorySheetStore()


@pytest.fixture()
def clock() -> Callable[[], str]:
    """Strictly increasing ISO timestamps, one second apart."""
    ticks = itertools.count()

    def _now() -> str:
        n = next(ticks)
        return f"2026-01-01T00:{n // 60:02d}:{n % 60:02d}.000Z"

    return _now


@pytest.fixture()
def repos(store: MemorySheetStore, config: StorefrontConfig, clock) -> Repositories:
    return Repositories.build(store, config, clock=clock)


@pytest.fixture(autouse=True)
def _inject_test_store(store: MemorySheetStore, config: StorefrontConfig):
    """Route the repository facade (and so every tool) to the in-memory sheet."""
    set_store(store)
    set_config(config)
    yield
    set_store(None)
    set_config(None)
