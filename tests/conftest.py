"""Shared pytest fixtures for all test suites."""

from collections.abc import Iterator

import pytest

from tripcore.config import get_settings


@pytest.fixture(autouse=True)
def fresh_settings() -> Iterator[None]:
    """Rebuild cached settings around every test so env overrides never leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
