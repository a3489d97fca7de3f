"""
Shared fixtures for the defi_flow test suite.
"""

from __future__ import annotations

import pytest

from defi_flow.logging.correlation import set_correlation_id, set_domain_context
from defi_flow.settings import get_settings
from tests.factories import FakeChainReader


@pytest.fixture(autouse=True)
def reset_correlation_context():
    """Reset correlation context before and after each test to prevent pollution."""
    set_correlation_id("")
    set_domain_context({})

    yield

    set_correlation_id("")
    set_domain_context({})


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def chain_reader() -> FakeChainReader:
    return FakeChainReader()
