"""
conftest.py - Shared pytest fixtures for issuance tests

Provides common fixtures used across unit and functional tests:
- A standard consensus snapshot (properties, balances, offers)
- A coordinator wired to a recording builder
- The command surface over that coordinator
"""

import pytest

from issuance import (
    BinaryPayloadCodec, CommandSurface, FeePolicyRegistry, PendingLedger,
    SubmissionConfig, GuardContext,
)

from tests.fakes import FakeBuilder, make_coordinator, make_view


@pytest.fixture
def view():
    return make_view()


@pytest.fixture
def codec():
    return BinaryPayloadCodec()


@pytest.fixture
def pending():
    return PendingLedger()


@pytest.fixture
def guard_ctx(view, pending):
    """Guard context over the standard snapshot with default config."""
    return GuardContext(view, pending, SubmissionConfig())


@pytest.fixture
def pipeline(view):
    """(coordinator, builder) over the standard snapshot."""
    return make_coordinator(view)


@pytest.fixture
def coordinator(pipeline):
    return pipeline[0]


@pytest.fixture
def builder(pipeline):
    return pipeline[1]


@pytest.fixture
def registry(coordinator) -> FeePolicyRegistry:
    return coordinator.fee_policy


@pytest.fixture
def surface(coordinator):
    return CommandSurface(coordinator)


@pytest.fixture
def failing_builder():
    """Builder factory: failing_builder(code) or failing_builder(error=exc)."""
    def _make(code: int = 0, error: Exception = None) -> FakeBuilder:
        return FakeBuilder(code=code, error=error)
    return _make
