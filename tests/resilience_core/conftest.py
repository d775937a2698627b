from __future__ import annotations

import pytest

from tests.resilience_core.support.fakes import FakeClock, FakeLogger


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a fresh deterministic clock per test."""
    return FakeClock()


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()
