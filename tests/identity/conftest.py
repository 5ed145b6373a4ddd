from datetime import datetime, timedelta, timezone

import pytest

from flask_app.identity.store import InMemoryContactStore

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def memory_store():
    """In-memory store whose clock advances one minute per created row"""
    ticks = iter(range(10_000))

    def _clock():
        return BASE_TIME + timedelta(days=1, minutes=next(ticks))

    return InMemoryContactStore(clock=_clock)


@pytest.fixture
def at():
    """Build a timestamp ``minutes`` after the shared base time"""

    def _at(minutes):
        return BASE_TIME + timedelta(minutes=minutes)

    return _at
