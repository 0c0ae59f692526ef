"""Shared test fixtures for Balance tests.

This module provides common fixtures used across all test modules:
- A frozen clock so "now" and "today" are deterministic
- An in-memory storage backend and a store seeded with default templates
- An unstarted APScheduler instance for reminder timers
- A recording notifier that keeps every reminder it was asked to raise

Usage:
    def test_something(store, clock):
        plan = DayPlanGenerator(store).generate(clock.today())
        ...
"""

from datetime import date, datetime, timedelta
from typing import Dict, List, Tuple

import pytest
import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from balance.database import MemoryStorage
from balance.services import DataService, DayPlanGenerator, TaskLifecycleManager
from balance.services.notifiers import Notifier
from balance.utils.datetime_utils import Clock


# ─────────────────────────────────────────────────────────────────────────────
# Time
# ─────────────────────────────────────────────────────────────────────────────

# Wednesday
TODAY = date(2024, 1, 10)


class FrozenClock(Clock):
    """Clock whose current time only moves when a test moves it."""

    def __init__(self, current: datetime, tz_name: str = "UTC"):
        super().__init__(tz_name)
        self.current = self.tz.localize(current) if current.tzinfo is None else current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    """Frozen at 2024-01-10 06:00 UTC, before every default template starts."""
    return FrozenClock(datetime(2024, 1, 10, 6, 0))


# ─────────────────────────────────────────────────────────────────────────────
# Storage Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage, clock) -> DataService:
    """Store with default pillars (health/relationships/work) and categories."""
    return DataService(storage, clock)


@pytest.fixture
def generator(store) -> DayPlanGenerator:
    return DayPlanGenerator(store)


@pytest.fixture
def lifecycle(store, clock) -> TaskLifecycleManager:
    return TaskLifecycleManager(store, clock, undo_window_seconds=5)


@pytest.fixture
def today_plan(generator, clock):
    """Today's plan generated from the default templates."""
    return generator.generate(clock.today())


# ─────────────────────────────────────────────────────────────────────────────
# Notification Fixtures
# ─────────────────────────────────────────────────────────────────────────────


class RecordingNotifier(Notifier):
    """Notifier that records reminders instead of showing them."""

    name = "recording"

    def __init__(self, supported: bool = True, permission: bool = True, grant_on_request: bool = True):
        self.supported = supported
        self.permission = permission
        self.grant_on_request = grant_on_request
        self.raised: List[Tuple[str, str, str]] = []
        self.cancelled: List[str] = []
        self.closed = False

    def is_supported(self) -> bool:
        return self.supported

    def has_permission(self) -> bool:
        return self.supported and self.permission

    async def request_permission(self) -> bool:
        if self.supported and self.grant_on_request:
            self.permission = True
        return self.has_permission()

    async def raise_reminder(self, title: str, body: str, tag: str) -> bool:
        self.raised.append((title, body, tag))
        return True

    async def cancel(self, tag: str) -> bool:
        self.cancelled.append(tag)
        return True

    async def close(self):
        self.closed = True

    @property
    def tags(self) -> Dict[str, Tuple[str, str]]:
        return {tag: (title, body) for title, body, tag in self.raised}


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def aps_scheduler() -> AsyncIOScheduler:
    """Never started: jobs stay pending so tests can inspect and remove them."""
    return AsyncIOScheduler(timezone=pytz.utc)
