"""Shared test fixtures."""

from __future__ import annotations

import json

import pytest

from recitation.clock import Clock
from recitation.errors import NotificationError, PersistenceReadError, PersistenceWriteError
from recitation.notifications.gateway import ScheduledNotification
from recitation.scheduler.core import RecitationScheduler
from recitation.scheduler.store import StateRepository

TZ = "Africa/Kinshasa"


class FakeStore:
    """In-memory PersistenceStore with switchable failures."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, key: str) -> str | None:
        if self.fail_reads:
            raise PersistenceReadError(key)
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise PersistenceWriteError(key)
        self.data[key] = value

    async def delete(self, key: str) -> bool:
        return self.data.pop(key, None) is not None

    def put_json(self, key: str, value) -> None:
        self.data[key] = json.dumps(value)

    def load_json(self, key: str):
        return json.loads(self.data[key])


class FakeGateway:
    """Records notification requests instead of delivering them."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.scheduled: dict[str, ScheduledNotification] = {}
        self.cancelled: list[str] = []
        self.delivered: list[ScheduledNotification] = []
        self.fail = False

    async def send_immediate(self, title: str, body: str) -> bool:
        if self.fail:
            raise NotificationError(title)
        self.sent.append((title, body))
        return True

    async def schedule_at(self, identifier, fire_time, title, body) -> None:
        if self.fail:
            raise NotificationError(identifier)
        self.scheduled[identifier] = ScheduledNotification(identifier, fire_time, title, body)

    async def cancel(self, identifier: str) -> bool:
        self.cancelled.append(identifier)
        return self.scheduled.pop(identifier, None) is not None

    async def list_scheduled(self) -> list[ScheduledNotification]:
        return list(self.scheduled.values())

    def deliver_due(self, moment) -> None:
        """Fire every pending request whose time has come."""
        for identifier, notification in list(self.scheduled.items()):
            if notification.fire_time <= moment:
                self.delivered.append(self.scheduled.pop(identifier))


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def clock() -> Clock:
    return Clock(TZ)


@pytest.fixture
def make_scheduler(store: FakeStore, gateway: FakeGateway, clock: Clock):
    """Return an async factory for a loaded scheduler with the given times."""

    async def factory(times: list[str] | None = None, count: int | None = None) -> RecitationScheduler:
        if times is not None:
            store.put_json(
                "recitationSettings",
                {"times": times, "count": count or len(times), "soundEnabled": True, "volume": 0.5},
            )
        sched = RecitationScheduler(StateRepository(store), gateway, clock)
        await sched.load()
        return sched

    return factory
