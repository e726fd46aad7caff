"""Tests for RecitationApp wiring."""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from recitation.app import RecitationApp
from recitation.clock import Clock
from recitation.storage.kv import KeyValueStore


class FakeChannel:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "fake"

    async def send(self, title: str, body: str) -> bool:
        self.sent.append((title, body))
        return True


def _clock(hour: int, minute: int) -> Clock:
    # Kinshasa is UTC+1.
    moment = datetime(2026, 10, 19, hour - 1, minute, tzinfo=UTC)
    return Clock("Africa/Kinshasa", source=lambda: moment)


@pytest.fixture
def kv(tmp_path: Path) -> KeyValueStore:
    return KeyValueStore(db_path=tmp_path / "recitation.db")


async def test_start_evaluates_and_notifies(kv: KeyValueStore) -> None:
    channel = FakeChannel()
    app = RecitationApp(store=kv, clock=_clock(6, 0), channel=channel)

    evaluation = await app.start()
    try:
        await app.scheduler.drain()
        assert evaluation is not None
        assert evaluation.status_text() == "Recitation time: 06:00"
        assert app.scheduler.current_slot is not None
        assert str(app.scheduler.current_slot) == "06:00"
        assert channel.sent == [("Recitation time", "It's time for your 06:00 recitation.")]
    finally:
        await app.stop()
    assert app.engine.running is False


async def test_intro_shown_only_on_first_launch(kv: KeyValueStore) -> None:
    first = RecitationApp(store=kv, clock=_clock(5, 0), channel=FakeChannel())
    await first.start()
    await first.stop()

    second = RecitationApp(store=kv, clock=_clock(5, 0), channel=FakeChannel())
    await second.start()
    await second.stop()

    assert first.should_show_intro is True
    assert second.should_show_intro is False
    assert await kv.get("hasLaunched") == "true"


async def test_full_day_flow(kv: KeyValueStore) -> None:
    app = RecitationApp(store=kv, clock=_clock(8, 0), channel=FakeChannel())
    await app.start()
    try:
        now = app.clock.now()
        await app.schedule.save_times(["09:00", "15:00"], 2, now)

        reading = app.clock.read(datetime(2026, 10, 19, 9, 30, tzinfo=UTC))
        evaluation = await app.scheduler.evaluate(reading)
        assert str(evaluation.current_slot) == "09:00"

        result = None
        for _ in range(app.counter.target):
            result = await app.counter.tap(reading)
        assert result is not None
        assert result.completed is True
        assert str(result.next_slot) == "15:00"
    finally:
        await app.stop()

    # A fresh app over the same store sees the completion.
    again = RecitationApp(store=kv, clock=_clock(10, 0), channel=FakeChannel())
    await again.scheduler.load()
    assert [str(t) for t in again.scheduler.state.ledger.completed_times] == ["09:00"]
