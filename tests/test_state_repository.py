"""Tests for StateRepository — typed load/save with default fallbacks."""

from datetime import date

import pytest

from recitation.clock import TimeOfDay
from recitation.errors import PersistenceWriteError
from recitation.scheduler.ledger import CompletionLedger, Session
from recitation.scheduler.models import ScheduleConfig
from recitation.scheduler.store import StateRepository

DAY = date(2026, 10, 19)


@pytest.fixture
def repo(store) -> StateRepository:
    return StateRepository(store)


# -- Schedule ------------------------------------------------------------------


async def test_load_config_default_when_absent(repo: StateRepository) -> None:
    assert await repo.load_config() == ScheduleConfig.default()


async def test_config_round_trip(repo: StateRepository, store) -> None:
    config = ScheduleConfig.from_times(["09:00", "15:00"], daily_count=1, sound_enabled=False)
    await repo.save_config(config)

    assert store.load_json("recitationSettings")["times"] == ["09:00", "15:00"]
    assert await repo.load_config() == config


async def test_load_config_malformed_json_falls_back(repo: StateRepository, store) -> None:
    store.data["recitationSettings"] = "{not json"
    assert await repo.load_config() == ScheduleConfig.default()


async def test_load_config_invalid_times_falls_back(repo: StateRepository, store) -> None:
    store.put_json("recitationSettings", {"times": ["nine o'clock"], "count": 1})
    assert await repo.load_config() == ScheduleConfig.default()


async def test_load_config_read_error_falls_back(repo: StateRepository, store) -> None:
    store.fail_reads = True
    assert await repo.load_config() == ScheduleConfig.default()


# -- Ledger --------------------------------------------------------------------


async def test_ledger_round_trip(repo: StateRepository) -> None:
    ledger = CompletionLedger(DAY).record(TimeOfDay(9, 0), TimeOfDay(9, 30))
    await repo.save_ledger(ledger)
    assert await repo.load_ledger(DAY) == ledger


async def test_load_ledger_drops_other_days(repo: StateRepository) -> None:
    await repo.save_ledger(CompletionLedger(DAY).record(TimeOfDay(9, 0), TimeOfDay(9, 30)))
    assert len(await repo.load_ledger(date(2026, 10, 20))) == 0


async def test_load_ledger_malformed_falls_back(repo: StateRepository, store) -> None:
    store.put_json("completedRecitations", [{"scheduledTime": "bogus"}])
    assert len(await repo.load_ledger(DAY)) == 0


# -- Sessions ------------------------------------------------------------------


async def test_sessions_round_trip(repo: StateRepository) -> None:
    sessions = (Session(DAY, TimeOfDay(9, 0), TimeOfDay(9, 20), 95),)
    await repo.save_sessions(sessions)
    assert await repo.load_sessions() == sessions


async def test_load_sessions_skips_malformed_entries(repo: StateRepository, store) -> None:
    store.put_json(
        "sessions",
        [
            {"date": "2026-10-19", "scheduledTime": "09:00", "actualTime": "09:20", "tapCount": 95},
            {"date": "yesterday"},
        ],
    )
    sessions = await repo.load_sessions()
    assert len(sessions) == 1


async def test_load_sessions_non_list(repo: StateRepository, store) -> None:
    store.put_json("sessions", {"oops": True})
    assert await repo.load_sessions() == ()


# -- Rollover date and notified set --------------------------------------------


async def test_reset_date_round_trip(repo: StateRepository, store) -> None:
    assert await repo.load_reset_date() is None
    await repo.save_reset_date(DAY)
    assert store.data["lastResetDate"] == "2026-10-19"
    assert await repo.load_reset_date() == DAY


async def test_reset_date_malformed_is_absent(repo: StateRepository, store) -> None:
    store.data["lastResetDate"] = "19/10/2026"
    assert await repo.load_reset_date() is None


async def test_notified_round_trip(repo: StateRepository, store) -> None:
    notified = frozenset({TimeOfDay(15, 0), TimeOfDay(9, 0)})
    await repo.save_notified(notified)
    assert store.load_json("notifiedRecitations") == ["09:00", "15:00"]
    assert await repo.load_notified() == notified


# -- Flags and writes ----------------------------------------------------------


async def test_mark_flag_only_first_time(repo: StateRepository, store) -> None:
    assert await repo.mark_flag("hasSeenIntro") is True
    assert store.data["hasSeenIntro"] == "true"
    assert await repo.mark_flag("hasSeenIntro") is False


async def test_save_propagates_write_error(repo: StateRepository, store) -> None:
    store.fail_writes = True
    with pytest.raises(PersistenceWriteError):
        await repo.save_ledger(CompletionLedger(DAY))
