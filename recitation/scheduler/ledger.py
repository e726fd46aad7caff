"""CompletionLedger — per-day record of completed slots, plus session history."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from recitation.clock import TimeOfDay

MAX_SESSIONS = 10


@dataclass(frozen=True)
class CompletionRecord:
    """One completed slot. Immutable once created."""

    scheduled_time: TimeOfDay
    actual_time: TimeOfDay
    date: date

    def to_dict(self) -> dict[str, str]:
        return {
            "scheduledTime": str(self.scheduled_time),
            "actualTime": str(self.actual_time),
            "date": self.date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_date: date) -> CompletionRecord:
        """Deserialize a stored record.

        Older records carry the slot under ``time`` and no ``date``; those are
        attributed to *default_date*.
        """
        scheduled = data.get("scheduledTime") or data.get("time")
        actual = data.get("actualTime") or data.get("timestamp") or scheduled
        raw_date = data.get("date")
        return cls(
            scheduled_time=TimeOfDay.parse(scheduled),
            actual_time=TimeOfDay.parse(actual),
            date=date.fromisoformat(raw_date) if raw_date else default_date,
        )


class CompletionLedger:
    """Completed slots for a single calendar date.

    All records share ``date`` and no two records share a scheduled time.
    Ledgers are never mutated in place; ``record`` and ``cleared`` return new
    instances so a failed write can leave the previous ledger untouched.
    """

    def __init__(self, ledger_date: date, records: tuple[CompletionRecord, ...] = ()) -> None:
        seen: set[TimeOfDay] = set()
        for rec in records:
            if rec.date != ledger_date:
                msg = f"Record for {rec.date} does not belong to ledger {ledger_date}"
                raise ValueError(msg)
            if rec.scheduled_time in seen:
                msg = f"Duplicate completion for {rec.scheduled_time}"
                raise ValueError(msg)
            seen.add(rec.scheduled_time)
        self._date = ledger_date
        self._records = tuple(records)

    @property
    def date(self) -> date:
        return self._date

    @property
    def records(self) -> tuple[CompletionRecord, ...]:
        return self._records

    @property
    def completed_times(self) -> frozenset[TimeOfDay]:
        return frozenset(r.scheduled_time for r in self._records)

    def is_completed(self, slot: TimeOfDay) -> bool:
        return any(r.scheduled_time == slot for r in self._records)

    def record(self, scheduled_time: TimeOfDay, actual_time: TimeOfDay) -> CompletionLedger:
        """Return a new ledger with one more completion appended."""
        rec = CompletionRecord(scheduled_time, actual_time, self._date)
        return CompletionLedger(self._date, (*self._records, rec))

    def cleared(self, new_date: date) -> CompletionLedger:
        return CompletionLedger(new_date)

    def __len__(self) -> int:
        return len(self._records)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompletionLedger):
            return NotImplemented
        return self._date == other._date and self._records == other._records

    def __repr__(self) -> str:
        times = ", ".join(str(r.scheduled_time) for r in self._records)
        return f"CompletionLedger({self._date.isoformat()}: [{times}])"

    # -- Serialization ---------------------------------------------------------

    def to_list(self) -> list[dict[str, str]]:
        """Serialize to the persisted ``completedRecitations`` shape."""
        return [r.to_dict() for r in self._records]

    @classmethod
    def from_list(cls, ledger_date: date, data: list[dict[str, Any]]) -> CompletionLedger:
        """Deserialize, keeping only records that belong to *ledger_date*.

        Raises ValueError if *data* is not a list of well-formed records.
        """
        if not isinstance(data, list):
            msg = f"completedRecitations must be a list, got {type(data).__name__}"
            raise ValueError(msg)
        records: list[CompletionRecord] = []
        seen: set[TimeOfDay] = set()
        for item in data:
            if not isinstance(item, dict):
                msg = f"Malformed completion record: {item!r}"
                raise ValueError(msg)
            rec = CompletionRecord.from_dict(item, ledger_date)
            if rec.date != ledger_date or rec.scheduled_time in seen:
                continue
            seen.add(rec.scheduled_time)
            records.append(rec)
        return cls(ledger_date, tuple(records))


@dataclass(frozen=True)
class Session:
    """Historical log entry for one finished recitation."""

    date: date
    scheduled_time: TimeOfDay
    actual_time: TimeOfDay
    tap_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "scheduledTime": str(self.scheduled_time),
            "actualTime": str(self.actual_time),
            "tapCount": self.tap_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        return cls(
            date=date.fromisoformat(data["date"]),
            scheduled_time=TimeOfDay.parse(data["scheduledTime"]),
            actual_time=TimeOfDay.parse(data["actualTime"]),
            tap_count=int(data.get("tapCount", data.get("count", 0))),
        )


def prepend_session(history: tuple[Session, ...], session: Session) -> tuple[Session, ...]:
    """Return *history* with *session* first, capped at MAX_SESSIONS."""
    return (session, *history)[:MAX_SESSIONS]
