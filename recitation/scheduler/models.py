"""Schedule configuration and derived slot status models."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from recitation.clock import TimeOfDay
from recitation.errors import InvalidSchedule

if TYPE_CHECKING:
    from datetime import date

MIN_SLOT_SPACING_MINUTES = 120

DEFAULT_TIMES = ("06:00",)
DEFAULT_COUNT = 1
DEFAULT_SOUND_ENABLED = True
DEFAULT_VOLUME = 0.5


@dataclass(frozen=True)
class ScheduleConfig:
    """User-configured recitation times and how many of them are used per day.

    Attributes:
        slot_times: Configured times, kept sorted and unique.
        daily_count: How many of the earliest ``slot_times`` are active each day.
        sound_enabled: Whether click/completion sounds are requested.
        volume: Playback volume in ``0.0..1.0``.
    """

    slot_times: tuple[TimeOfDay, ...]
    daily_count: int = DEFAULT_COUNT
    sound_enabled: bool = DEFAULT_SOUND_ENABLED
    volume: float = DEFAULT_VOLUME

    def __post_init__(self) -> None:
        object.__setattr__(self, "slot_times", tuple(sorted(set(self.slot_times))))

    @classmethod
    def default(cls) -> ScheduleConfig:
        return cls(tuple(TimeOfDay.parse(t) for t in DEFAULT_TIMES))

    @classmethod
    def from_times(cls, times: list[str], daily_count: int | None = None, **kwargs: Any) -> ScheduleConfig:
        """Build from ``"HH:MM"`` strings; *daily_count* defaults to all of them.

        Raises InvalidSchedule on duplicate or malformed times.
        """
        parsed = _parse_times(times)
        count = len(parsed) if daily_count is None else daily_count
        return cls(tuple(parsed), count, **kwargs)

    @property
    def active_slots(self) -> tuple[TimeOfDay, ...]:
        """The first ``daily_count`` times in chronological order."""
        return self.slot_times[: max(self.daily_count, 0)]

    def validate(self) -> None:
        """Raise InvalidSchedule if this config cannot be saved."""
        if not self.slot_times:
            msg = "At least one recitation time is required"
            raise InvalidSchedule(msg)
        if not 1 <= self.daily_count <= len(self.slot_times):
            msg = (
                f"Recitations per day must be between 1 and {len(self.slot_times)}"
                f" (got {self.daily_count})"
            )
            raise InvalidSchedule(msg)
        if not 0.0 <= self.volume <= 1.0:
            msg = f"Volume must be between 0 and 1 (got {self.volume})"
            raise InvalidSchedule(msg)
        active = self.active_slots
        for earlier, later in zip(active, active[1:]):
            if later.minutes - earlier.minutes < MIN_SLOT_SPACING_MINUTES:
                msg = (
                    f"Recitations must be at least 2 hours apart"
                    f" ({earlier} and {later} are too close)"
                )
                raise InvalidSchedule(msg)

    # -- Serialization ---------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted ``recitationSettings`` shape."""
        return {
            "times": [str(t) for t in self.slot_times],
            "count": self.daily_count,
            "soundEnabled": self.sound_enabled,
            "volume": self.volume,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduleConfig:
        """Deserialize, filling missing fields with defaults.

        Raises ValueError (or InvalidSchedule) if a present field is malformed.
        """
        if not isinstance(data, dict):
            msg = f"recitationSettings must be an object, got {type(data).__name__}"
            raise ValueError(msg)
        times = data.get("times") or list(DEFAULT_TIMES)
        if not isinstance(times, list):
            msg = "recitationSettings.times must be a list"
            raise ValueError(msg)
        count = data.get("count") or DEFAULT_COUNT
        sound = data.get("soundEnabled")
        volume = data.get("volume")
        return cls(
            tuple(_parse_times(times)),
            int(count),
            DEFAULT_SOUND_ENABLED if sound is None else bool(sound),
            DEFAULT_VOLUME if volume is None else float(volume),
        )


def _parse_times(times: list[str]) -> list[TimeOfDay]:
    parsed: list[TimeOfDay] = []
    for text in times:
        try:
            value = TimeOfDay.parse(text)
        except ValueError as exc:
            raise InvalidSchedule(str(exc)) from exc
        if value in parsed:
            msg = f"Duplicate recitation time: {value}"
            raise InvalidSchedule(msg)
        parsed.append(value)
    return parsed


class SlotStatus(enum.Enum):
    """Derived status of one scheduled slot relative to now and the ledger."""

    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"
    MISSED = "missed"


@dataclass(frozen=True)
class SlotState:
    time: TimeOfDay
    status: SlotStatus


@dataclass(frozen=True)
class Evaluation:
    """Snapshot produced by one evaluation pass.

    Attributes:
        date: Calendar date the evaluation ran for.
        now: Time of day the evaluation ran at.
        slots: Status of every active slot, in chronological order.
        current_slot: The slot eligible for taps, if any.
        next_slot: The slot the user should look at next: current slot, else
            the first upcoming one.
    """

    date: date
    now: TimeOfDay
    slots: tuple[SlotState, ...] = field(default_factory=tuple)
    current_slot: TimeOfDay | None = None
    next_slot: TimeOfDay | None = None

    def status_of(self, slot: TimeOfDay) -> SlotStatus | None:
        for state in self.slots:
            if state.time == slot:
                return state.status
        return None

    def with_status(self, status: SlotStatus) -> list[TimeOfDay]:
        return [s.time for s in self.slots if s.status is status]

    @property
    def all_completed(self) -> bool:
        return bool(self.slots) and all(
            s.status is SlotStatus.COMPLETED for s in self.slots
        )

    def status_text(self) -> str:
        """One-line summary for the main screen."""
        if self.current_slot is not None:
            if self.status_of(self.current_slot) is SlotStatus.MISSED:
                return f"Missed recitation of {self.current_slot}"
            return f"Recitation time: {self.current_slot}"
        if self.next_slot is not None:
            return f"Next recitation at {self.next_slot}"
        return "All recitations are completed"
