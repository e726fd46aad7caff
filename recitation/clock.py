"""Clock — resolves "now" in a fixed reference time zone at minute granularity."""

from __future__ import annotations

import logging
import re
import zoneinfo
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import TYPE_CHECKING

from recitation.config import settings

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """A wall-clock time with minute precision, ordered by minutes since midnight.

    Serialized as ``"HH:MM"``.
    """

    hour: int
    minute: int

    def __post_init__(self) -> None:
        if not 0 <= self.hour <= 23:
            msg = f"hour out of range: {self.hour}"
            raise ValueError(msg)
        if not 0 <= self.minute <= 59:
            msg = f"minute out of range: {self.minute}"
            raise ValueError(msg)

    @classmethod
    def parse(cls, text: str) -> TimeOfDay:
        """Parse ``"HH:MM"``. Raises ValueError on malformed input."""
        match = _HHMM.match(text.strip()) if isinstance(text, str) else None
        if match is None:
            msg = f"Invalid time of day: {text!r}"
            raise ValueError(msg)
        return cls(int(match.group(1)), int(match.group(2)))

    @property
    def minutes(self) -> int:
        """Minutes since midnight."""
        return self.hour * 60 + self.minute

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class ClockReading:
    """A calendar date plus hour and minute in the reference zone.

    Values outside the valid range are clamped rather than rejected, so a
    misbehaving time source can never make evaluation fail.
    """

    date: date
    hour: int
    minute: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "hour", min(max(int(self.hour), 0), 23))
        object.__setattr__(self, "minute", min(max(int(self.minute), 0), 59))

    @property
    def time_of_day(self) -> TimeOfDay:
        return TimeOfDay(self.hour, self.minute)

    @property
    def minute_of_day(self) -> int:
        return self.hour * 60 + self.minute

    def __str__(self) -> str:
        return f"{self.date.isoformat()} {self.time_of_day}"


class Clock:
    """Time source pinned to one IANA zone, independent of the host's locale.

    Args:
        timezone: IANA timezone string (default from settings).
        source: Optional callable returning the current aware datetime; tests
            inject a fixed instant here.
    """

    def __init__(
        self,
        timezone: str | None = None,
        source: Callable[[], datetime] | None = None,
    ) -> None:
        self._timezone = timezone or settings.timezone
        self._tz = zoneinfo.ZoneInfo(self._timezone)
        self._source = source

    @property
    def timezone(self) -> str:
        return self._timezone

    def now(self) -> ClockReading:
        """Return the current reading in the reference zone."""
        current = self._source() if self._source else datetime.now(self._tz)
        return self.read(current)

    def read(self, moment: datetime) -> ClockReading:
        """Convert *moment* to a reading; naive datetimes are taken as reference-zone time."""
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self._tz)
        local = moment.astimezone(self._tz)
        return ClockReading(local.date(), local.hour, local.minute)

    def to_datetime(self, reading: ClockReading) -> datetime:
        """Return the aware datetime at the start of *reading*'s minute."""
        return datetime.combine(
            reading.date, time(reading.hour, reading.minute), tzinfo=self._tz
        )
