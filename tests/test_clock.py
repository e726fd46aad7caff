"""Tests for TimeOfDay, ClockReading, and Clock."""

from datetime import UTC, date, datetime

import pytest

from recitation.clock import Clock, ClockReading, TimeOfDay

TZ = "Africa/Kinshasa"


class TestTimeOfDay:
    def test_parse_and_format(self):
        assert TimeOfDay.parse("09:05") == TimeOfDay(9, 5)
        assert str(TimeOfDay(9, 5)) == "09:05"

    def test_parse_single_digit_hour(self):
        assert TimeOfDay.parse("6:00") == TimeOfDay(6, 0)

    @pytest.mark.parametrize("text", ["24:00", "12:60", "noon", "", "9-00"])
    def test_parse_rejects_malformed(self, text):
        with pytest.raises(ValueError):
            TimeOfDay.parse(text)

    def test_parse_rejects_non_string(self):
        with pytest.raises(ValueError):
            TimeOfDay.parse(None)

    def test_ordering_by_minutes(self):
        times = [TimeOfDay(21, 0), TimeOfDay(9, 0), TimeOfDay(15, 30)]
        assert sorted(times) == [TimeOfDay(9, 0), TimeOfDay(15, 30), TimeOfDay(21, 0)]
        assert TimeOfDay(9, 59) < TimeOfDay(10, 0)

    def test_minutes(self):
        assert TimeOfDay(2, 30).minutes == 150
        assert TimeOfDay(23, 59).minutes == 24 * 60 - 1


class TestClockReading:
    def test_clamps_out_of_range_values(self):
        reading = ClockReading(date(2026, 10, 19), 25, -3)
        assert reading.hour == 23
        assert reading.minute == 0

    def test_minute_of_day(self):
        assert ClockReading(date(2026, 10, 19), 10, 30).minute_of_day == 630


class TestClock:
    def test_read_converts_to_reference_zone(self):
        clock = Clock(TZ)
        reading = clock.read(datetime(2026, 10, 19, 23, 30, 45, tzinfo=UTC))
        # Kinshasa is UTC+1 all year, so this is already the next day.
        assert reading == ClockReading(date(2026, 10, 20), 0, 30)

    def test_read_naive_datetime_is_reference_time(self):
        clock = Clock(TZ)
        reading = clock.read(datetime(2026, 10, 19, 9, 0, 59))
        assert reading == ClockReading(date(2026, 10, 19), 9, 0)

    def test_now_uses_injected_source(self):
        clock = Clock(TZ, source=lambda: datetime(2026, 10, 19, 8, 0, tzinfo=UTC))
        assert clock.now() == ClockReading(date(2026, 10, 19), 9, 0)

    def test_to_datetime_is_aware(self):
        clock = Clock(TZ)
        moment = clock.to_datetime(ClockReading(date(2026, 10, 19), 10, 30))
        assert moment.tzinfo is not None
        assert moment.astimezone(UTC) == datetime(2026, 10, 19, 9, 30, tzinfo=UTC)

    def test_default_timezone_from_settings(self):
        assert Clock().timezone == "Africa/Kinshasa"
