"""Tests for the live-edge continuity check.

All tests use a fixed now of 2024-03-15 12:00 UTC.
"""

from datetime import datetime, timedelta, timezone

import pytest

from indicator_calc.continuity import truncate_incomplete
from indicator_calc.models import period_length


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestPeriodLength:
    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("5m", timedelta(minutes=5)),
            ("15m", timedelta(minutes=15)),
            ("1h", timedelta(hours=1)),
            ("4h", timedelta(hours=4)),
            ("1d", timedelta(days=1)),
        ],
    )
    def test_known_timeframes(self, label: str, expected: timedelta) -> None:
        assert period_length(label) == expected

    def test_unknown_timeframe(self) -> None:
        assert period_length("1w") is None


class TestColdStart:
    """No checkpoint: only the first candle is checked for recency."""

    def test_old_contiguous_history_is_kept(self, hourly_candles, now) -> None:
        batch = hourly_candles(utc(2024, 1, 1, 10), 48)
        assert truncate_incomplete(batch, "1h", None, now) == batch

    def test_first_candle_in_current_month_stops(self, hourly_candles, now) -> None:
        batch = hourly_candles(utc(2024, 3, 1), 5)
        assert truncate_incomplete(batch, "1h", None, now) == []

    def test_first_candle_in_previous_month_stops(self, hourly_candles, now) -> None:
        batch = hourly_candles(utc(2024, 2, 10), 5)
        assert truncate_incomplete(batch, "1h", None, now) == []

    def test_same_month_last_year_is_kept(self, hourly_candles, now) -> None:
        batch = hourly_candles(utc(2023, 3, 10), 5)
        assert truncate_incomplete(batch, "1h", None, now) == batch

    def test_cold_start_falls_through_to_gap_check(self, candle_factory, hourly_candles, now) -> None:
        history = hourly_candles(utc(2024, 1, 20), 5)
        live = candle_factory(utc(2024, 3, 2))
        result = truncate_incomplete([*history, live], "1h", None, now)
        assert result == history


class TestWarmStart:
    """Checkpoint set: stop at a gap that opens into the current month."""

    def test_no_gap_returns_full_batch(self, hourly_candles, now) -> None:
        checkpoint = utc(2024, 3, 10)
        batch = hourly_candles(checkpoint, 20)
        assert truncate_incomplete(batch, "1h", checkpoint, now) == batch

    def test_gap_into_current_month_truncates_before_gap(self, hourly_candles, now) -> None:
        checkpoint = utc(2024, 2, 20)
        history = hourly_candles(checkpoint + timedelta(hours=1), 24)
        after_gap = hourly_candles(utc(2024, 3, 10), 5)

        result = truncate_incomplete([*history, *after_gap], "1h", checkpoint, now)

        assert result == history

    def test_gap_before_first_candle_is_detected(self, hourly_candles, now) -> None:
        checkpoint = utc(2024, 2, 28)
        batch = hourly_candles(utc(2024, 3, 5), 3)
        assert truncate_incomplete(batch, "1h", checkpoint, now) == []

    def test_gap_in_past_month_is_kept(self, hourly_candles, now) -> None:
        checkpoint = utc(2024, 1, 1)
        first = hourly_candles(checkpoint, 5)
        after_gap = hourly_candles(utc(2024, 1, 10), 5)
        batch = [*first, *after_gap]
        assert truncate_incomplete(batch, "1h", checkpoint, now) == batch

    def test_gap_inside_current_month_is_kept(self, hourly_candles, now) -> None:
        checkpoint = utc(2024, 3, 1)
        first = hourly_candles(checkpoint, 3)
        after_gap = hourly_candles(utc(2024, 3, 5), 3)
        batch = [*first, *after_gap]
        assert truncate_incomplete(batch, "1h", checkpoint, now) == batch

    def test_gap_equal_to_period_is_not_a_gap(self, candle_factory, now) -> None:
        checkpoint = utc(2024, 2, 29, 23)
        batch = [candle_factory(utc(2024, 3, 1, 0)), candle_factory(utc(2024, 3, 1, 1))]
        assert truncate_incomplete(batch, "1h", checkpoint, now) == batch

    def test_threshold_follows_timeframe(self, candle_factory, now) -> None:
        checkpoint = utc(2024, 2, 29, 22)
        batch = [candle_factory(utc(2024, 3, 1, 1), interval="4h", period=timedelta(hours=4))]
        assert truncate_incomplete(batch, "4h", checkpoint, now) == batch
        assert truncate_incomplete(batch, "1h", checkpoint, now) == []

    def test_deterministic_for_fixed_now(self, hourly_candles, now) -> None:
        checkpoint = utc(2024, 2, 20)
        batch = [*hourly_candles(checkpoint, 10), *hourly_candles(utc(2024, 3, 3), 10)]
        first = truncate_incomplete(batch, "1h", checkpoint, now)
        second = truncate_incomplete(batch, "1h", checkpoint, now)
        assert first == second
        assert len(first) == 10


class TestUnknownTimeframe:
    def test_returns_empty(self, hourly_candles, now) -> None:
        batch = hourly_candles(utc(2023, 1, 1), 5)
        assert truncate_incomplete(batch, "2h", None, now) == []

    def test_empty_batch(self, now) -> None:
        assert truncate_incomplete([], "1h", None, now) == []
