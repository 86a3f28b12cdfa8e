"""
Tests for core.time — Clock protocol and temporal helpers.
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from core.time.clock import FixedClock, SystemClock, now_iso, today_iso
from core.time.temporal import TimeWindow, days_since, parse_timestamp


NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)


# ── Clock Tests ──────────────────────────────────────────────

class TestSystemClock:
    def test_returns_utc_datetime(self):
        dt = SystemClock().now_utc()
        assert dt.tzinfo == timezone.utc


class TestFixedClock:
    def test_returns_fixed_time(self):
        clock = FixedClock(NOW)
        assert clock.now_utc() == NOW
        assert clock.now_utc() == NOW

    def test_rejects_naive_datetime(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            FixedClock(datetime(2025, 1, 1))

    def test_advance(self):
        clock = FixedClock(NOW)
        clock.advance(60)
        assert clock.now_utc() == NOW + timedelta(seconds=60)

    def test_iso_helpers(self):
        clock = FixedClock(NOW)
        assert now_iso(clock) == "2026-03-02T12:00:00+00:00"
        assert today_iso(clock) == "2026-03-02"


# ── TimeWindow Tests ─────────────────────────────────────────

class TestTimeWindow:
    def test_half_open(self):
        window = TimeWindow.following(NOW, 7)
        assert window.contains(NOW)
        assert not window.contains(NOW + timedelta(days=7))
        assert window.duration() == timedelta(days=7)

    def test_trailing(self):
        window = TimeWindow.trailing(NOW, 30)
        assert window.contains(NOW - timedelta(days=30))
        assert not window.contains(NOW)

    def test_rejects_inverted(self):
        with pytest.raises(ValueError):
            TimeWindow(start=NOW, end=NOW - timedelta(seconds=1))


# ── Parsing Tests ────────────────────────────────────────────

class TestParsing:
    def test_plain_date_string(self):
        assert parse_timestamp("2026-03-01") == datetime(2026, 3, 1, tzinfo=timezone.utc)

    def test_zulu_suffix(self):
        assert parse_timestamp("2026-03-01T10:00:00Z").hour == 10

    def test_date_object(self):
        assert parse_timestamp(date(2026, 1, 1)).tzinfo == timezone.utc

    def test_garbage_is_none(self):
        assert parse_timestamp("ontem") is None
        assert parse_timestamp("") is None

    def test_days_since(self):
        assert days_since("2026-01-01", NOW) == 60
        assert days_since(None, NOW) is None
