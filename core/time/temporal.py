"""
CRISTAL Core Time — Temporal Helpers
======================================
Pure functions for time interval logic.
All functions take explicit datetime arguments — no hidden clock access.

Records store dates as ISO strings, either plain dates ("2026-03-02")
or full timestamps; `parse_timestamp` normalizes both to aware UTC.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union


# ══════════════════════════════════════════════════════════════
# TIME WINDOW
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TimeWindow:
    """
    A half-open time interval [start, end).

    Invariant: start <= end (enforced at construction).
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(
                f"TimeWindow start ({self.start}) must be <= end ({self.end})."
            )

    @classmethod
    def following(cls, now: datetime, days: int) -> TimeWindow:
        return cls(start=now, end=now + timedelta(days=days))

    @classmethod
    def trailing(cls, now: datetime, days: int) -> TimeWindow:
        return cls(start=now - timedelta(days=days), end=now)

    def contains(self, dt: datetime) -> bool:
        return self.start <= dt < self.end

    def duration(self) -> timedelta:
        return self.end - self.start


# ══════════════════════════════════════════════════════════════
# PURE TEMPORAL FUNCTIONS
# ══════════════════════════════════════════════════════════════

def parse_timestamp(value: Union[str, date, datetime, None]) -> Optional[datetime]:
    """
    Parse a stored date or timestamp into an aware UTC datetime.

    Returns None for empty or unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def days_since(value: Union[str, date, datetime, None], now: datetime) -> Optional[int]:
    """Whole days elapsed from `value` to `now`, or None when unknown."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return (now - parsed).days
