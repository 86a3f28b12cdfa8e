"""
CRISTAL Core Time — Public API
================================
Explicit clock protocol and temporal helpers.
Doctrine: NO datetime.now() in engine logic.
"""

from core.time.clock import (
    Clock,
    FixedClock,
    SystemClock,
    now_iso,
    today_iso,
)
from core.time.temporal import (
    TimeWindow,
    days_since,
    parse_timestamp,
)

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "now_iso",
    "today_iso",
    "TimeWindow",
    "days_since",
    "parse_timestamp",
]
