"""
Retention window: keep the last N calendar days of visits.
"""

from datetime import datetime, timedelta, tzinfo
from typing import List, Optional, Sequence

from .models import VisitEvent


def cutoff_timestamp(now_ms: int, days_to_keep: int, tz: Optional[tzinfo] = None) -> int:
    """
    now_ms minus days_to_keep calendar days, in ms since epoch.

    The subtraction happens on the wall clock of tz (process-local time when
    tz is None), so across a DST change the cutoff moves by 23 or 25 hours.
    """
    seconds, millis = divmod(now_ms, 1000)
    if tz is None:
        wall = datetime.fromtimestamp(seconds)
    else:
        wall = datetime.fromtimestamp(seconds, tz=tz)

    # aware datetimes also do wall-clock arithmetic; .timestamp() re-resolves the offset
    cutoff = wall - timedelta(days=days_to_keep)
    return int(cutoff.timestamp()) * 1000 + millis


def filter_recent(
    events: Sequence[VisitEvent],
    now_ms: int,
    days_to_keep: int,
    tz: Optional[tzinfo] = None,
) -> List[VisitEvent]:
    """Events not older than the retention window, in their original order."""
    cutoff = cutoff_timestamp(now_ms, days_to_keep, tz)
    return [e for e in events if e.timestamp >= cutoff]
