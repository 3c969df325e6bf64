"""
Tests for the retention window.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from site_traffic.models import VisitEvent, date_for_timestamp
from site_traffic.retention import cutoff_timestamp, filter_recent

DAY_MS = 24 * 60 * 60 * 1000
NOW = int(datetime(2025, 1, 31, 12, 0, tzinfo=timezone.utc).timestamp()) * 1000 + 250


def visit(ts):
    return VisitEvent(timestamp=ts, date=date_for_timestamp(ts))


class TestCutoff:
    """Calendar-day subtraction."""

    def test_plain_days(self):
        assert cutoff_timestamp(NOW, 30, timezone.utc) == NOW - 30 * DAY_MS

    def test_zero_days_is_now(self):
        assert cutoff_timestamp(NOW, 0, timezone.utc) == NOW
        assert cutoff_timestamp(NOW, 0) == NOW

    def test_across_dst_start(self):
        """Two calendar days back over the spring-forward night are 47 hours."""
        tz = ZoneInfo("America/New_York")
        now = int(datetime(2025, 3, 10, 12, 0, tzinfo=tz).timestamp()) * 1000
        assert cutoff_timestamp(now, 2, tz) == now - 47 * 60 * 60 * 1000

    def test_across_dst_end(self):
        tz = ZoneInfo("America/New_York")
        now = int(datetime(2025, 11, 2, 12, 0, tzinfo=tz).timestamp()) * 1000
        assert cutoff_timestamp(now, 1, tz) == now - 25 * 60 * 60 * 1000


class TestFilterRecent:
    """Pruning the stored log."""

    def test_empty(self):
        assert filter_recent([], NOW, 30) == []

    def test_keeps_window_in_order(self):
        events = [visit(NOW - DAY_MS), visit(NOW - 40 * DAY_MS), visit(NOW), visit(NOW - 30 * DAY_MS)]
        kept = filter_recent(events, NOW, 30, timezone.utc)
        assert kept == [events[0], events[2], events[3]]

    def test_zero_days_boundary(self):
        events = [visit(NOW), visit(NOW - 1), visit(NOW + 5)]
        kept = filter_recent(events, NOW, 0, timezone.utc)
        assert [e.timestamp for e in kept] == [NOW, NOW + 5]

    def test_idempotent(self):
        events = [visit(NOW - i * DAY_MS // 2) for i in range(100)]
        once = filter_recent(events, NOW, 7, timezone.utc)
        assert filter_recent(once, NOW, 7, timezone.utc) == once

    def test_does_not_mutate_input(self):
        events = [visit(NOW - 40 * DAY_MS), visit(NOW)]
        filter_recent(events, NOW, 30, timezone.utc)
        assert len(events) == 2
