"""
Visit records and the statistics derived from them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def date_for_timestamp(timestamp_ms: int) -> str:
    """
    Calendar date (UTC) of a millisecond timestamp, as YYYY-MM-DD.
    """
    dt = datetime.fromtimestamp(timestamp_ms // 1000, tz=timezone.utc)
    return dt.date().isoformat()


def _optional_int(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _non_negative(value) -> Optional[int]:
    number = _optional_int(value)
    if number is None or number < 0:
        return None
    return number


@dataclass(frozen=True)
class VisitEvent:
    """One recorded page view."""

    timestamp: int
    date: str
    referrer: str = "direct"
    user_agent: str = ""
    screen_size: str = ""
    language: str = ""
    path: str = "/"
    query_params: str = ""
    load_time: int = 0
    time_on_page: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Stored record layout (camelCase keys, timeOnPage only once known)."""
        data = {
            "timestamp": self.timestamp,
            "date": self.date,
            "referrer": self.referrer,
            "userAgent": self.user_agent,
            "screenSize": self.screen_size,
            "language": self.language,
            "path": self.path,
            "queryParams": self.query_params,
            "loadTime": self.load_time,
        }
        if self.time_on_page is not None:
            data["timeOnPage"] = self.time_on_page
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VisitEvent":
        """
        Build a VisitEvent from a stored record.
        Raises ValueError when the record has no usable timestamp.

        date is always re-derived from timestamp; a negative loadTime reads
        as unmeasured (0) and a negative timeOnPage as not recorded.
        """
        if not isinstance(data, dict):
            raise ValueError(f"visit record must be an object, got {type(data).__name__}")

        timestamp = _optional_int(data.get("timestamp"))
        if timestamp is None:
            raise ValueError("visit record has no integer timestamp")
        try:
            date = date_for_timestamp(timestamp)
        except (OverflowError, OSError, ValueError):
            raise ValueError(f"visit timestamp {timestamp} is out of range") from None

        return cls(
            timestamp=timestamp,
            date=date,
            referrer=str(data.get("referrer") or "direct"),
            user_agent=str(data.get("userAgent") or ""),
            screen_size=str(data.get("screenSize") or ""),
            language=str(data.get("language") or ""),
            path=str(data.get("path") or "/"),
            query_params=str(data.get("queryParams") or ""),
            load_time=_non_negative(data.get("loadTime")) or 0,
            time_on_page=_non_negative(data.get("timeOnPage")),
        )


@dataclass(frozen=True)
class StatsSummary:
    """
    Aggregated view of a visit log. Computed per report request, never stored.

    The mappings keep their display order: visits_by_date newest first,
    the others by count (ties in first-seen order).
    """

    total_visits: int = 0
    visits_by_date: Dict[str, int] = field(default_factory=dict)
    referrers: Dict[str, int] = field(default_factory=dict)
    pages: Dict[str, int] = field(default_factory=dict)
    devices: Dict[str, int] = field(default_factory=dict)
    average_time_on_page: float = 0.0
    average_load_time: float = 0.0
    average_daily_visits: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.total_visits == 0

    def share(self, count: int) -> float:
        """Percentage of all visits represented by count."""
        if not self.total_visits:
            return 0.0
        return count / self.total_visits * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_visits": self.total_visits,
            "visits_by_date": dict(self.visits_by_date),
            "referrers": dict(self.referrers),
            "pages": dict(self.pages),
            "devices": dict(self.devices),
            "average_time_on_page": self.average_time_on_page,
            "average_load_time": self.average_load_time,
            "average_daily_visits": self.average_daily_visits,
        }
