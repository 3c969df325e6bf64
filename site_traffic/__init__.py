"""
Minimal first-party visit logger with a token-gated traffic report.
"""
from .classify import detect_device, extract_domain, format_referrer
from .config import TrafficConfig
from .models import StatsSummary, VisitEvent
from .retention import filter_recent
from .stats import aggregate

__all__ = [
    "TrafficConfig",
    "VisitEvent",
    "StatsSummary",
    "aggregate",
    "filter_recent",
    "extract_domain",
    "format_referrer",
    "detect_device",
]
