"""
Event source glue: turns page lifecycle moments into saved visit records.
"""

from dataclasses import replace
from urllib.parse import urlsplit

from .config import TrafficConfig
from .environment import Environment
from .logging_config import get_logger
from .models import VisitEvent, date_for_timestamp
from .retention import filter_recent
from .store import LogStore

logger = get_logger(__name__)


class VisitRecorder:
    """
    Records one page view in up to two saves: when the page has loaded,
    and again when the visitor leaves (now with time on page). Each save
    appends, so a visit seen at both moments is logged twice.
    """

    def __init__(self, store: LogStore, config: TrafficConfig):
        self.store = store
        self.config = config

    def start(self, env: Environment) -> VisitEvent:
        """Fresh, unsaved record for the page the environment is showing."""
        now = env.now_ms()
        url = urlsplit(env.url or "/")
        return VisitEvent(
            timestamp=now,
            date=date_for_timestamp(now),
            referrer=env.referrer or "direct",
            user_agent=env.user_agent,
            screen_size=env.screen_size,
            language=env.language,
            path=url.path or "/",
            query_params=f"?{url.query}" if url.query else "",
            load_time=0,
        )

    def loaded(self, event: VisitEvent, load_time: int, env: Environment) -> VisitEvent:
        event = replace(event, load_time=max(int(load_time), 0))
        self.save(event, env.now_ms())
        return event

    def exited(self, event: VisitEvent, env: Environment) -> VisitEvent:
        now = env.now_ms()
        seconds = max(now - event.timestamp, 0) // 1000
        event = replace(event, time_on_page=seconds)
        self.save(event, now)
        return event

    def save(self, event: VisitEvent, now_ms: int) -> None:
        """
        Append to the stored log and prune it to the retention window.
        """
        events = self.store.read()
        events.append(event)
        kept = filter_recent(events, now_ms, self.config.retention_days)
        self.store.write(kept)
        logger.debug(
            "saved visit to %s (%d kept, %d pruned)",
            event.path, len(kept), len(events) - len(kept),
        )
