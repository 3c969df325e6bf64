"""
Visit log persistence: one JSON array per site key in a SQLite table.

Every write replaces the whole snapshot. Two writers racing on the same
key means the later one wins and the other's additions are gone.
"""

import json
import sqlite3
from typing import List, Sequence

from .logging_config import get_logger
from .models import VisitEvent

logger = get_logger(__name__)


def ensure_schema(db: sqlite3.Connection) -> None:
    """
    Create the blob table if missing. Safe to run every request.
    """
    db.execute(
        """
        CREATE TABLE IF NOT EXISTS blobs (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        """
    )
    db.commit()


class LogStore:
    """Read/write the full visit log stored under one key."""

    def __init__(self, db: sqlite3.Connection, key: str):
        self.db = db
        self.key = key

    def read(self) -> List[VisitEvent]:
        """
        Current snapshot. An absent, unreadable or corrupt log reads as empty.
        """
        try:
            row = self.db.execute(
                "SELECT value FROM blobs WHERE key = ?", (self.key,)
            ).fetchone()
        except sqlite3.Error as exc:
            logger.warning("visit log %r unreadable, treating as empty: %s", self.key, exc)
            return []
        if row is None:
            return []

        try:
            records = json.loads(row[0])
        except json.JSONDecodeError as exc:
            logger.warning("visit log %r is not valid JSON, treating as empty: %s", self.key, exc)
            return []
        if not isinstance(records, list):
            logger.warning("visit log %r is not a list, treating as empty", self.key)
            return []

        events = []
        for record in records:
            try:
                events.append(VisitEvent.from_dict(record))
            except ValueError as exc:
                logger.warning("dropping unusable visit record: %s", exc)
        return events

    def write(self, events: Sequence[VisitEvent]) -> None:
        blob = json.dumps([e.to_dict() for e in events], separators=(",", ":"), ensure_ascii=False)
        self.db.execute(
            """
            INSERT INTO blobs (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (self.key, blob),
        )
        self.db.commit()

    def clear(self) -> None:
        self.db.execute("DELETE FROM blobs WHERE key = ?", (self.key,))
        self.db.commit()
