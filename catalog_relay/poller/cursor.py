"""
Cursor Store: in-memory watermark per source table.

Process-local, single writer (the ChangePoller).
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Watermark:
    """
    Last observed row of a source table.

    An empty watermark (both cursors None) means the table had no rows at
    bootstrap, so every row seen later is new.
    """
    timestamp_cursor: Optional[datetime] = None
    id_cursor: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.timestamp_cursor is None

    def sort_key(self) -> Tuple[datetime, int]:
        return (self.timestamp_cursor or datetime.min, self.id_cursor or 0)

    def is_newer_than(self, other: 'Watermark') -> bool:
        if self.is_empty:
            return False
        if other.is_empty:
            return True
        return self.sort_key() > other.sort_key()


class CursorStore:
    """Watermarks keyed by source table; only ever moved forward."""

    def __init__(self):
        self._watermarks: Dict[str, Watermark] = {}

    def is_initialized(self, table: str) -> bool:
        return table in self._watermarks

    def get(self, table: str) -> Optional[Watermark]:
        return self._watermarks.get(table)

    def initialize(self, table: str, watermark: Watermark) -> None:
        """Bootstrap value; ignored when the table already has a watermark."""
        if table in self._watermarks:
            logger.debug(f"Watermark for {table} already initialized")
            return
        self._watermarks[table] = watermark
        logger.info(f"📍 Watermark {table}: {watermark.timestamp_cursor} (id={watermark.id_cursor})")

    def advance(self, table: str, watermark: Watermark) -> bool:
        """
        Move the watermark forward.

        Returns:
            True if advanced, False if the candidate is not strictly newer
        """
        current = self._watermarks.get(table)
        if current is None:
            raise KeyError(f"Watermark for {table} is not initialized")

        if not watermark.is_newer_than(current):
            return False

        self._watermarks[table] = watermark
        logger.debug(f"Watermark {table} -> {watermark.timestamp_cursor} (id={watermark.id_cursor})")
        return True

    def snapshot(self) -> Dict[str, Watermark]:
        return dict(self._watermarks)


__all__ = ['Watermark', 'CursorStore']
