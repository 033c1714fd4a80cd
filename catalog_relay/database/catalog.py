"""
Read-only queries against the catalog tables (movies, movie_items).
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Type

from sqlalchemy import select

from database import DatabaseSession, Movie, MovieItem

logger = logging.getLogger(__name__)

CATALOG_MODELS: Dict[str, Type] = {
    'movies': Movie,
    'movie_items': MovieItem,
}


@dataclass(frozen=True)
class CatalogEntry:
    """A catalog row detached from the session."""
    id: int
    title: str
    cover: Optional[str]
    link: Optional[str]
    synopsis: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    source_table: str

    def timestamp(self, column: str = 'created_at') -> Optional[datetime]:
        return getattr(self, column)


def _to_entry(row, source_table: str) -> CatalogEntry:
    return CatalogEntry(
        id=row.id,
        title=row.title,
        cover=row.cover,
        link=row.link,
        synopsis=row.synopsis,
        created_at=row.created_at,
        updated_at=row.updated_at,
        source_table=source_table,
    )


class CatalogSource:
    """
    Источник строк каталога.

    Only simple filtered/sorted queries; the catalog is owned by another
    system and is never written here.
    """

    def __init__(self, session_factory=DatabaseSession, models: Optional[Dict[str, Type]] = None):
        self.session_factory = session_factory
        self.models = models or CATALOG_MODELS

    def _model(self, table: str):
        try:
            return self.models[table]
        except KeyError:
            raise ValueError(f"Unknown catalog table: {table}") from None

    async def fetch_latest(self, table: str, timestamp_column: str = 'created_at') -> Optional[CatalogEntry]:
        """Most recent row by timestamp desc, id desc."""
        model = self._model(table)
        ts = getattr(model, timestamp_column)

        async with self.session_factory() as session:
            result = await session.execute(
                select(model)
                .where(ts.is_not(None))
                .order_by(ts.desc(), model.id.desc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return _to_entry(row, table) if row else None

    async def fetch_since(
        self,
        table: str,
        after: Optional[datetime],
        limit: int,
        timestamp_column: str = 'created_at'
    ) -> List[CatalogEntry]:
        """
        Rows strictly newer than ``after``, oldest first.

        Args:
            table: Source table name
            after: Watermark timestamp; None means the table was empty at bootstrap
            limit: Batch cap
            timestamp_column: Change timestamp column
        """
        model = self._model(table)
        ts = getattr(model, timestamp_column)

        query = select(model).where(ts.is_not(None))
        if after is not None:
            query = query.where(ts > after)
        query = query.order_by(ts.asc(), model.id.asc()).limit(limit)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return [_to_entry(row, table) for row in result.scalars().all()]

    async def search(self, query: str, limit: int = 5, tables: Optional[Sequence[str]] = None) -> List[CatalogEntry]:
        """Case-insensitive title search, ``limit`` rows per table."""
        entries: List[CatalogEntry] = []
        pattern = f"%{query}%"

        async with self.session_factory() as session:
            for table in tables or list(self.models):
                model = self._model(table)
                result = await session.execute(
                    select(model).where(model.title.ilike(pattern)).order_by(model.id.desc()).limit(limit)
                )
                entries.extend(_to_entry(row, table) for row in result.scalars().all())

        return entries


__all__ = ['CATALOG_MODELS', 'CatalogEntry', 'CatalogSource']
