"""
Общие фикстуры тестов.

SQLite-база во временной директории, фабрики записей каталога и чатов.
"""

from datetime import datetime
from types import SimpleNamespace

import pytest
import pytest_asyncio

import database
from catalog_relay.database.catalog import CatalogEntry


@pytest_asyncio.fixture
async def sqlite_db(tmp_path):
    """Инициализированная SQLite база (aiosqlite) на время теста."""
    await database.init_database(f"sqlite+aiosqlite:///{tmp_path}/relay.db")
    yield database
    await database.close_database()


@pytest.fixture
def make_entry():
    """Фабрика CatalogEntry."""

    def _make(
        id: int = 1,
        title: str = "Inception",
        link: str = "https://t.me/moviechan/55",
        cover: str = "https://img.example.com/inception.jpg",
        created_at: datetime = datetime(2026, 1, 1, 12, 0, 0),
        source_table: str = "movies",
        synopsis: str = None
    ) -> CatalogEntry:
        return CatalogEntry(
            id=id,
            title=title,
            cover=cover,
            link=link,
            synopsis=synopsis,
            created_at=created_at,
            updated_at=created_at,
            source_table=source_table,
        )

    return _make


@pytest.fixture
def make_chat():
    """Фабрика объектов, похожих на aiogram Chat."""

    def _make(
        id: int,
        type: str = "private",
        title: str = None,
        username: str = None,
        first_name: str = None,
        last_name: str = None
    ) -> SimpleNamespace:
        return SimpleNamespace(
            id=id,
            type=type,
            title=title,
            username=username,
            first_name=first_name,
            last_name=last_name,
        )

    return _make
