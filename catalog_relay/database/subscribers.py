"""
Subscriber Registry: chats that receive catalog notifications.

The table may live in a schema we do not control (older deployments only
have ``chat_id``, ``chat_type`` and ``is_active``), so every write is tried
against an ordered list of row shapes until one succeeds.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import (
    Boolean, Column, DateTime, MetaData, String, Table, select, true, update
)
from sqlalchemy.exc import SQLAlchemyError

from database import DatabaseSession

logger = logging.getLogger(__name__)

DEFAULT_TABLE_NAME = 'bot_subscribers'

# (row_shape, columns): tried in order until one succeeds
WRITE_STRATEGIES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('full', (
        'chat_id', 'chat_type', 'title', 'username', 'first_name', 'last_name',
        'is_active', 'source', 'updated_at',
    )),
    ('minimal', ('chat_id', 'chat_type', 'is_active')),
)

# (row_shape, columns, filter_active)
READ_STRATEGIES: Tuple[Tuple[str, Tuple[str, ...], bool], ...] = (
    ('active', WRITE_STRATEGIES[0][1], True),
    ('active_minimal', ('chat_id', 'chat_type'), True),
    ('all_rows', ('chat_id', 'chat_type'), False),
)


@dataclass(frozen=True)
class Subscriber:
    """Подписчик (чат) на уведомления каталога."""
    chat_id: str
    chat_type: Optional[str] = None
    title: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool = True
    source: Optional[str] = None
    updated_at: Optional[datetime] = None


def build_subscribers_table(name: str = DEFAULT_TABLE_NAME, metadata: Optional[MetaData] = None) -> Table:
    """
    Table definition for the registry.

    No Python-side defaults: a column missing from the real schema must
    never sneak into a narrower write.
    """
    return Table(
        name,
        metadata if metadata is not None else MetaData(),
        Column('chat_id', String(64), primary_key=True),
        Column('chat_type', String(32), nullable=True),
        Column('title', String(255), nullable=True),
        Column('username', String(255), nullable=True),
        Column('first_name', String(255), nullable=True),
        Column('last_name', String(255), nullable=True),
        Column('is_active', Boolean, nullable=False, server_default=true()),
        Column('source', String(64), nullable=True),
        Column('updated_at', DateTime, nullable=True),
    )


def _plain(value: Any) -> Any:
    # aiogram enums (ChatType) -> raw string
    return getattr(value, 'value', value)


def chat_to_row(chat: Any, source: str) -> Dict[str, Any]:
    """Full row for an aiogram Chat (or anything with id/type)."""
    return {
        'chat_id': str(chat.id),
        'chat_type': _plain(getattr(chat, 'type', None)),
        'title': getattr(chat, 'title', None),
        'username': getattr(chat, 'username', None),
        'first_name': getattr(chat, 'first_name', None),
        'last_name': getattr(chat, 'last_name', None),
        'is_active': True,
        'source': source,
        'updated_at': datetime.utcnow(),
    }


def _dialect_insert(dialect_name: str):
    if dialect_name == 'postgresql':
        from sqlalchemy.dialects.postgresql import insert
    elif dialect_name == 'sqlite':
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"Upsert not supported for dialect {dialect_name}")
    return insert


class SubscriberRegistry:
    """
    Durable registry of subscribed chats.

    Registry failures are logged and swallowed: message handling and
    notification fan-out must keep working when the table is unavailable.
    """

    def __init__(self, table_name: str = DEFAULT_TABLE_NAME, session_factory=DatabaseSession):
        """
        Args:
            table_name: Subscriber table (SUBSCRIBERS_TABLE override)
            session_factory: Callable returning an async session context manager
        """
        self.table_name = table_name
        self.session_factory = session_factory
        self.metadata = MetaData()
        self.table = build_subscribers_table(table_name, self.metadata)

    async def init_table(self) -> None:
        """CREATE TABLE IF NOT EXISTS; an existing (even degraded) table is kept."""
        async with self.session_factory() as session:
            conn = await session.connection()
            await conn.run_sync(self.metadata.create_all)
        logger.info(f"✅ Таблица подписчиков '{self.table_name}' готова")

    # ============================================
    # WRITES
    # ============================================

    async def upsert(self, chat: Any, source: str) -> None:
        """
        Create or refresh a subscriber, last-write-wins keyed on chat id.

        Args:
            chat: aiogram Chat (id, type, title, username, first_name, last_name)
            source: What triggered the write (message, callback_query, my_chat_member...)
        """
        row = chat_to_row(chat, source)

        for shape, columns in WRITE_STRATEGIES:
            values = {column: row[column] for column in columns}
            try:
                async with self.session_factory() as session:
                    insert = _dialect_insert(session.get_bind().dialect.name)
                    stmt = insert(self.table).values(**values)
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[self.table.c.chat_id],
                        set_={column: stmt.excluded[column] for column in columns if column != 'chat_id'},
                    )
                    await session.execute(stmt)
                logger.debug(f"Subscriber {row['chat_id']} upserted ({shape})")
                return
            except (SQLAlchemyError, NotImplementedError) as e:
                logger.warning(f"⚠️ Upsert подписчика {row['chat_id']} ({shape}) не удался: {e}")

        logger.error(f"❌ Не удалось сохранить подписчика {row['chat_id']}")

    async def deactivate(self, chat_id: Any) -> None:
        """Soft-delete: is_active=false. Rows are never removed."""
        chat_id = str(chat_id)

        for shape, columns in WRITE_STRATEGIES:
            values: Dict[str, Any] = {'is_active': False}
            if 'updated_at' in columns:
                values['updated_at'] = datetime.utcnow()
            try:
                async with self.session_factory() as session:
                    await session.execute(
                        update(self.table)
                        .where(self.table.c.chat_id == chat_id)
                        .values(**values)
                    )
                logger.info(f"🚫 Подписчик {chat_id} деактивирован")
                return
            except SQLAlchemyError as e:
                logger.warning(f"⚠️ Деактивация {chat_id} ({shape}) не удалась: {e}")

        logger.error(f"❌ Не удалось деактивировать подписчика {chat_id}")

    # ============================================
    # READS
    # ============================================

    async def list_active(self) -> List[Subscriber]:
        """
        Active subscribers.

        Degrades to every row unfiltered when the schema has no usable
        ``is_active`` column, rather than notifying nobody.
        """
        for shape, columns, filter_active in READ_STRATEGIES:
            query = select(*[self.table.c[column] for column in columns])
            if filter_active:
                query = query.where(self.table.c.is_active == true())
            try:
                async with self.session_factory() as session:
                    result = await session.execute(query)
                    rows = result.mappings().all()
            except SQLAlchemyError as e:
                logger.warning(f"⚠️ Чтение подписчиков ({shape}) не удалось: {e}")
                continue

            return [Subscriber(**dict(row)) for row in rows]

        logger.error("❌ Список подписчиков недоступен")
        return []


__all__ = [
    'DEFAULT_TABLE_NAME',
    'WRITE_STRATEGIES',
    'READ_STRATEGIES',
    'Subscriber',
    'SubscriberRegistry',
    'build_subscribers_table',
    'chat_to_row',
]
