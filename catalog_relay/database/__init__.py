"""
Database access for Catalog Relay.

Example usage:
    from catalog_relay.database import SubscriberRegistry, CatalogSource

    registry = SubscriberRegistry(table_name='bot_subscribers')
    await registry.init_table()
    await registry.upsert(message.chat, source='message')

    catalog = CatalogSource()
    latest = await catalog.fetch_latest('movies')
"""

from .catalog import CATALOG_MODELS, CatalogEntry, CatalogSource
from .subscribers import (
    DEFAULT_TABLE_NAME,
    Subscriber,
    SubscriberRegistry,
    build_subscribers_table,
)

__all__ = [
    'CATALOG_MODELS',
    'CatalogEntry',
    'CatalogSource',
    'DEFAULT_TABLE_NAME',
    'Subscriber',
    'SubscriberRegistry',
    'build_subscribers_table',
]
