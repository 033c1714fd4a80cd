"""
Change detection for the catalog tables.

Example usage:
    from catalog_relay.poller import ChangePoller

    poller = ChangePoller(catalog, notifier, poll_interval=60)
    await poller.start()
    ...
    await poller.stop()
"""

from .change_poller import DEFAULT_SOURCES, ChangePoller, SourceConfig
from .cursor import CursorStore, Watermark

__all__ = ['ChangePoller', 'SourceConfig', 'DEFAULT_SOURCES', 'CursorStore', 'Watermark']
