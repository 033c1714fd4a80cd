"""
Notification rendering and fan-out.

Example usage:
    from catalog_relay.notifications import TelegramNotifier, NotificationJob

    notifier = TelegramNotifier(bot, registry, codec)
    report = await notifier.dispatch(NotificationJob.from_entry(entry))
"""

from .rendering import CaptionStrategy, RenderedCard, caption_strategy_for, render_card
from .telegram_notifier import (
    PERMANENT,
    TRANSIENT,
    NotificationJob,
    TelegramNotifier,
    classify_error,
    send_card,
)

__all__ = [
    'CaptionStrategy',
    'RenderedCard',
    'caption_strategy_for',
    'render_card',
    'PERMANENT',
    'TRANSIENT',
    'NotificationJob',
    'TelegramNotifier',
    'classify_error',
    'send_card',
]
