"""
Модуль обработчиков команд и сообщений бота.
"""

from . import (
    start,
    search,
    group_chat,
    forwarding,
)

__all__ = [
    'start',
    'search',
    'group_chat',
    'forwarding',
]
