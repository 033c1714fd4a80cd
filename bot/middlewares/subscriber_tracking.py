"""
Middleware для учета подписчиков.

Любое входящее взаимодействие с чатом создает или обновляет запись в
Subscriber Registry. Ошибки реестра не мешают обработке апдейта.
"""

import logging
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import Chat, TelegramObject, Update

from catalog_relay.database import SubscriberRegistry

logger = logging.getLogger(__name__)


class SubscriberTrackingMiddleware(BaseMiddleware):
    """
    Outer middleware на уровне Update.

    Регистрируется через dp.update.outer_middleware(...), поэтому
    event_chat уже определен встроенным UserContextMiddleware aiogram.
    """

    def __init__(self, registry: SubscriberRegistry):
        self.registry = registry

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        chat: Chat = data.get('event_chat')

        if chat is not None:
            source = event.event_type if isinstance(event, Update) else type(event).__name__.lower()
            try:
                await self.registry.upsert(chat, source=source)
            except Exception as e:
                logger.warning(f"⚠️  Не удалось сохранить подписчика {chat.id}: {e}")

        return await handler(event, data)


__all__ = ['SubscriberTrackingMiddleware']
