"""
Пересылка поста из канала-хранилища по forward payload.
"""

import logging
from typing import Optional

from aiogram import Bot
from aiogram.types import Message

from catalog_relay.payload import ForwardPayload, resolve_target

logger = logging.getLogger(__name__)

MEDIA_ATTRIBUTES = ('video', 'document', 'animation', 'audio', 'voice')


def contains_media(message: Optional[Message]) -> bool:
    """True если в сообщении есть видео/файл/анимация/аудио/голосовое."""
    if message is None:
        return False
    return any(getattr(message, attribute, None) for attribute in MEDIA_ATTRIBUTES)


def thread_of(message: Message) -> Optional[int]:
    """Topic of the invoking message (forum supergroups only)."""
    if getattr(message, 'is_topic_message', None):
        return message.message_thread_id
    return None


async def forward_payload(
    bot: Bot,
    chat_id: int,
    payload: ForwardPayload,
    message_thread_id: Optional[int] = None
) -> Message:
    """
    Пересылает пост, на который указывает payload, в chat_id.

    Args:
        bot: aiogram Bot
        chat_id: Куда переслать
        payload: Forward payload
        message_thread_id: Topic of the destination chat

    Returns:
        Пересланное сообщение
    """
    target = resolve_target(payload)
    logger.info(f"📨 Пересылка {payload} → {chat_id}")

    return await bot.forward_message(
        chat_id=chat_id,
        from_chat_id=target.chat_target,
        message_id=target.message_id,
        message_thread_id=message_thread_id
    )


__all__ = ['MEDIA_ATTRIBUTES', 'contains_media', 'thread_of', 'forward_payload']
