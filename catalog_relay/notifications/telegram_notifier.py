"""
Telegram Notification Service для Catalog Relay.

Рассылает карточку новой записи каталога всем активным подписчикам.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from aiogram import Bot
from aiogram.exceptions import (
    TelegramBadRequest,
    TelegramForbiddenError,
    TelegramMigrateToChat,
)

from catalog_relay.database.catalog import CatalogEntry
from catalog_relay.database.subscribers import SubscriberRegistry
from catalog_relay.notifications.rendering import RenderedCard, render_card
from catalog_relay.payload import ForwardPayload, build_forward_payload
from catalog_relay.tokens import SendTokenCodec

logger = logging.getLogger(__name__)

PERMANENT = 'permanent'
TRANSIENT = 'transient'

# TelegramBadRequest descriptions meaning the chat is gone for good
PERMANENT_BAD_REQUEST_PATTERNS = (
    'migrated',
    'upgraded to a supergroup',
    'chat not found',
    'bot was kicked',
    'user is deactivated',
    'peer_id_invalid',
)


@dataclass(frozen=True)
class NotificationJob:
    """A catalog row plus its derived payload; lives for one dispatch."""
    entry: CatalogEntry
    payload: Optional[ForwardPayload]

    @classmethod
    def from_entry(cls, entry: CatalogEntry) -> 'NotificationJob':
        return cls(entry=entry, payload=build_forward_payload(entry.link))


def classify_error(error: BaseException) -> str:
    """
    Permanent = the chat will never accept delivery again.

    Returns:
        PERMANENT or TRANSIENT
    """
    if isinstance(error, (TelegramForbiddenError, TelegramMigrateToChat)):
        return PERMANENT

    if isinstance(error, TelegramBadRequest):
        description = str(error).lower()
        if any(pattern in description for pattern in PERMANENT_BAD_REQUEST_PATTERNS):
            return PERMANENT

    return TRANSIENT


def _chat_ref(chat_id: str) -> Union[int, str]:
    if chat_id.lstrip('-').isdigit():
        return int(chat_id)
    return chat_id


async def send_card(
    bot: Bot,
    chat_id: Union[int, str],
    card: RenderedCard,
    message_thread_id: Optional[int] = None
):
    """
    Отправка карточки: фото с подписью, при отклоненной обложке - текст.

    Permanent errors are re-raised as is, so the caller can classify them.
    """
    if card.photo:
        try:
            await bot.send_photo(
                chat_id=chat_id,
                photo=card.photo,
                caption=card.caption,
                reply_markup=card.reply_markup,
                message_thread_id=message_thread_id
            )
            return
        except TelegramBadRequest as e:
            if classify_error(e) == PERMANENT:
                raise
            logger.warning(f"⚠️ Обложка отклонена для чата {chat_id}, отправляем текст: {e}")

    await bot.send_message(
        chat_id=chat_id,
        text=card.caption,
        reply_markup=card.reply_markup,
        disable_web_page_preview=True,
        message_thread_id=message_thread_id
    )


class TelegramNotifier:
    """
    Fan-out уведомлений в Telegram.

    Особенности:
    - Последовательная отправка (throttle против лимитов Telegram)
    - Ошибка одного подписчика не прерывает рассылку
    - Постоянные ошибки (бот заблокирован, чат мигрировал) деактивируют подписчика
    """

    def __init__(
        self,
        bot: Bot,
        registry: SubscriberRegistry,
        codec: SendTokenCodec,
        bot_username: Optional[str] = None,
        send_delay: float = 0.05
    ):
        """
        Args:
            bot: aiogram Bot
            registry: Subscriber Registry
            codec: Send token codec for group captions
            bot_username: Bot handle override (resolved via get_me otherwise)
            send_delay: Pause between two subscribers, seconds
        """
        self.bot = bot
        self.registry = registry
        self.codec = codec
        self.bot_username = bot_username.lstrip('@') if bot_username else None
        self.send_delay = send_delay

        self.stats = {
            'jobs_dispatched': 0,
            'jobs_skipped': 0,
            'jobs_deferred': 0,
            'notifications_sent': 0,
            'notifications_failed': 0,
            'subscribers_deactivated': 0,
        }

    async def get_bot_username(self) -> str:
        if not self.bot_username:
            me = await self.bot.get_me()
            self.bot_username = me.username
            logger.info(f"🤖 Bot username: @{self.bot_username}")
        return self.bot_username

    async def dispatch(
        self,
        job: NotificationJob,
        should_stop: Optional[Callable[[], bool]] = None
    ) -> Dict[str, Any]:
        """
        Отправка одной записи каталога всем активным подписчикам.

        Args:
            job: Notification job
            should_stop: Checked before each subscriber; True stops the loop

        Returns:
            {'sent': int, 'failed': int, 'deactivated': int, 'skipped': bool, 'retry': bool}
            retry=True means nothing was sent and the job should be dispatched again
        """
        report = {'sent': 0, 'failed': 0, 'deactivated': 0, 'skipped': False, 'retry': False}

        if job.payload is None:
            logger.debug(f"Запись {job.entry.source_table}#{job.entry.id} без ссылки на пост, пропускаем")
            self.stats['jobs_skipped'] += 1
            report['skipped'] = True
            return report

        try:
            bot_username = await self.get_bot_username()
        except Exception as e:
            logger.warning(f"⚠️ Не удалось получить username бота, рассылка отложена: {e}")
            self.stats['jobs_deferred'] += 1
            report['retry'] = True
            return report

        subscribers = await self.registry.list_active()

        logger.info(f"📤 '{job.entry.title}' → {len(subscribers)} подписчиков")

        for index, subscriber in enumerate(subscribers):
            if should_stop and should_stop():
                logger.info("🛑 Рассылка прервана остановкой сервиса")
                break

            card = render_card(
                title=job.entry.title,
                cover=job.entry.cover,
                payload=job.payload,
                chat_type=subscriber.chat_type,
                bot_username=bot_username,
                codec=self.codec,
            )

            try:
                await send_card(self.bot, _chat_ref(subscriber.chat_id), card)
                report['sent'] += 1
                self.stats['notifications_sent'] += 1

            except Exception as e:
                if classify_error(e) == PERMANENT:
                    logger.warning(f"⛔ Чат {subscriber.chat_id} недоступен навсегда: {e}")
                    await self.registry.deactivate(subscriber.chat_id)
                    report['deactivated'] += 1
                    self.stats['subscribers_deactivated'] += 1
                else:
                    logger.error(f"❌ Ошибка отправки в чат {subscriber.chat_id}: {e}")
                    report['failed'] += 1
                    self.stats['notifications_failed'] += 1

            if self.send_delay and index < len(subscribers) - 1:
                await asyncio.sleep(self.send_delay)

        self.stats['jobs_dispatched'] += 1
        logger.info(
            f"✅ Отправлено: {report['sent']}, ❌ Ошибок: {report['failed']}, "
            f"🚫 Деактивировано: {report['deactivated']}"
        )
        return report

    def get_stats(self) -> Dict[str, Any]:
        """Получение статистики уведомлений."""
        return self.stats.copy()


__all__ = [
    'PERMANENT',
    'TRANSIENT',
    'NotificationJob',
    'TelegramNotifier',
    'classify_error',
    'send_card',
]
