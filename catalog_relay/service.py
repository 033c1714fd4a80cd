"""
Catalog Relay Service - главный модуль координации.

Объединяет Subscriber Registry, Catalog Source, Change Poller и
Telegram Notifier в единую систему уведомлений.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from aiogram import Bot

from catalog_relay.config import is_component_enabled
from catalog_relay.database import CatalogSource, SubscriberRegistry, DEFAULT_TABLE_NAME
from catalog_relay.notifications.telegram_notifier import TelegramNotifier
from catalog_relay.poller import ChangePoller
from catalog_relay.tokens import SendTokenCodec

logger = logging.getLogger(__name__)


class CatalogRelayService:
    """
    Главный сервис Catalog Relay.

    Workflow:
    1. Change Poller находит новые строки каталога
    2. Telegram Notifier рендерит карточку
    3. Карточка уходит всем активным подписчикам из Registry
    """

    def __init__(
        self,
        bot: Bot,
        send_secret: str,
        subscribers_table: str = DEFAULT_TABLE_NAME,
        poll_interval: float = 60,
        batch_size: int = 50,
        bot_username: Optional[str] = None
    ):
        """
        Args:
            bot: aiogram Bot (shared with the dispatcher)
            send_secret: Signing secret for /send tokens
            subscribers_table: Subscriber table name
            poll_interval: Poll interval in seconds
            batch_size: Max rows per source per tick
            bot_username: Bot handle override
        """
        self.bot = bot
        self.poll_interval = poll_interval
        self.batch_size = batch_size

        self.codec = SendTokenCodec(send_secret)
        self.registry = SubscriberRegistry(table_name=subscribers_table)
        self.catalog = CatalogSource()
        self.notifier = TelegramNotifier(
            bot=bot,
            registry=self.registry,
            codec=self.codec,
            bot_username=bot_username
        )
        self.poller: Optional[ChangePoller] = None

        self.stats = {'started_at': None}

    async def initialize(self):
        """Инициализация всех компонентов."""
        logger.info("🚀 Инициализация Catalog Relay Service...")

        await self.registry.init_table()

        if is_component_enabled('change_poller'):
            self.poller = ChangePoller(
                catalog=self.catalog,
                dispatcher=self.notifier,
                poll_interval=self.poll_interval,
                batch_size=self.batch_size
            )
            logger.info("✅ Change Poller готов")
        else:
            logger.info("ℹ️  Change Poller отключен в config/features.yaml")

        logger.info("✅ Catalog Relay Service инициализирован")

    async def start(self):
        """Запуск мониторинга (не блокирует)."""
        self.stats['started_at'] = datetime.now()
        if self.poller:
            await self.poller.start()

    async def stop(self):
        """Остановка сервиса."""
        logger.info("🛑 Остановка Catalog Relay Service...")
        if self.poller:
            await self.poller.stop()
        self._print_stats()

    @property
    def is_running(self) -> bool:
        return bool(self.poller and self.poller.is_running)

    def get_stats(self) -> Dict[str, Any]:
        return {
            'started_at': self.stats['started_at'].isoformat() if self.stats['started_at'] else None,
            'poller': self.poller.get_stats() if self.poller else None,
            'notifier': self.notifier.get_stats(),
        }

    def _print_stats(self):
        notifier_stats = self.notifier.get_stats()
        logger.info(f"📱 Отправлено: {notifier_stats['notifications_sent']}, "
                    f"❌ Ошибок: {notifier_stats['notifications_failed']}, "
                    f"🚫 Деактивировано: {notifier_stats['subscribers_deactivated']}")
