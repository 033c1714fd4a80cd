"""
Главный файл Telegram бота Catalog Relay.
"""

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import BotCommand

from bot.config import BotConfig
from bot.env_validator import EnvValidator
from bot.handlers import group_chat, search, start
from bot.health_check import start_health_check_server, update_health_status
from bot.logger import auto_setup_logging
from bot.middlewares import SubscriberTrackingMiddleware
from catalog_relay.monitoring import capture_exception, flush_events, init_sentry
from catalog_relay.service import CatalogRelayService
from database import close_database, init_database

logger = logging.getLogger(__name__)


def build_dispatcher(relay: CatalogRelayService) -> Dispatcher:
    """
    Dispatcher с middleware и роутерами.

    relay передается в хендлеры через workflow data.
    """
    dp = Dispatcher(storage=MemoryStorage(), relay=relay)

    dp.update.outer_middleware(SubscriberTrackingMiddleware(relay.registry))

    dp.include_router(start.router)
    dp.include_router(group_chat.router)
    dp.include_router(search.router)

    return dp


async def main():
    """Главная функция запуска бота."""

    # ============================================
    # PRODUCTION: Валидация окружения
    # ============================================
    logger.info("🔍 Проверка переменных окружения...")
    EnvValidator.validate_and_exit_if_invalid(strict=False)

    try:
        BotConfig.validate()
        logger.info("✅ Конфигурация валидна")
    except ValueError as e:
        logger.error(f"❌ Ошибка конфигурации: {e}")
        capture_exception(e, level="fatal", tags={"component": "config"})
        return

    sentry_enabled = init_sentry(environment="production", traces_sample_rate=0.1)
    update_health_status("sentry", "ok" if sentry_enabled else "disabled")

    # Инициализируем базу данных
    logger.info("🗄️  Инициализация базы данных...")
    try:
        await init_database()
    except Exception as e:
        logger.error(f"❌ Ошибка инициализации БД: {e}")
        capture_exception(e, level="fatal", tags={"component": "database"})
        raise

    bot = Bot(token=BotConfig.BOT_TOKEN)

    relay = CatalogRelayService(
        bot=bot,
        send_secret=BotConfig.SEND_SECRET,
        subscribers_table=BotConfig.SUBSCRIBERS_TABLE,
        poll_interval=BotConfig.POLL_INTERVAL,
        batch_size=BotConfig.POLL_BATCH_SIZE,
        bot_username=BotConfig.BOT_USERNAME
    )
    await relay.initialize()

    dp = build_dispatcher(relay)

    logger.info(f"🏥 Запуск health check сервера на порту {BotConfig.HEALTH_CHECK_PORT}...")
    health_check_runner = await start_health_check_server(port=BotConfig.HEALTH_CHECK_PORT, relay=relay)

    try:
        await bot.delete_webhook(drop_pending_updates=True)

        commands = [
            BotCommand(command="start", description="🎬 Start"),
            BotCommand(command="search", description="🔍 Search the catalog (groups)"),
        ]
        await bot.set_my_commands(commands)
        logger.info("✅ Команды бота установлены")

        await relay.start()

        logger.info("✅ Бот успешно запущен!")
        update_health_status("bot", "ok")
        await dp.start_polling(bot)

    except Exception as e:
        logger.error(f"❌ Ошибка при запуске бота: {e}", exc_info=True)
        update_health_status("bot", f"error: {e}")
        capture_exception(e, level="fatal", tags={"component": "main"})
    finally:
        await relay.stop()
        await bot.session.close()
        await close_database()

        if health_check_runner:
            logger.info("🛑 Остановка health check сервера...")
            await health_check_runner.cleanup()

        flush_events(timeout=2)


def run():
    """Точка входа console script ``catalog-relay``."""
    auto_setup_logging()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("🛑 Бот остановлен пользователем")


if __name__ == "__main__":
    run()
