"""
Конфигурация Telegram бота.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Загружаем переменные окружения из .env (только для локального запуска)
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)


class BotConfig:
    """Конфигурация бота."""

    # Telegram Bot Token
    BOT_TOKEN = os.getenv('BOT_TOKEN') or os.getenv('TELEGRAM_BOT_TOKEN', '')

    # Секрет для подписи /send_<token>
    SEND_SECRET = os.getenv('SEND_SECRET', '')

    # Имя бота для deep link (если не задано, берется из getMe)
    BOT_USERNAME = os.getenv('BOT_USERNAME', '').strip().lstrip('@') or None

    # Таблица подписчиков
    SUBSCRIBERS_TABLE = os.getenv('SUBSCRIBERS_TABLE', '').strip() or 'bot_subscribers'

    # Мониторинг каталога
    # Числовые настройки читаются строками; validate() приводит их к int
    POLL_INTERVAL = os.getenv('POLL_INTERVAL') or '60'
    POLL_BATCH_SIZE = os.getenv('POLL_BATCH_SIZE') or '50'

    HEALTH_CHECK_PORT = os.getenv('HEALTH_CHECK_PORT') or '8080'

    INT_SETTINGS = ('POLL_INTERVAL', 'POLL_BATCH_SIZE', 'HEALTH_CHECK_PORT')

    @classmethod
    def validate(cls):
        """Проверяет, что все необходимые настройки заданы."""
        errors = []

        if not cls.BOT_TOKEN:
            errors.append("BOT_TOKEN не задан")

        if not cls.SEND_SECRET:
            errors.append("SEND_SECRET не задан")

        for name in cls.INT_SETTINGS:
            raw = getattr(cls, name)
            try:
                value = int(str(raw).strip())
            except ValueError:
                errors.append(f"{name} должен быть целым числом, получено {raw!r}")
                continue
            if value <= 0:
                errors.append(f"{name} должен быть > 0")
                continue
            setattr(cls, name, value)

        if errors:
            raise ValueError("Ошибки конфигурации:\n" + "\n".join(f"  - {e}" for e in errors))

        return True
