"""
Structured Logging для Production.

JSON-логи (ELK, DataDog, CloudWatch) или human-readable для локального запуска.
"""

import logging
import json
import sys
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pathlib import Path

# Стандартные атрибуты LogRecord, которые не попадают в "extra"
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime'}

# Сторонние библиотеки и их уровень
_LIBRARY_LEVELS = {
    "aiogram": logging.WARNING,
    "aiohttp": logging.WARNING,
    "sqlalchemy": logging.WARNING,
    "alembic": logging.INFO,
}


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter для структурированных логов.

    Output format:
    {
        "timestamp": "2024-11-24T12:34:56.789Z",
        "level": "INFO",
        "logger": "catalog_relay.poller.change_poller",
        "message": "🆕 movies: новых строк 2",
        "extra": {"chat_id": -100123}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        log_data["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName
        }

        return json.dumps(log_data, ensure_ascii=False, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Human-readable formatter для локальной разработки.

    Output format:
    2024-11-24 12:34:56 INFO     bot.main: Bot started
    """

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s %(levelname)-8s %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def setup_logging(
    level: str = "INFO",
    use_json: bool = True,
    log_file: Optional[Path] = None
) -> None:
    """
    Настройка logging для всего приложения.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        use_json: Использовать JSON формат (True для production)
        log_file: Путь к файлу логов (опционально)
    """
    formatter = StructuredFormatter() if use_json else HumanReadableFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for library, library_level in _LIBRARY_LEVELS.items():
        logging.getLogger(library).setLevel(library_level)


class ChatLoggerAdapter(logging.LoggerAdapter):
    """
    Adapter, добавляющий контекст чата в extra.

    Example:
        log = ChatLoggerAdapter(logger, {"chat_id": -100123, "chat_type": "supergroup"})
        log.info("📨 /send")
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = dict(kwargs.get("extra") or {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def auto_setup_logging():
    """
    Настройка логирования из переменных окружения.

    Environment variables:
        LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
        LOG_FORMAT: json или human (default: json)
        LOG_FILE: Путь к файлу логов (опционально)
    """
    log_level = os.getenv("LOG_LEVEL", "INFO")
    log_format = os.getenv("LOG_FORMAT", "json")
    log_file_path = os.getenv("LOG_FILE")

    setup_logging(
        level=log_level,
        use_json=log_format.lower() == "json",
        log_file=Path(log_file_path) if log_file_path else None
    )


__all__ = [
    'setup_logging',
    'ChatLoggerAdapter',
    'StructuredFormatter',
    'HumanReadableFormatter',
    'auto_setup_logging'
]
