"""
Модуль мониторинга и error tracking с использованием Sentry.

Без SENTRY_DSN все функции no-op (ошибки только логируются).
"""

import os
import logging
from typing import Optional, Dict, Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

logger = logging.getLogger(__name__)

# Глобальная переменная для проверки инициализации
_sentry_initialized = False

# Некритичные сетевые ошибки Telegram (происходят периодически)
NON_CRITICAL_PATTERNS = (
    'timeout',
    'timed out',
    'connection reset',
    'connection refused',
    'network is unreachable',
    'temporary failure',
    'flood',
    'too many requests',
    'retry after',
    'bad gateway',
    'service unavailable',
)

NON_CRITICAL_TYPES = (
    'TelegramNetworkError',
    'TelegramRetryAfter',
    'TimeoutError',
    'ConnectionError',
)

SENSITIVE_KEYS = ('token', 'password', 'secret', 'key')


def init_sentry(
    dsn: Optional[str] = None,
    environment: str = "production",
    traces_sample_rate: float = 0.1
) -> bool:
    """
    Инициализация Sentry для мониторинга ошибок.

    Args:
        dsn: Sentry DSN (если None, берется из переменной окружения)
        environment: Окружение (production/staging/development)
        traces_sample_rate: Доля трассировки запросов (0.0-1.0)

    Returns:
        True если успешно инициализирован, False иначе
    """
    global _sentry_initialized

    if _sentry_initialized:
        logger.warning("Sentry уже инициализирован")
        return True

    sentry_dsn = dsn or os.getenv('SENTRY_DSN')

    if not sentry_dsn:
        logger.warning("Sentry DSN не указан - мониторинг отключен")
        return False

    try:
        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=environment,
            traces_sample_rate=traces_sample_rate,
            integrations=[
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
                AioHttpIntegration(),
            ],
            attach_stacktrace=True,
            send_default_pii=False,  # Не отправлять персональные данные
            max_breadcrumbs=50,
            before_send=_before_send_filter,
        )
    except Exception as e:
        logger.error(f"❌ Ошибка инициализации Sentry: {e}")
        return False

    _sentry_initialized = True
    logger.info(f"✅ Sentry инициализирован (environment={environment})")
    return True


def _before_send_filter(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Фильтр событий перед отправкой в Sentry.

    Drops transient Telegram/network noise and masks secrets in breadcrumbs.

    Returns:
        Модифицированное событие или None (чтобы не отправлять)
    """
    if 'exc_info' in hint:
        exc_type, exc_value, _ = hint['exc_info']
        error_str = str(exc_value).lower()
        error_type = exc_type.__name__ if exc_type else ''

        if isinstance(exc_value, KeyboardInterrupt):
            return None

        if error_type in NON_CRITICAL_TYPES:
            return None

        if any(pattern in error_str for pattern in NON_CRITICAL_PATTERNS):
            return None

    breadcrumbs = event.get('breadcrumbs') or {}
    values = breadcrumbs.get('values', []) if isinstance(breadcrumbs, dict) else breadcrumbs
    for breadcrumb in values:
        data = breadcrumb.get('data') or {}
        for key in list(data.keys()):
            if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
                data[key] = '[FILTERED]'

    return event


def capture_exception(
    error: Exception,
    level: str = "error",
    extra: Optional[Dict[str, Any]] = None,
    tags: Optional[Dict[str, str]] = None
) -> Optional[str]:
    """
    Отправка исключения в Sentry с дополнительным контекстом.

    Args:
        error: Исключение
        level: Уровень важности (error/warning/fatal)
        extra: Дополнительные данные
        tags: Теги для фильтрации

    Returns:
        Event ID от Sentry или None
    """
    if not _sentry_initialized:
        return None

    try:
        with sentry_sdk.new_scope() as scope:
            scope.level = level
            if extra:
                scope.set_context("extra_data", extra)
            for key, value in (tags or {}).items():
                scope.set_tag(key, value)
            event_id = sentry_sdk.capture_exception(error)
        logger.info(f"📤 Отправлено в Sentry: {event_id}")
        return event_id

    except Exception as e:
        logger.error(f"❌ Ошибка отправки в Sentry: {e}")
        return None


def flush_events(timeout: int = 2):
    """
    Принудительная отправка всех накопленных событий в Sentry.

    Args:
        timeout: Таймаут в секундах
    """
    if not _sentry_initialized:
        return

    try:
        sentry_sdk.flush(timeout=timeout)
    except Exception as e:
        logger.error(f"❌ Ошибка отправки событий: {e}")


__all__ = [
    'init_sentry',
    'capture_exception',
    'flush_events',
]
