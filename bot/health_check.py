"""
Health Check endpoint для мониторинга и Railway/Docker.

GET /health - БД + состояние relay-сервиса
GET /ready  - готовность принимать апдейты
GET /live   - процесс жив
GET /stats  - статистика Change Poller и рассылок
"""

import json
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Optional

from aiohttp import web
from sqlalchemy import text

from database import DatabaseSession

logger = logging.getLogger(__name__)

RELAY_KEY = web.AppKey("relay", object)

# Optional components (Sentry) report "disabled" when not configured
HEALTHY_CHECK_STATES = ("ok", "disabled")

_json_response = partial(web.json_response, dumps=partial(json.dumps, default=str))

_health_status = {
    "status": "starting",
    "started_at": datetime.now(timezone.utc).isoformat(),
    "checks": {}
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def health_check_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint: GET /health

    Returns:
        200 OK если все системы работают
        503 Service Unavailable если есть проблемы
    """
    try:
        async with DatabaseSession() as session:
            await session.execute(text("SELECT 1"))
        _health_status["checks"]["database"] = "ok"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        _health_status["checks"]["database"] = f"error: {e}"

    relay = request.app.get(RELAY_KEY)
    if relay is not None:
        poller_ok = relay.poller is None or relay.is_running
        _health_status["checks"]["change_poller"] = "ok" if poller_ok else "error: stopped"

    all_ok = all(check in HEALTHY_CHECK_STATES for check in _health_status["checks"].values())

    _health_status["status"] = "healthy" if all_ok else "degraded"
    _health_status["timestamp"] = _now()

    return _json_response(_health_status, status=200 if all_ok else 503)


async def readiness_handler(request: web.Request) -> web.Response:
    """Readiness check endpoint: GET /ready"""
    if _health_status["status"] in ["healthy", "degraded"]:
        return _json_response({"ready": True}, status=200)
    return _json_response({"ready": False}, status=503)


async def liveness_handler(request: web.Request) -> web.Response:
    """Liveness check endpoint: GET /live"""
    return _json_response({"alive": True}, status=200)


async def stats_handler(request: web.Request) -> web.Response:
    relay = request.app.get(RELAY_KEY)
    if relay is None:
        return _json_response({"error": "relay service is not running"}, status=503)
    return _json_response(relay.get_stats(), status=200)


def create_health_app(relay: Optional[object] = None) -> web.Application:
    """
    Создание aiohttp приложения с health endpoints.

    Args:
        relay: CatalogRelayService (опционально, для /stats)
    """
    app = web.Application()
    if relay is not None:
        app[RELAY_KEY] = relay

    app.router.add_get('/', health_check_handler)
    app.router.add_get('/health', health_check_handler)
    app.router.add_get('/ready', readiness_handler)
    app.router.add_get('/live', liveness_handler)
    app.router.add_get('/stats', stats_handler)
    return app


async def start_health_check_server(port: int = 8080, relay: Optional[object] = None) -> web.AppRunner:
    """
    Запуск health check HTTP сервера.

    Args:
        port: Порт для health check endpoint (default: 8080)
        relay: CatalogRelayService для /health и /stats

    Returns:
        AppRunner (для cleanup при остановке)
    """
    runner = web.AppRunner(create_health_app(relay))
    await runner.setup()

    site = web.TCPSite(runner, '0.0.0.0', port)
    await site.start()

    _health_status["status"] = "healthy"

    logger.info(f"✅ Health check server started on port {port}")
    logger.info(f"   GET http://0.0.0.0:{port}/health - Full health check")
    logger.info(f"   GET http://0.0.0.0:{port}/stats - Relay statistics")

    return runner


def update_health_status(component: str, status: str):
    """
    Обновление статуса компонента.

    Args:
        component: Название компонента (database, bot, change_poller)
        status: Статус ('ok', 'error: ...')
    """
    _health_status["checks"][component] = status
    logger.debug(f"Health status updated: {component} = {status}")


__all__ = [
    'create_health_app',
    'start_health_check_server',
    'update_health_status'
]
