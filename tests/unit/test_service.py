"""
Unit тесты сборки сервиса и health endpoints.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp.test_utils import TestClient, TestServer

from bot import health_check
from bot.health_check import create_health_app, update_health_status
from catalog_relay.poller import ChangePoller
from catalog_relay.service import CatalogRelayService


@pytest.fixture
def bot():
    bot = AsyncMock()
    bot.get_me.return_value = MagicMock(username="relay_bot")
    return bot


@pytest.mark.unit
class TestCatalogRelayService:

    @pytest.mark.asyncio
    async def test_initialize_start_stop(self, sqlite_db, bot):
        relay = CatalogRelayService(bot=bot, send_secret="s3cr3t", poll_interval=3600)

        await relay.initialize()
        assert isinstance(relay.poller, ChangePoller)

        await relay.start()
        assert relay.is_running

        stats = relay.get_stats()
        assert stats['started_at'] is not None
        assert set(stats['poller']['watermarks']) == {'movies', 'movie_items'}

        await relay.stop()
        assert not relay.is_running

    def test_empty_secret_is_refused(self, bot):
        with pytest.raises(ValueError):
            CatalogRelayService(bot=bot, send_secret="")


@pytest.mark.unit
class TestHealthCheck:

    @pytest.mark.asyncio
    async def test_health_and_stats(self, sqlite_db, bot):
        relay = CatalogRelayService(bot=bot, send_secret="s3cr3t")

        async with TestClient(TestServer(create_health_app(relay))) as client:
            live = await client.get('/live')
            assert live.status == 200
            assert (await live.json()) == {"alive": True}

            health = await client.get('/health')
            body = await health.json()
            assert health.status == 200
            assert body['checks']['database'] == "ok"

            stats = await client.get('/stats')
            assert stats.status == 200
            assert 'notifier' in await stats.json()

    @pytest.mark.asyncio
    async def test_disabled_sentry_keeps_service_healthy(self, sqlite_db, monkeypatch):
        monkeypatch.setitem(health_check._health_status, "checks", {})
        update_health_status("sentry", "disabled")

        async with TestClient(TestServer(create_health_app())) as client:
            response = await client.get('/health')
            body = await response.json()

            assert response.status == 200
            assert body['status'] == "healthy"
            assert body['checks']['sentry'] == "disabled"

    @pytest.mark.asyncio
    async def test_failed_check_degrades_service(self, sqlite_db, monkeypatch):
        monkeypatch.setitem(health_check._health_status, "checks", {})
        update_health_status("bot", "error: unauthorized")

        async with TestClient(TestServer(create_health_app())) as client:
            response = await client.get('/health')

            assert response.status == 503

    @pytest.mark.asyncio
    async def test_stats_without_relay(self):
        async with TestClient(TestServer(create_health_app())) as client:
            response = await client.get('/stats')

            assert response.status == 503
