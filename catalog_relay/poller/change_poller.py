"""
Change Poller: периодически находит новые строки каталога и рассылает их.

Per source table the poller is IDLE -> SCANNING -> IDLE. A tick that
arrives while a scan is in flight is dropped, not queued.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from catalog_relay.database.catalog import CatalogEntry, CatalogSource
from catalog_relay.monitoring import capture_exception
from catalog_relay.notifications.telegram_notifier import NotificationJob, TelegramNotifier
from catalog_relay.poller.cursor import CursorStore, Watermark

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceConfig:
    """Source table and its change timestamp column."""
    table: str
    timestamp_column: str = 'created_at'


DEFAULT_SOURCES = (
    SourceConfig('movies'),
    SourceConfig('movie_items'),
)


class ChangePoller:
    """
    Детектор новых записей каталога.

    Особенности:
    - Bootstrap: watermark = самая свежая строка, история не рассылается
    - Строки строго новее watermark, по возрастанию (timestamp, id)
    - Watermark двигается после батча независимо от результата доставки
      (кроме отложенной рассылки: строка повторяется на следующем тике)
    - Re-entrancy guard: одновременно не более одного скана
    """

    def __init__(
        self,
        catalog: CatalogSource,
        dispatcher: TelegramNotifier,
        cursor_store: Optional[CursorStore] = None,
        sources: Sequence[SourceConfig] = DEFAULT_SOURCES,
        poll_interval: float = 60,
        batch_size: int = 50
    ):
        """
        Args:
            catalog: Catalog row source
            dispatcher: Fan-out dispatcher
            cursor_store: Watermarks (a fresh store by default)
            sources: Source tables to scan
            poll_interval: Seconds between ticks
            batch_size: Max rows per source per tick
        """
        self.catalog = catalog
        self.dispatcher = dispatcher
        self.cursor_store = cursor_store if cursor_store is not None else CursorStore()
        self.sources = tuple(sources)
        self.poll_interval = poll_interval
        self.batch_size = batch_size

        self._scanning = False
        self._running = False
        self._stop_requested = False
        self._wakeup: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

        self.stats = {
            'ticks': 0,
            'ticks_skipped': 0,
            'rows_processed': 0,
            'errors': 0,
            'jobs_deferred': 0,
            'last_tick': None,
            'started_at': None,
        }

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_scanning(self) -> bool:
        return self._scanning

    # ============================================
    # BOOTSTRAP
    # ============================================

    async def bootstrap(self):
        """
        Initialize the watermark of every source that has none yet.

        A failed read leaves the source uninitialized; it is retried on the
        next tick and never scanned in the meantime.
        """
        for source in self.sources:
            if self.cursor_store.is_initialized(source.table):
                continue

            try:
                latest = await self.catalog.fetch_latest(source.table, source.timestamp_column)
            except Exception as e:
                logger.error(f"❌ Bootstrap {source.table} не удался: {e}", exc_info=True)
                self.stats['errors'] += 1
                capture_exception(e, tags={"component": "change_poller", "table": source.table})
                continue

            if latest is None:
                watermark = Watermark()
            else:
                watermark = Watermark(latest.timestamp(source.timestamp_column), latest.id)

            self.cursor_store.initialize(source.table, watermark)

    # ============================================
    # TICK
    # ============================================

    async def tick(self) -> int:
        """
        Однократный скан всех источников.

        Returns:
            Number of rows processed (0 when skipped)
        """
        if self._scanning:
            logger.info("⏭️  Скан уже выполняется, тик пропущен")
            self.stats['ticks_skipped'] += 1
            return 0

        self._scanning = True
        try:
            await self.bootstrap()

            processed = 0
            for source in self.sources:
                if self._stop_requested:
                    break
                if not self.cursor_store.is_initialized(source.table):
                    continue

                try:
                    processed += await self._scan_source(source)
                except Exception as e:
                    logger.error(f"❌ Ошибка скана {source.table}: {e}", exc_info=True)
                    self.stats['errors'] += 1
                    capture_exception(e, tags={"component": "change_poller", "table": source.table})

            self.stats['ticks'] += 1
            self.stats['rows_processed'] += processed
            self.stats['last_tick'] = datetime.now()
            return processed
        finally:
            self._scanning = False

    async def _scan_source(self, source: SourceConfig) -> int:
        watermark = self.cursor_store.get(source.table)

        rows = await self.catalog.fetch_since(
            source.table,
            watermark.timestamp_cursor,
            self.batch_size,
            source.timestamp_column
        )
        if not rows:
            logger.debug(f"ℹ️  {source.table}: новых строк нет")
            return 0

        logger.info(f"🆕 {source.table}: новых строк {len(rows)}")

        last: Optional[CatalogEntry] = None
        processed = 0
        for entry in rows:
            if self._stop_requested:
                break

            report = None
            try:
                report = await self.dispatcher.dispatch(
                    NotificationJob.from_entry(entry),
                    should_stop=lambda: self._stop_requested
                )
            except Exception as e:
                logger.error(f"❌ Рассылка {source.table}#{entry.id} не удалась: {e}", exc_info=True)
                self.stats['errors'] += 1

            if report and report.get('retry'):
                # Fan-out never started; retry this row on the next tick
                logger.warning(f"⏳ {source.table}#{entry.id} отложена до следующего тика")
                self.stats['jobs_deferred'] += 1
                break

            if self._stop_requested:
                # Fan-out may have been cut short; leave this row unconsumed
                break

            last = entry
            processed += 1

        if last is not None:
            self.cursor_store.advance(
                source.table,
                Watermark(last.timestamp(source.timestamp_column), last.id)
            )

        return processed

    # ============================================
    # LIFECYCLE
    # ============================================

    async def start(self):
        """Bootstrap watermarks and start the fixed-interval loop."""
        if self._running:
            logger.warning("Change Poller уже запущен")
            return

        self._running = True
        self._stop_requested = False
        self._wakeup = asyncio.Event()
        self.stats['started_at'] = datetime.now()

        logger.info("=" * 70)
        logger.info("🎯 ЗАПУСК МОНИТОРИНГА КАТАЛОГА")
        logger.info(f"Источники: {', '.join(s.table for s in self.sources)}")
        logger.info(f"Интервал опроса: {self.poll_interval} сек, батч: {self.batch_size}")
        logger.info("=" * 70)

        await self.bootstrap()
        self._task = asyncio.create_task(self._run())

    async def _run(self):
        while self._running:
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

            if not self._running:
                break

            try:
                await self.tick()
            except Exception as e:
                logger.error(f"❌ Критическая ошибка тика: {e}", exc_info=True)
                self.stats['errors'] += 1
                capture_exception(e, tags={"component": "change_poller"})

    async def stop(self):
        """
        Остановка мониторинга.

        The in-flight batch finishes its current subscriber and stops.
        """
        if not self._running and self._task is None:
            return

        self._running = False
        self._stop_requested = True
        if self._wakeup is not None:
            self._wakeup.set()

        if self._task is not None:
            await self._task
            self._task = None

        logger.info("🛑 Мониторинг каталога остановлен")
        self._print_stats()

    def get_stats(self) -> Dict[str, Any]:
        stats = self.stats.copy()
        stats['watermarks'] = {
            table: watermark.timestamp_cursor.isoformat() if watermark.timestamp_cursor else None
            for table, watermark in self.cursor_store.snapshot().items()
        }
        return stats

    def _print_stats(self):
        logger.info(f"📡 Тиков: {self.stats['ticks']}, пропущено: {self.stats['ticks_skipped']}")
        logger.info(f"📄 Обработано строк: {self.stats['rows_processed']}, ❌ Ошибок: {self.stats['errors']}")


__all__ = ['SourceConfig', 'DEFAULT_SOURCES', 'ChangePoller']
