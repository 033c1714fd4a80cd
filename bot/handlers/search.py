"""
Поиск по каталогу: свободный текст в личке и inline-режим.

@botusername <название> - inline поиск из любого чата.
"""

import logging
from typing import List, Tuple

from aiogram import F, Router
from aiogram.enums import ChatType
from aiogram.types import (
    InlineQuery,
    InlineQueryResultArticle,
    InputTextMessageContent,
    Message,
)

from catalog_relay.config import get_limit, is_component_enabled
from catalog_relay.database.catalog import CatalogEntry, CatalogSource
from catalog_relay.notifications.rendering import build_keyboard, deep_link, has_cover, render_card
from catalog_relay.notifications.telegram_notifier import send_card
from catalog_relay.payload import ForwardPayload, build_forward_payload
from catalog_relay.service import CatalogRelayService

logger = logging.getLogger(__name__)
router = Router(name="search")

MIN_INLINE_QUERY_LENGTH = 2
NO_SYNOPSIS_TEXT = "خلاصه موجود نیست"
NOT_FOUND_TEXT = "❌ فیلمی پیدا نشد"


async def search_catalog(catalog: CatalogSource, query: str) -> List[Tuple[CatalogEntry, ForwardPayload]]:
    """
    Поиск по названию в обеих таблицах.

    Записи без разрешимой ссылки на пост отбрасываются.

    Returns:
        [(entry, payload), ...]
    """
    limit = int(get_limit('search_results_per_table', 5))
    entries = await catalog.search(query, limit=limit)

    found = []
    for entry in entries:
        payload = build_forward_payload(entry.link)
        if payload is not None:
            found.append((entry, payload))
    return found


# ============================================
# ЛИЧНЫЙ ЧАТ
# ============================================

@router.message(F.chat.type == ChatType.PRIVATE, F.text, ~F.text.startswith("/"))
async def private_search(message: Message, relay: CatalogRelayService):
    """Свободный текст в личке = поисковый запрос."""
    if not is_component_enabled('private_search'):
        return

    query = message.text.strip()
    logger.info(f"🔍 Поиск '{query}' от {message.chat.id}")

    try:
        found = await search_catalog(relay.catalog, query)
    except Exception as e:
        logger.error(f"❌ Ошибка поиска '{query}': {e}", exc_info=True)
        found = []

    if not found:
        await message.answer(NOT_FOUND_TEXT)
        return

    bot_username = await relay.notifier.get_bot_username()
    for entry, payload in found:
        card = render_card(
            title=entry.title,
            cover=entry.cover,
            payload=payload,
            chat_type=message.chat.type,
            bot_username=bot_username,
            codec=relay.codec,
        )
        try:
            await send_card(message.bot, message.chat.id, card)
        except Exception as e:
            logger.warning(f"⚠️ Карточка {entry.source_table}#{entry.id} не отправлена: {e}")


# ============================================
# INLINE
# ============================================

@router.inline_query()
async def inline_search(inline_query: InlineQuery, relay: CatalogRelayService):
    """
    Inline поиск: статьи с описанием, обложкой и кнопкой "Go to file".
    """
    if not is_component_enabled('inline_search'):
        return

    query = inline_query.query.strip()
    cache_time = int(get_limit('inline_cache_time', 1))

    if len(query) < MIN_INLINE_QUERY_LENGTH:
        await inline_query.answer(results=[], cache_time=cache_time)
        return

    try:
        found = await search_catalog(relay.catalog, query)
    except Exception as e:
        logger.error(f"❌ Ошибка inline поиска '{query}': {e}", exc_info=True)
        found = []

    bot_username = await relay.notifier.get_bot_username()

    results = []
    for entry, payload in found:
        results.append(
            InlineQueryResultArticle(
                id=f"{entry.source_table}_{entry.id}",
                title=entry.title or "Untitled",
                description=entry.synopsis or NO_SYNOPSIS_TEXT,
                thumbnail_url=entry.cover.strip() if has_cover(entry.cover) else None,
                input_message_content=InputTextMessageContent(message_text=f"🎬 {entry.title}"),
                reply_markup=build_keyboard(deep_link(bot_username, payload)),
            )
        )

    logger.info(f"🔎 Inline '{query}': {len(results)} результатов")
    await inline_query.answer(results=results, cache_time=cache_time)
