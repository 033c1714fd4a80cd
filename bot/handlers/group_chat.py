"""
Обработчик событий групповых чатов.

- /search <название> (или ответом на сообщение) → карточки с /send_<token>
- /send_<token> → пересылка поста в группу
- Бот добавлен в группу → подписчик активен
- Бот удалён из группы → подписчик деактивирован
"""

import logging
import re

from aiogram import Bot, F, Router
from aiogram.enums import ChatType
from aiogram.filters import (
    ADMINISTRATOR,
    CREATOR,
    IS_MEMBER,
    IS_NOT_MEMBER,
    ChatMemberUpdatedFilter,
    Command,
    CommandObject,
)
from aiogram.types import ChatMemberUpdated, Message

from bot.handlers.forwarding import forward_payload, thread_of
from bot.handlers.search import search_catalog
from catalog_relay.config import is_component_enabled
from catalog_relay.notifications.rendering import render_card
from catalog_relay.notifications.telegram_notifier import send_card
from catalog_relay.payload import FORWARD_PREFIX, parse_payload
from catalog_relay.service import CatalogRelayService

logger = logging.getLogger(__name__)

router = Router(name="group_chat")
router.message.filter(F.chat.type.in_({ChatType.GROUP, ChatType.SUPERGROUP}))

# /send_<token>, base64url may contain "-"
SEND_COMMAND_RE = re.compile(r"^send_([\w-]+)$", re.IGNORECASE)

SEARCH_USAGE_TEXT = "❌ بعد از /search نام فیلم را بنویس یا روی پیام ریپلای کن"
NOTHING_FOUND_TEXT = "❌ چیزی پیدا نشد"
INVALID_COMMAND_TEXT = "❌ دستور نامعتبر"
SEND_FAILED_TEXT = "❌ ارسال فایل ناموفق بود"


@router.message(Command("search", ignore_case=True))
async def cmd_search(message: Message, command: CommandObject, relay: CatalogRelayService):
    """/search <название> или /search ответом на сообщение."""
    if not is_component_enabled('group_send'):
        return

    query = (command.args or "").strip()
    if not query and message.reply_to_message and message.reply_to_message.text:
        query = message.reply_to_message.text.strip()

    if not query:
        await message.reply(SEARCH_USAGE_TEXT)
        return

    logger.info(f"🔍 Групповой поиск '{query}' в {message.chat.id}")

    try:
        found = await search_catalog(relay.catalog, query)
    except Exception as e:
        logger.error(f"❌ Ошибка поиска '{query}': {e}", exc_info=True)
        found = []

    if not found:
        await message.reply(NOTHING_FOUND_TEXT)
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
            await send_card(message.bot, message.chat.id, card, thread_of(message))
        except Exception as e:
            logger.warning(f"⚠️ Карточка {entry.source_table}#{entry.id} не отправлена: {e}")


@router.message(Command(SEND_COMMAND_RE))
async def cmd_send(message: Message, command: CommandObject, bot: Bot, relay: CatalogRelayService):
    """/send_<token>[@bot] - проверка подписи и пересылка поста."""
    if not is_component_enabled('group_send'):
        return

    token = command.regexp_match.group(1)
    raw_payload = relay.codec.decode(token)

    payload = parse_payload(raw_payload) if raw_payload and raw_payload.startswith(FORWARD_PREFIX) else None
    if payload is None:
        logger.info(f"⚠️ Невалидный /send токен в {message.chat.id}")
        await message.reply(INVALID_COMMAND_TEXT)
        return

    try:
        await forward_payload(bot, message.chat.id, payload, thread_of(message))
    except Exception as e:
        logger.error(f"❌ Ошибка /send {payload} в {message.chat.id}: {e}")
        await message.reply(SEND_FAILED_TEXT)


@router.my_chat_member(
    ChatMemberUpdatedFilter(
        member_status_changed=IS_NOT_MEMBER >> (IS_MEMBER | ADMINISTRATOR | CREATOR)
    )
)
async def bot_added_to_chat(event: ChatMemberUpdated, relay: CatalogRelayService):
    """Бот добавлен в группу/канал: подписчик активен."""
    chat = event.chat
    logger.info(f"🏢 Бот добавлен в '{chat.title}' (id={chat.id})")
    await relay.registry.upsert(chat, source='bot_added')


@router.my_chat_member(
    ChatMemberUpdatedFilter(
        member_status_changed=(IS_MEMBER | ADMINISTRATOR | CREATOR) >> IS_NOT_MEMBER
    )
)
async def bot_removed_from_chat(event: ChatMemberUpdated, relay: CatalogRelayService):
    """Бот удалён или заблокирован, деактивируем подписчика."""
    chat = event.chat
    logger.info(f"🚫 Бот удалён из '{chat.title or chat.id}' (id={chat.id})")
    await relay.registry.deactivate(chat.id)
