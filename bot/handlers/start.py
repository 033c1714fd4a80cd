"""
Обработчик /start: выдача файла по deep link ``?start=forward_...``.
"""

import logging

from aiogram import Bot, Router
from aiogram.filters import CommandObject, CommandStart
from aiogram.types import Message

from bot.handlers.forwarding import contains_media, forward_payload, thread_of
from catalog_relay.payload import FORWARD_PREFIX, parse_payload

logger = logging.getLogger(__name__)
router = Router(name="start")

ASK_TITLE_TEXT = "🎬 نام فیلم را ارسال کنید"
INVALID_LINK_TEXT = "Invalid movie link."
NO_MEDIA_TEXT = "This post has no media."
FETCH_ERROR_TEXT = "❌ خطا در دریافت فیلم"


@router.message(CommandStart())
async def cmd_start(message: Message, command: CommandObject, bot: Bot):
    """
    /start [payload]

    Без payload (или с чужим payload) - просим название фильма.
    С ``forward_...`` - пересылаем пост из канала в этот чат.
    """
    raw_payload = (command.args or "").strip()

    if not raw_payload.startswith(FORWARD_PREFIX):
        await message.answer(ASK_TITLE_TEXT)
        return

    payload = parse_payload(raw_payload)
    if payload is None:
        logger.info(f"⚠️ Невалидный payload от {message.chat.id}: {raw_payload!r}")
        await message.answer(INVALID_LINK_TEXT)
        return

    try:
        forwarded = await forward_payload(bot, message.chat.id, payload, thread_of(message))
    except Exception as e:
        logger.error(f"❌ Ошибка пересылки {payload} в {message.chat.id}: {e}")
        await message.answer(FETCH_ERROR_TEXT)
        return

    if not contains_media(forwarded):
        await message.answer(NO_MEDIA_TEXT)
