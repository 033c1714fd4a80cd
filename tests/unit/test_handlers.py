"""
Unit тесты хендлеров бота и middleware.

Хендлеры вызываются напрямую; Message, Bot и сервис заменены моками.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram.filters import CommandObject
from aiogram.types import Update

from bot.handlers import group_chat, search, start
from bot.handlers.forwarding import contains_media
from bot.middlewares import SubscriberTrackingMiddleware
from catalog_relay.tokens import SendTokenCodec


def make_message(chat_id=42, chat_type="private", text=None, reply_text=None):
    message = MagicMock()
    message.chat.id = chat_id
    message.chat.type = chat_type
    message.text = text
    message.is_topic_message = False
    message.reply_to_message = SimpleNamespace(text=reply_text) if reply_text else None
    message.answer = AsyncMock()
    message.reply = AsyncMock()
    message.bot = AsyncMock()
    return message


def media_message(**media):
    fields = {name: None for name in ('video', 'document', 'animation', 'audio', 'voice')}
    fields.update(media)
    return SimpleNamespace(**fields)


@pytest.fixture
def bot():
    return AsyncMock()


@pytest.fixture
def relay(make_entry):
    catalog = MagicMock()
    catalog.search = AsyncMock(return_value=[
        make_entry(id=1, title="Inception", link="https://t.me/moviechan/55"),
        make_entry(id=2, title="Broken", link="#"),
    ])
    notifier = MagicMock()
    notifier.get_bot_username = AsyncMock(return_value="relay_bot")
    return SimpleNamespace(
        catalog=catalog,
        notifier=notifier,
        codec=SendTokenCodec("s3cr3t"),
        registry=AsyncMock(),
    )


@pytest.mark.unit
class TestContainsMedia:

    def test_media_kinds(self):
        assert contains_media(media_message(video="v"))
        assert contains_media(media_message(voice="v"))
        assert not contains_media(media_message())
        assert not contains_media(None)


@pytest.mark.unit
class TestStartHandler:

    @pytest.mark.asyncio
    async def test_without_payload_asks_for_title(self, bot):
        message = make_message()

        await start.cmd_start(message, CommandObject(prefix="/", command="start"), bot)

        message.answer.assert_awaited_once_with(start.ASK_TITLE_TEXT)
        bot.forward_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_payload(self, bot):
        message = make_message()

        await start.cmd_start(message, CommandObject(prefix="/", command="start", args="forward_x"), bot)

        message.answer.assert_awaited_once_with(start.INVALID_LINK_TEXT)

    @pytest.mark.asyncio
    async def test_forwards_private_channel_post(self, bot):
        bot.forward_message.return_value = media_message(video="v")
        message = make_message(chat_id=42)

        await start.cmd_start(
            message, CommandObject(prefix="/", command="start", args="forward_2195618604_403"), bot
        )

        bot.forward_message.assert_awaited_once_with(
            chat_id=42, from_chat_id=-1002195618604, message_id=403, message_thread_id=None
        )
        message.answer.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_post_without_media(self, bot):
        bot.forward_message.return_value = media_message()
        message = make_message()

        await start.cmd_start(message, CommandObject(prefix="/", command="start", args="forward_moviechan_55"), bot)

        bot.forward_message.assert_awaited_once()
        assert bot.forward_message.await_args.kwargs['from_chat_id'] == "@moviechan"
        message.answer.assert_awaited_once_with(start.NO_MEDIA_TEXT)

    @pytest.mark.asyncio
    async def test_forward_error(self, bot):
        bot.forward_message.side_effect = RuntimeError("message to forward not found")
        message = make_message()

        await start.cmd_start(message, CommandObject(prefix="/", command="start", args="forward_moviechan_55"), bot)

        message.answer.assert_awaited_once_with(start.FETCH_ERROR_TEXT)


@pytest.mark.unit
class TestGroupSend:

    def send_command(self, token):
        command = f"send_{token}"
        return CommandObject(prefix="/", command=command, regexp_match=group_chat.SEND_COMMAND_RE.match(command))

    @pytest.mark.asyncio
    async def test_valid_token_forwards(self, bot, relay):
        token = relay.codec.encode("forward_moviechan_55")
        message = make_message(chat_id=-100500, chat_type="supergroup")

        await group_chat.cmd_send(message, self.send_command(token), bot, relay)

        bot.forward_message.assert_awaited_once_with(
            chat_id=-100500, from_chat_id="@moviechan", message_id=55, message_thread_id=None
        )
        message.reply.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_token_signed_with_other_secret(self, bot, relay):
        token = SendTokenCodec("wrong").encode("forward_moviechan_55")
        message = make_message(chat_type="supergroup")

        await group_chat.cmd_send(message, self.send_command(token), bot, relay)

        bot.forward_message.assert_not_awaited()
        message.reply.assert_awaited_once_with(group_chat.INVALID_COMMAND_TEXT)

    @pytest.mark.asyncio
    async def test_signed_payload_without_forward_prefix(self, bot, relay):
        token = relay.codec.encode("hello_world_1")
        message = make_message(chat_type="group")

        await group_chat.cmd_send(message, self.send_command(token), bot, relay)

        message.reply.assert_awaited_once_with(group_chat.INVALID_COMMAND_TEXT)

    @pytest.mark.asyncio
    async def test_forward_failure(self, bot, relay):
        bot.forward_message.side_effect = RuntimeError("chat not found")
        token = relay.codec.encode("forward_2195618604_403")
        message = make_message(chat_type="group")

        await group_chat.cmd_send(message, self.send_command(token), bot, relay)

        message.reply.assert_awaited_once_with(group_chat.SEND_FAILED_TEXT)

    def test_command_pattern_accepts_base64url(self):
        assert group_chat.SEND_COMMAND_RE.match("send_Zm9y-d2Fy_0123456789ab")
        assert not group_chat.SEND_COMMAND_RE.match("sendZm9y")


@pytest.mark.unit
class TestGroupSearch:

    @pytest.mark.asyncio
    async def test_query_from_reply(self, relay):
        message = make_message(chat_id=-100500, chat_type="supergroup", reply_text="  Inception ")

        await group_chat.cmd_search(message, CommandObject(prefix="/", command="search"), relay)

        relay.catalog.search.assert_awaited_once_with("Inception", limit=5)
        message.bot.send_photo.assert_awaited_once()
        caption = message.bot.send_photo.await_args.kwargs['caption']
        assert "/send_" in caption

    @pytest.mark.asyncio
    async def test_missing_query(self, relay):
        message = make_message(chat_type="group")

        await group_chat.cmd_search(message, CommandObject(prefix="/", command="search"), relay)

        message.reply.assert_awaited_once_with(group_chat.SEARCH_USAGE_TEXT)
        relay.catalog.search.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_nothing_found(self, relay):
        relay.catalog.search.return_value = []
        message = make_message(chat_type="group")

        await group_chat.cmd_search(message, CommandObject(prefix="/", command="search", args="zzz"), relay)

        message.reply.assert_awaited_once_with(group_chat.NOTHING_FOUND_TEXT)


@pytest.mark.unit
class TestMembership:

    @pytest.mark.asyncio
    async def test_added_and_removed(self, relay):
        event = MagicMock()
        event.chat.id = -100500
        event.chat.title = "Club"

        await group_chat.bot_added_to_chat(event, relay)
        await group_chat.bot_removed_from_chat(event, relay)

        relay.registry.upsert.assert_awaited_once_with(event.chat, source='bot_added')
        relay.registry.deactivate.assert_awaited_once_with(-100500)


@pytest.mark.unit
class TestSearchHandlers:

    @pytest.mark.asyncio
    async def test_private_search_sends_plain_cards(self, relay):
        message = make_message(text="inception")

        await search.private_search(message, relay)

        message.bot.send_photo.assert_awaited_once()
        assert message.bot.send_photo.await_args.kwargs['caption'] == "🎬 Inception"

    @pytest.mark.asyncio
    async def test_private_search_not_found(self, relay):
        relay.catalog.search.side_effect = RuntimeError("db down")
        message = make_message(text="inception")

        await search.private_search(message, relay)

        message.answer.assert_awaited_once_with(search.NOT_FOUND_TEXT)

    @pytest.mark.asyncio
    async def test_inline_short_query(self, relay):
        inline_query = MagicMock(query=" a ")
        inline_query.answer = AsyncMock()

        await search.inline_search(inline_query, relay)

        inline_query.answer.assert_awaited_once_with(results=[], cache_time=1)
        relay.catalog.search.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inline_results(self, relay):
        inline_query = MagicMock(query="incep")
        inline_query.answer = AsyncMock()

        await search.inline_search(inline_query, relay)

        results = inline_query.answer.await_args.kwargs['results']
        assert len(results) == 1
        assert results[0].id == "movies_1"
        assert results[0].description == search.NO_SYNOPSIS_TEXT
        assert results[0].input_message_content.message_text == "🎬 Inception"
        assert results[0].reply_markup.inline_keyboard[0][0].url == (
            "https://t.me/relay_bot?start=forward_moviechan_55"
        )


@pytest.mark.unit
class TestSubscriberTrackingMiddleware:

    @pytest.mark.asyncio
    async def test_upserts_event_chat(self, make_chat):
        registry = AsyncMock()
        handler = AsyncMock(return_value="handled")
        event = MagicMock(spec=Update)
        event.event_type = "message"
        chat = make_chat(42)

        result = await SubscriberTrackingMiddleware(registry)(handler, event, {'event_chat': chat})

        assert result == "handled"
        registry.upsert.assert_awaited_once_with(chat, source="message")

    @pytest.mark.asyncio
    async def test_registry_error_does_not_block_handler(self, make_chat):
        registry = AsyncMock()
        registry.upsert.side_effect = RuntimeError("db down")
        handler = AsyncMock(return_value="handled")
        event = MagicMock(spec=Update)
        event.event_type = "message"

        result = await SubscriberTrackingMiddleware(registry)(handler, event, {'event_chat': make_chat(1)})

        assert result == "handled"

    @pytest.mark.asyncio
    async def test_inline_query_without_chat(self):
        registry = AsyncMock()
        handler = AsyncMock(return_value=None)

        await SubscriberTrackingMiddleware(registry)(handler, MagicMock(spec=Update), {})

        registry.upsert.assert_not_awaited()
        handler.assert_awaited_once()
