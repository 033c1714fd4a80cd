"""
Rendering of catalog cards (photo + caption + "Go to file" button).

Pure functions: no network, no database. The caption depends only on the
destination chat type: groups get a redeemable ``/send_<token>`` command,
private chats rely on the deep link button alone (``/start`` handles it).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from catalog_relay.payload import ForwardPayload
from catalog_relay.tokens import SendTokenCodec

GROUP_CHAT_TYPES = ('group', 'supergroup')
GO_TO_FILE_TEXT = "▶️ Go to file"
CAPTION_LIMIT = 1024
PLACEHOLDER_COVERS = ('', '#')


class CaptionStrategy(str, Enum):
    """Как оформлять подпись карточки."""
    PLAIN = 'plain'
    SEND_COMMAND = 'send_command'


@dataclass(frozen=True)
class RenderedCard:
    photo: Optional[str]
    caption: str
    reply_markup: InlineKeyboardMarkup


def caption_strategy_for(chat_type: Optional[str]) -> CaptionStrategy:
    """Groups and supergroups get the /send command, everything else a plain caption."""
    chat_type = getattr(chat_type, 'value', chat_type)
    if chat_type in GROUP_CHAT_TYPES:
        return CaptionStrategy.SEND_COMMAND
    return CaptionStrategy.PLAIN


def deep_link(bot_username: str, payload: ForwardPayload) -> str:
    """``https://t.me/<bot>?start=<payload>``"""
    return f"https://t.me/{bot_username.lstrip('@')}?start={payload}"


def has_cover(cover: Optional[str]) -> bool:
    if not cover:
        return False
    cover = cover.strip()
    if cover in PLACEHOLDER_COVERS:
        return False
    return cover.lower().startswith(('http://', 'https://'))


def build_caption(
    title: str,
    strategy: CaptionStrategy,
    token: Optional[str] = None
) -> str:
    """
    Caption text.

    Args:
        title: Catalog entry title
        strategy: Caption strategy for the destination chat
        token: Signed send token (required for SEND_COMMAND)
    """
    suffix = ""
    if strategy is CaptionStrategy.SEND_COMMAND:
        if not token:
            raise ValueError("SEND_COMMAND caption requires a token")
        suffix = f"\n\n/send_{token}"

    title = (title or "").strip() or "Untitled"
    head = "🎬 "
    max_title = CAPTION_LIMIT - len(head) - len(suffix)
    if len(title) > max_title:
        title = title[:max_title - 3] + "..."

    return f"{head}{title}{suffix}"


def build_keyboard(url: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=GO_TO_FILE_TEXT, url=url)]
    ])


def render_card(
    title: str,
    cover: Optional[str],
    payload: ForwardPayload,
    chat_type: Optional[str],
    bot_username: str,
    codec: SendTokenCodec
) -> RenderedCard:
    """
    Render the card for one destination chat.

    Args:
        title: Entry title
        cover: Cover URL (omitted when absent or a placeholder)
        payload: Forward payload of the entry
        chat_type: Destination chat type
        bot_username: Bot handle for the deep link
        codec: Send token codec (used for group captions only)

    Returns:
        RenderedCard
    """
    strategy = caption_strategy_for(chat_type)
    token = codec.encode(str(payload)) if strategy is CaptionStrategy.SEND_COMMAND else None

    return RenderedCard(
        photo=cover.strip() if has_cover(cover) else None,
        caption=build_caption(title, strategy, token),
        reply_markup=build_keyboard(deep_link(bot_username, payload)),
    )


__all__ = [
    'CaptionStrategy',
    'RenderedCard',
    'caption_strategy_for',
    'deep_link',
    'has_cover',
    'build_caption',
    'build_keyboard',
    'render_card',
]
