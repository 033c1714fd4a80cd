"""
Forward payloads: addressing strings for channel posts.

A catalog link such as ``https://t.me/c/2195618604/403`` is canonicalized
into ``forward_2195618604_403``. The bot later redeems that string (``/start``
deep link or ``/send_<token>``) by forwarding the referenced post.

Example usage:
    payload = build_forward_payload("https://t.me/moviechan/55")
    str(payload)               # 'forward_moviechan_55'
    resolve_target(payload)    # ForwardTarget(chat_target='@moviechan', message_id=55, topic_id=None)
"""

import re
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import urlsplit, parse_qs

FORWARD_PREFIX = "forward_"
FIELD_SEPARATOR = "_"

TELEGRAM_HOSTS = ("t.me", "telegram.me")
PLACEHOLDER_LINKS = ("", "#")

# Telegram supergroup/channel ids are the internal id prefixed with -100
PRIVATE_CHAT_PREFIX = "-100"

# Public handles start with a letter
_HANDLE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
_NUMERIC_RE = re.compile(r"^[0-9]+$")


def _is_numeric(value: str) -> bool:
    return bool(_NUMERIC_RE.match(value))


def _is_handle(value: str) -> bool:
    return bool(_HANDLE_RE.match(value))


def _message_id(value: str) -> Optional[int]:
    """Message ids are positive integers."""
    if not _is_numeric(value):
        return None
    number = int(value)
    return number if number > 0 else None


# ============================================
# ВАРИАНТЫ PAYLOAD
# ============================================

@dataclass(frozen=True)
class PrivateChannel:
    """Post in a private channel/supergroup, addressed by internal id."""
    internal_id: str
    message_id: int
    topic_id: Optional[int] = None

    def serialize(self) -> str:
        if self.topic_id is not None:
            return f"{FORWARD_PREFIX}{self.internal_id}_{self.topic_id}_{self.message_id}"
        return f"{FORWARD_PREFIX}{self.internal_id}_{self.message_id}"

    def __str__(self) -> str:
        return self.serialize()


@dataclass(frozen=True)
class PublicChat:
    """Post in a public channel/group, addressed by @handle."""
    handle: str
    message_id: int

    def serialize(self) -> str:
        return f"{FORWARD_PREFIX}{self.handle}_{self.message_id}"

    def __str__(self) -> str:
        return self.serialize()


@dataclass(frozen=True)
class PublicTopic:
    """Post inside a forum topic of a public group."""
    handle: str
    topic_id: int
    message_id: int

    def serialize(self) -> str:
        return f"{FORWARD_PREFIX}{self.handle}_{self.topic_id}_{self.message_id}"

    def __str__(self) -> str:
        return self.serialize()


ForwardPayload = Union[PrivateChannel, PublicChat, PublicTopic]


@dataclass(frozen=True)
class ForwardTarget:
    """Where to forward from: chat reference, message id and optional topic."""
    chat_target: Union[int, str]
    message_id: int
    topic_id: Optional[int] = None


# ============================================
# ПАРСИНГ
# ============================================

def parse_payload(text: Optional[str]) -> Optional[ForwardPayload]:
    """
    Parse a serialized forward payload.

    The variant is chosen by field shape, never by probing:
    3 fields with a numeric second field is always a private channel,
    4 fields with a numeric third field is a topic post (private when the
    second field is numeric too).

    Args:
        text: Payload string, e.g. ``forward_moviechan_55``

    Returns:
        ForwardPayload or None for anything malformed
    """
    if not text or not isinstance(text, str):
        return None

    text = text.strip()
    if not text.startswith(FORWARD_PREFIX):
        return None

    fields = text.split(FIELD_SEPARATOR)
    if len(fields) < 3:
        return None

    message_id = _message_id(fields[-1])
    if message_id is None:
        return None

    if len(fields) == 3:
        target = fields[1]
        if _is_numeric(target):
            return PrivateChannel(internal_id=target, message_id=message_id)
        if _is_handle(target):
            return PublicChat(handle=target, message_id=message_id)
        return None

    if len(fields) == 4 and _is_numeric(fields[2]) and _is_numeric(fields[1]):
        return PrivateChannel(internal_id=fields[1], message_id=message_id, topic_id=int(fields[2]))

    if len(fields) == 4 and _is_numeric(fields[2]) and _is_handle(fields[1]):
        return PublicTopic(handle=fields[1], topic_id=int(fields[2]), message_id=message_id)

    # Handles may contain underscores themselves
    handle = FIELD_SEPARATOR.join(fields[1:-1])
    if _is_handle(handle):
        return PublicChat(handle=handle, message_id=message_id)

    return None


def build_forward_payload(raw_link: Optional[str]) -> Optional[ForwardPayload]:
    """
    Canonicalize a catalog link into a forward payload.

    Accepts ``t.me``/``telegram.me`` post links and self-referential deep
    links carrying ``?start=<payload>``. Never raises.

    Args:
        raw_link: Link stored in the catalog row

    Returns:
        ForwardPayload or None if the link is not a resolvable post link
    """
    trimmed = (raw_link or "").strip() if isinstance(raw_link, str) else ""
    if trimmed in PLACEHOLDER_LINKS:
        return None

    try:
        url = urlsplit(trimmed)
        host = (url.hostname or "").lower()
    except ValueError:
        return None

    if url.scheme.lower() not in ("http", "https"):
        return None

    if host.startswith("www."):
        host = host[4:]
    if host not in TELEGRAM_HOSTS:
        return None

    start_values = parse_qs(url.query).get("start")
    if start_values:
        return parse_payload(start_values[0])

    parts = [part for part in url.path.split("/") if part]

    if parts and parts[0] == "c":
        # /c/<id>/<msg> or /c/<id>/<topic>/<msg>
        if len(parts) not in (3, 4) or not _is_numeric(parts[1]):
            return None
        if len(parts) == 4 and not _is_numeric(parts[2]):
            return None
        message_id = _message_id(parts[-1])
        if message_id is None:
            return None
        return PrivateChannel(internal_id=parts[1], message_id=message_id)

    if len(parts) == 2:
        handle, message_id = parts[0], _message_id(parts[1])
        if not _is_handle(handle) or message_id is None:
            return None
        return PublicChat(handle=handle, message_id=message_id)

    if len(parts) == 3:
        handle, topic, message_id = parts[0], parts[1], _message_id(parts[2])
        if not _is_handle(handle) or not _is_numeric(topic) or message_id is None:
            return None
        if FIELD_SEPARATOR in handle:
            # Topic would make the serialized form ambiguous
            return PublicChat(handle=handle, message_id=message_id)
        return PublicTopic(handle=handle, topic_id=int(topic), message_id=message_id)

    return None


def resolve_target(payload: ForwardPayload) -> ForwardTarget:
    """
    Resolve a payload into the chat reference used for forwarding.

    Private channels become supergroup-style negative ids
    (``2195618604`` -> ``-1002195618604``), public handles become ``@handle``.
    """
    if isinstance(payload, PrivateChannel):
        return ForwardTarget(
            chat_target=int(f"{PRIVATE_CHAT_PREFIX}{payload.internal_id}"),
            message_id=payload.message_id,
            topic_id=payload.topic_id,
        )

    if isinstance(payload, PublicTopic):
        return ForwardTarget(
            chat_target=f"@{payload.handle}",
            message_id=payload.message_id,
            topic_id=payload.topic_id,
        )

    if isinstance(payload, PublicChat):
        return ForwardTarget(chat_target=f"@{payload.handle}", message_id=payload.message_id)

    raise TypeError(f"Unknown payload type: {type(payload).__name__}")


__all__ = [
    'FORWARD_PREFIX',
    'PrivateChannel',
    'PublicChat',
    'PublicTopic',
    'ForwardPayload',
    'ForwardTarget',
    'parse_payload',
    'build_forward_payload',
    'resolve_target',
]
