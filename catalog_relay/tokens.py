"""
Signed send tokens for ``/send_<token>`` commands.

Token format: ``<base64url(payload) without padding>_<12 hex chars of HMAC-SHA256>``.
The signature is a fixed-length field compared in constant time.
"""

import base64
import binascii
import hashlib
import hmac
import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 12
TOKEN_SEPARATOR = "_"
MIN_TOKEN_LENGTH = SIGNATURE_LENGTH + 2

_SIGNATURE_RE = re.compile(r"^[0-9a-f]{%d}$" % SIGNATURE_LENGTH)
_BASE64URL_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class SendTokenCodec:
    """
    Кодек подписанных токенов.

    Pure functions of the secret: no state beyond the key.
    """

    def __init__(self, secret: str):
        """
        Args:
            secret: Server signing secret (SEND_SECRET)
        """
        if not secret:
            raise ValueError("Send token secret must not be empty")
        self._key = secret.encode("utf-8")

    def sign(self, payload: str) -> str:
        """Truncated hex HMAC-SHA256 of the raw payload string."""
        digest = hmac.new(self._key, payload.encode("utf-8"), hashlib.sha256).hexdigest()
        return digest[:SIGNATURE_LENGTH]

    def encode(self, payload: str) -> str:
        """
        Wrap a forward payload into a signed URL-safe token.

        Raises:
            ValueError: empty payload (it could never be decoded back)
        """
        if not payload:
            raise ValueError("Cannot sign an empty payload")
        data = base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")
        return f"{data}{TOKEN_SEPARATOR}{self.sign(payload)}"

    def decode(self, token: Optional[str]) -> Optional[str]:
        """
        Verify a token and return the payload it carries.

        Returns:
            Payload string, or None for any malformed or tampered token
        """
        try:
            return self._decode(token)
        except Exception as e:
            logger.debug(f"Send token rejected: {e}")
            return None

    def _decode(self, token: Optional[str]) -> Optional[str]:
        if not isinstance(token, str) or len(token) < MIN_TOKEN_LENGTH:
            return None

        data, separator, signature = token.rpartition(TOKEN_SEPARATOR)
        if not separator or not data or not _SIGNATURE_RE.match(signature):
            return None
        if not _BASE64URL_RE.match(data):
            return None

        padded = data + "=" * (-len(data) % 4)
        try:
            raw = base64.b64decode(padded, altchars=b"-_", validate=True)
            payload = raw.decode("utf-8")
        except (binascii.Error, UnicodeDecodeError, ValueError):
            return None

        expected = self.sign(payload)
        if not hmac.compare_digest(expected.encode("ascii"), signature.encode("ascii")):
            return None

        return payload


def encode_send_token(payload: str, secret: str) -> str:
    """Convenience wrapper around SendTokenCodec.encode."""
    return SendTokenCodec(secret).encode(payload)


def decode_send_token(token: Optional[str], secret: str) -> Optional[str]:
    """Convenience wrapper around SendTokenCodec.decode."""
    return SendTokenCodec(secret).decode(token)


__all__ = [
    'SIGNATURE_LENGTH',
    'MIN_TOKEN_LENGTH',
    'SendTokenCodec',
    'encode_send_token',
    'decode_send_token',
]
