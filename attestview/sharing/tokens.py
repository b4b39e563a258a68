from __future__ import annotations

import base64
import binascii
import zlib

from attestview.config import DEFAULT_SHARE_BASE_URL, DEFAULT_SHARE_MAX_URL_LENGTH
from attestview.errors import ShareTokenError


def compress_for_url(text: str) -> str:
    """Compress text into a URL-safe token (zlib + urlsafe Base64, unpadded)."""

    packed = zlib.compress(text.encode("utf-8"), level=9)
    return base64.urlsafe_b64encode(packed).decode("ascii").rstrip("=")


def decompress_from_url(token: str) -> str:
    """Inverse of compress_for_url.

    Raises ShareTokenError when the token is not one of ours.
    """

    token = (token or "").strip()
    if not token:
        raise ShareTokenError("empty share token")
    padded = token + "=" * (-len(token) % 4)
    try:
        packed = base64.urlsafe_b64decode(padded.encode("ascii"))
        return zlib.decompress(packed).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError, zlib.error) as e:
        raise ShareTokenError(f"invalid share token: {e}") from e


def is_compressed_url_too_long(
    text: str,
    max_length: int = DEFAULT_SHARE_MAX_URL_LENGTH,
    *,
    base_url: str = DEFAULT_SHARE_BASE_URL,
) -> bool:
    """True iff base_url + compressed token exceeds max_length characters."""

    return len(base_url) + len(compress_for_url(text)) > max_length


def share_url(text: str, *, base_url: str = DEFAULT_SHARE_BASE_URL) -> str:
    return base_url + compress_for_url(text)
