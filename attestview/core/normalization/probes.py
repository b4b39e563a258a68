from __future__ import annotations

import base64
import binascii
import json
from datetime import UTC, datetime
from typing import Any

_PRINTABLE_CONTROLS = frozenset({"\t", "\n", "\r"})
_READABLE_RATIO = 0.8
_EPOCH_LENGTHS = (10, 13)
EPOCH_FORMAT = "%Y-%m-%d %H:%M:%S"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


def parse_json_text(text: str) -> Any:
    """Parse JSON text strictly.

    Python's json module accepts NaN/Infinity; those are not JSON and are
    rejected here so probes agree with other JSON parsers.
    """

    return json.loads(text, parse_constant=_reject_constant)


def is_json_text(text: Any) -> bool:
    """True iff ``text`` parses as any JSON value, scalars included."""

    if not isinstance(text, str):
        return False
    try:
        parse_json_text(text)
    except (ValueError, RecursionError):
        return False
    return True


def is_base64(text: Any) -> bool:
    """Round-trip check: strict decode then re-encode must reproduce ``text``.

    Rejects non-canonical padding and stray characters that a charset regex
    would let through.
    """

    if not isinstance(text, str):
        return False
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return False
    return base64.b64encode(raw).decode("ascii") == text


def decode_base64_text(text: str) -> str:
    """Decode standard Base64 into stripped text.

    Raises ValueError (binascii.Error) on malformed input.
    """

    raw = base64.b64decode(text, validate=True)
    return raw.decode("utf-8", errors="replace").strip()


def is_readable_text(text: str) -> bool:
    """More than 80% printable ASCII (or tab/LF/CR)."""

    if not text:
        return False
    printable = sum(1 for ch in text if " " <= ch <= "~" or ch in _PRINTABLE_CONTROLS)
    return printable / len(text) > _READABLE_RATIO


def _epoch_datetime(text: str) -> datetime:
    millis = int(text)
    if len(text) == 10:
        millis *= 1000
    return datetime.fromtimestamp(millis / 1000, tz=UTC)


def is_epoch_timestamp(text: Any) -> bool:
    """True for 10-digit (seconds) or 13-digit (milliseconds) Unix times.

    Any bare 10/13-digit string qualifies, so numeric identifiers of that
    length are read as timestamps too.
    """

    if not isinstance(text, str) or len(text) not in _EPOCH_LENGTHS:
        return False
    if not (text.isascii() and text.isdigit()):
        return False
    try:
        _epoch_datetime(text)
    except (OverflowError, OSError, ValueError):
        return False
    return True


def format_epoch(text: str) -> str:
    """Render an epoch string as ``YYYY-MM-DD HH:MM:SS`` (UTC)."""

    return _epoch_datetime(text).strftime(EPOCH_FORMAT)
