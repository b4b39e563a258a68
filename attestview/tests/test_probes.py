import base64

from attestview.core.normalization import (
    decode_base64_text,
    format_epoch,
    is_base64,
    is_epoch_timestamp,
    is_json_text,
    is_readable_text,
)


def test_is_json_text_accepts_any_json_value() -> None:
    assert is_json_text('{"a": 1}') is True
    assert is_json_text("[1, 2]") is True
    assert is_json_text('"bare string"') is True
    assert is_json_text("42") is True
    assert is_json_text("true") is True
    assert is_json_text("null") is True


def test_is_json_text_rejects_invalid_and_non_standard() -> None:
    assert is_json_text("{not json}") is False
    assert is_json_text("") is False
    assert is_json_text("NaN") is False
    assert is_json_text("Infinity") is False
    assert is_json_text(None) is False
    assert is_json_text(12) is False


def test_is_base64_requires_exact_round_trip() -> None:
    assert is_base64(base64.b64encode(b"hello world").decode("ascii")) is True
    # Missing padding does not re-encode identically.
    assert is_base64("aGVsbG8gd29ybGQ") is False
    assert is_base64("not base64!") is False
    assert is_base64("hello world") is False
    assert is_base64(123) is False


def test_decode_base64_text_strips_whitespace() -> None:
    token = base64.b64encode(b"  padded text\n").decode("ascii")
    assert decode_base64_text(token) == "padded text"


def test_is_readable_text_threshold() -> None:
    assert is_readable_text("plain text\twith\ntabs") is True
    assert is_readable_text("") is False
    assert is_readable_text("\x00\x01\x02\x03abcd") is False
    # Exactly 80% printable is not enough.
    assert is_readable_text("abcd\x00") is False
    assert is_readable_text("abcde\x00") is True


def test_is_epoch_timestamp_lengths() -> None:
    assert is_epoch_timestamp("1700000000") is True
    assert is_epoch_timestamp("1700000000123") is True
    assert is_epoch_timestamp("170000000") is False
    assert is_epoch_timestamp("17000000001") is False
    assert is_epoch_timestamp("17000000a0") is False
    assert is_epoch_timestamp("-700000000") is False
    assert is_epoch_timestamp(1700000000) is False


def test_format_epoch_seconds_and_millis_are_utc() -> None:
    assert format_epoch("1700000000") == "2023-11-14 22:13:20"
    assert format_epoch("1700000000999") == "2023-11-14 22:13:20"
    assert format_epoch("0000000000") == "1970-01-01 00:00:00"
