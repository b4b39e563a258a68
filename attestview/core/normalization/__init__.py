"""Recursive payload normalization.

Normalization walks an already-parsed JSON value and decodes, in place, every
leaf that is itself an encoded payload (JSON text, Base64, Unix epoch).

Notes:
- Input is never mutated; the output tree is freshly built.
- Leaf decode failures are contained at the leaf.
- Nesting and Base64 chain depth are bounded.
"""

from .normalizer import (
    DEFAULT_MAX_CHAIN_DEPTH,
    DEFAULT_MAX_DEPTH,
    PayloadNormalizer,
    child_path,
    item_path,
    normalize,
)
from .probes import (
    decode_base64_text,
    format_epoch,
    is_base64,
    is_epoch_timestamp,
    is_json_text,
    is_readable_text,
    parse_json_text,
)
from .records import NormalizationResult, OriginalValueIndex, TransformationRecord, TransformKind

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_CHAIN_DEPTH",
    "PayloadNormalizer",
    "normalize",
    "child_path",
    "item_path",
    "NormalizationResult",
    "OriginalValueIndex",
    "TransformationRecord",
    "TransformKind",
    "is_json_text",
    "parse_json_text",
    "is_base64",
    "decode_base64_text",
    "is_readable_text",
    "is_epoch_timestamp",
    "format_epoch",
]
