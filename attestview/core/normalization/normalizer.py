from __future__ import annotations

import binascii
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

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

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64
DEFAULT_MAX_CHAIN_DEPTH = 8

# Kind reported when a decode is reached through a Base64 layer.
_CHAINED_KIND: Dict[TransformKind, TransformKind] = {
    TransformKind.JSON: TransformKind.BASE64_JSON,
    TransformKind.EPOCH: TransformKind.BASE64_EPOCH,
    TransformKind.BASE64: TransformKind.BASE64,
    TransformKind.BASE64_JSON: TransformKind.BASE64_JSON,
    TransformKind.BASE64_EPOCH: TransformKind.BASE64_EPOCH,
}


@dataclass(frozen=True)
class _Decoded:
    """Outcome of classifying one string leaf.

    ``needs_walk`` marks parsed JSON that must itself be normalized.
    """

    kind: TransformKind
    value: Any
    needs_walk: bool = False


def child_path(path: str, key: str) -> str:
    """Path of a mapping field; the root's fields carry no leading dot."""

    return f"{path}.{key}" if path else str(key)


def item_path(path: str, index: int) -> str:
    return f"{path}[{index}]"


def _number_text(value: Any) -> Optional[str]:
    """Shortest decimal form of a JSON number; integral floats print without '.0'.

    bool is an int subclass but never a number here.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return None


class _NormalizationRun:
    """Mutable state of a single normalize call (log + original-value index)."""

    def __init__(self, *, max_depth: int, max_chain_depth: int) -> None:
        self.max_depth = max_depth
        self.max_chain_depth = max_chain_depth
        self.log: List[TransformationRecord] = []
        self.index = OriginalValueIndex()

    def walk(self, value: Any, path: str, depth: int) -> Any:
        if depth > self.max_depth:
            logger.warning(
                "normalize depth limit reached; subtree left as-is",
                extra={"path": path, "max_depth": self.max_depth},
            )
            return value

        if isinstance(value, dict):
            return {k: self.walk(v, child_path(path, k), depth + 1) for k, v in value.items()}
        if isinstance(value, list):
            return [self.walk(v, item_path(path, i), depth + 1) for i, v in enumerate(value)]
        if isinstance(value, str):
            return self.walk_string(value, path, depth)
        text = _number_text(value)
        if text is not None and is_epoch_timestamp(text):
            self.log.append(TransformationRecord(path, TransformKind.EPOCH, text))
            return format_epoch(text)
        return value

    def walk_string(self, text: str, path: str, depth: int) -> Any:
        decoded = self.classify(text, chain_depth=0)
        if decoded is None:
            return text

        # Pre-order: the record precedes any records of the decoded children.
        self.log.append(TransformationRecord(path, decoded.kind, text))
        if not decoded.needs_walk:
            return decoded.value

        out = self.walk(decoded.value, path, depth + 1)
        if isinstance(out, (dict, list)):
            self.index.register(path, out, text)
        return out

    def classify(self, text: str, *, chain_depth: int) -> Optional[_Decoded]:
        """Pick the first decode that applies to ``text``; None leaves it unchanged.

        Called again on Base64-decoded text (chained mode); chained calls
        never log, the caller records one combined kind.
        """

        if is_epoch_timestamp(text):
            return _Decoded(TransformKind.EPOCH, format_epoch(text))

        if is_json_text(text):
            try:
                parsed = parse_json_text(text)
            except (ValueError, RecursionError) as e:
                logger.debug("json decode failed after probe: %s", e)
                return None
            return _Decoded(TransformKind.JSON, parsed, needs_walk=True)

        if chain_depth >= self.max_chain_depth or not is_base64(text):
            return None
        try:
            decoded = decode_base64_text(text)
        except (binascii.Error, ValueError) as e:
            logger.debug("base64 decode failed after probe: %s", e)
            return None
        if not is_readable_text(decoded):
            # Short opaque tokens often round-trip as Base64; keep them.
            return None

        inner = self.classify(decoded, chain_depth=chain_depth + 1)
        if inner is None:
            return _Decoded(TransformKind.BASE64, decoded)
        return _Decoded(_CHAINED_KIND[inner.kind], inner.value, needs_walk=inner.needs_walk)


class PayloadNormalizer:
    """Recursively unwraps JSON text, Base64 and epoch leaves of a JSON value.

    The instance only carries bounds; every ``normalize`` call builds its own
    log and index, so one instance can serve concurrent callers.
    """

    def __init__(
        self,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_chain_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
    ) -> None:
        if max_depth < 1 or max_chain_depth < 0:
            raise ValueError("max_depth must be >= 1 and max_chain_depth >= 0")
        self.max_depth = int(max_depth)
        self.max_chain_depth = int(max_chain_depth)

    def normalize(self, value: Any) -> NormalizationResult:
        run = _NormalizationRun(max_depth=self.max_depth, max_chain_depth=self.max_chain_depth)
        tree = run.walk(value, "", 0)
        return NormalizationResult(tree=tree, log=tuple(run.log), index=run.index)


def normalize(
    value: Any,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_chain_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
) -> NormalizationResult:
    """Normalize an already-parsed JSON value.

    Never raises on leaf content; undecodable leaves are kept verbatim.
    """

    return PayloadNormalizer(max_depth=max_depth, max_chain_depth=max_chain_depth).normalize(value)
