from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from attestview.config import Settings
from attestview.core.normalization import NormalizationResult, PayloadNormalizer, parse_json_text
from attestview.core.patterns import PatternResult, recognize
from attestview.errors import InvalidJsonError


@dataclass(frozen=True)
class Analysis:
    """Everything derived from one raw JSON document."""

    raw: str
    document: Any
    normalized: NormalizationResult
    pattern: PatternResult

    def to_dict(self) -> Dict[str, Any]:
        out = self.normalized.to_dict()
        out["pattern"] = self.pattern.to_dict()
        return out


def parse_document(raw: str | bytes) -> Any:
    """Parse top-level JSON text.

    Raises InvalidJsonError on any failure; there is no partial result.
    """

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidJsonError() from e
    try:
        return parse_json_text(raw)
    except (json.JSONDecodeError, ValueError, RecursionError) as e:
        raise InvalidJsonError() from e


def analyze(raw: str | bytes, *, settings: Optional[Settings] = None) -> Analysis:
    """Parse, normalize and recognize one document.

    The pattern is recognized on the parsed (not unwrapped) document so DSSE
    payload metadata can be decoded from the envelope's Base64 payload.
    """

    cfg = settings or Settings()
    document = parse_document(raw)
    normalizer = PayloadNormalizer(max_depth=cfg.max_depth, max_chain_depth=cfg.max_chain_depth)
    text = raw if isinstance(raw, str) else bytes(raw).decode("utf-8")
    return Analysis(
        raw=text,
        document=document,
        normalized=normalizer.normalize(document),
        pattern=recognize(document),
    )
