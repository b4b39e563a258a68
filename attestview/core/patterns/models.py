from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class PatternType(str, Enum):
    """
    Attestation envelope shapes the recognizer knows about.

    str Enum keeps comparisons against plain strings working.
    """

    DSSE = "DSSE"
    SIGSTORE = "SIGSTORE"
    INTOTO = "INTOTO"
    UNKNOWN = "UNKNOWN"


ENVELOPE_CONFIDENCE = 0.9
STATEMENT_CONFIDENCE = 0.95

INTOTO_STATEMENT_TYPES = frozenset(
    {
        "https://in-toto.io/Statement/v0.1",
        "https://in-toto.io/Statement/v1",
    }
)


@dataclass(frozen=True)
class PatternResult:
    """
    Classification of one document.

    Invariants
    - confidence is within [0, 1]
    - UNKNOWN carries confidence 0 and empty metadata
    """

    type: PatternType
    confidence: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("confidence must be within [0, 1]")

    @classmethod
    def unknown(cls) -> "PatternResult":
        return cls(type=PatternType.UNKNOWN, confidence=0.0, metadata={})

    @property
    def is_known(self) -> bool:
        return self.type is not PatternType.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "confidence": self.confidence,
            "metadata": dict(self.metadata),
        }
