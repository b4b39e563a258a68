"""attestview: unwrap nested payloads and recognize attestation envelopes.

Core entry points:
- normalize(value): recursively decode JSON text / Base64 / epoch leaves
- recognize(value): classify DSSE / Sigstore bundle / in-toto statement
- analyze(raw_text): parse + normalize + recognize
"""

from attestview.core.normalization import NormalizationResult, TransformationRecord, TransformKind, normalize
from attestview.core.patterns import PatternResult, PatternType, recognize
from attestview.core.pipeline import Analysis, analyze, parse_document
from attestview.errors import AttestviewError, InvalidJsonError

__version__ = "0.1.0"

__all__ = [
    "normalize",
    "recognize",
    "analyze",
    "parse_document",
    "Analysis",
    "NormalizationResult",
    "TransformationRecord",
    "TransformKind",
    "PatternResult",
    "PatternType",
    "AttestviewError",
    "InvalidJsonError",
]
