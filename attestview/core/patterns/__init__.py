"""Attestation envelope recognition (DSSE, Sigstore bundle, in-toto statement)."""

from .models import (
    ENVELOPE_CONFIDENCE,
    INTOTO_STATEMENT_TYPES,
    STATEMENT_CONFIDENCE,
    PatternResult,
    PatternType,
)
from .recognizer import (
    first_digest,
    is_dsse_envelope,
    is_intoto_statement,
    is_sigstore_bundle,
    recognize,
)

__all__ = [
    "PatternType",
    "PatternResult",
    "ENVELOPE_CONFIDENCE",
    "STATEMENT_CONFIDENCE",
    "INTOTO_STATEMENT_TYPES",
    "recognize",
    "is_dsse_envelope",
    "is_sigstore_bundle",
    "is_intoto_statement",
    "first_digest",
]
