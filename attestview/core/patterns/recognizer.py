from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Dict, List, Mapping, Optional

from attestview.core.normalization.probes import parse_json_text

from .models import (
    ENVELOPE_CONFIDENCE,
    INTOTO_STATEMENT_TYPES,
    STATEMENT_CONFIDENCE,
    PatternResult,
    PatternType,
)

logger = logging.getLogger(__name__)

SIGSTORE_MEDIA_MARKER = "sigstore.bundle"


def is_intoto_statement(doc: Any) -> bool:
    """True iff ``doc`` has the shape of an in-toto Statement (v0.1 or v1)."""

    return (
        isinstance(doc, Mapping)
        and isinstance(doc.get("_type"), str)
        and doc["_type"] in INTOTO_STATEMENT_TYPES
        and isinstance(doc.get("subject"), list)
        and isinstance(doc.get("predicateType"), str)
        and isinstance(doc.get("predicate"), Mapping)
    )


def is_dsse_envelope(doc: Any) -> bool:
    """DSSE: non-empty payload, payloadType and a signatures list.

    A payload that is already a mapping (unwrapped by the normalizer) counts.
    """

    if not isinstance(doc, Mapping):
        return False
    payload = doc.get("payload")
    payload_type = doc.get("payloadType")
    return (
        isinstance(payload, (str, Mapping))
        and bool(payload)
        and isinstance(payload_type, str)
        and bool(payload_type)
        and isinstance(doc.get("signatures"), list)
    )


def is_sigstore_bundle(doc: Any) -> bool:
    if not isinstance(doc, Mapping):
        return False
    media_type = doc.get("mediaType")
    return isinstance(media_type, str) and SIGSTORE_MEDIA_MARKER in media_type


def _first_subject(statement: Mapping[str, Any]) -> Optional[Any]:
    subjects = statement.get("subject")
    if isinstance(subjects, list) and subjects:
        return subjects[0]
    return None


def first_digest(subject: Any) -> Optional[Any]:
    """First value of ``subject.digest`` in the mapping's own order."""

    if not isinstance(subject, Mapping):
        return None
    digest = subject.get("digest")
    if isinstance(digest, Mapping) and digest:
        return next(iter(digest.values()))
    return None


def decode_lenient_base64(text: str) -> str:
    """Decode Base64 the way browsers' atob does.

    ASCII whitespace is ignored and missing ``=`` padding is restored; the
    decoded bytes must be valid UTF-8.
    """

    compact = "".join(text.split())
    padded = compact + "=" * (-len(compact) % 4)
    return base64.b64decode(padded, validate=True).decode("utf-8")


def _decode_dsse_payload(payload: Any) -> Any:
    if isinstance(payload, Mapping):
        return payload
    return parse_json_text(decode_lenient_base64(payload))


def _truthy(value: Any) -> bool:
    """JSON truthiness: null, false, 0 and "" are false; objects and arrays are true."""

    if value is None or isinstance(value, (bool, int, float, str)):
        return bool(value)
    return True


def _recognize_dsse(doc: Mapping[str, Any]) -> PatternResult:
    signatures = doc["signatures"]
    metadata: Dict[str, Any] = {
        "payloadType": doc["payloadType"],
        "signatureCount": len(signatures),
        "signatures": [
            {
                "keyid": sig.get("keyid") if isinstance(sig, Mapping) else None,
                "hasCert": bool(sig.get("cert")) if isinstance(sig, Mapping) else False,
            }
            for sig in signatures
        ],
    }

    try:
        statement = _decode_dsse_payload(doc["payload"])
    except (binascii.Error, ValueError, RecursionError) as e:
        logger.debug("dsse payload not decodable: %s", e)
        statement = None

    if is_intoto_statement(statement):
        subject = _first_subject(statement)
        digest = first_digest(subject)
        if digest is not None:
            metadata["digest"] = digest
        name = subject.get("name") if isinstance(subject, Mapping) else None
        if name:
            metadata["subjectName"] = name
        metadata["predicate"] = statement["predicate"]

    return PatternResult(type=PatternType.DSSE, confidence=ENVELOPE_CONFIDENCE, metadata=metadata)


def _recognize_sigstore(doc: Mapping[str, Any]) -> PatternResult:
    entries = doc.get("tlogEntries")
    entry_count = len(entries) if isinstance(entries, list) else 0
    material = doc.get("verificationMaterial")
    material = material if isinstance(material, Mapping) else {}
    return PatternResult(
        type=PatternType.SIGSTORE,
        confidence=ENVELOPE_CONFIDENCE,
        metadata={
            "mediaType": doc["mediaType"],
            "tlogEntryCount": entry_count,
            "hasCertificateChain": _truthy(material.get("x509CertificateChain")),
            "hasRekorEntry": entry_count > 0,
            "hasBundle": True,
            "hasProducts": _truthy(material.get("products")),
        },
    )


def _recognize_intoto(doc: Mapping[str, Any]) -> PatternResult:
    subjects: List[Any] = doc["subject"]
    metadata: Dict[str, Any] = {
        "statementType": doc["_type"],
        "subjectCount": len(subjects),
        "predicateType": doc["predicateType"],
        "predicate": doc["predicate"],
    }
    if subjects:
        subject = subjects[0]
        metadata["subjectName"] = subject.get("name") if isinstance(subject, Mapping) else None
        digest = first_digest(subject)
        if digest is not None:
            metadata["digest"] = digest
    return PatternResult(type=PatternType.INTOTO, confidence=STATEMENT_CONFIDENCE, metadata=metadata)


def recognize(doc: Any) -> PatternResult:
    """Classify a JSON value by its outermost envelope shape.

    Ordered decision list, first match wins:
    DSSE -> SIGSTORE -> INTOTO -> UNKNOWN.

    A DSSE envelope usually wraps an in-toto statement; classifying by the
    exterior keeps the signature metadata and adds the statement's fields.
    """

    if is_dsse_envelope(doc):
        return _recognize_dsse(doc)
    if is_sigstore_bundle(doc):
        return _recognize_sigstore(doc)
    if is_intoto_statement(doc):
        return _recognize_intoto(doc)
    return PatternResult.unknown()
