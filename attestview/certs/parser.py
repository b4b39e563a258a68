"""X.509 certificate summaries for certificates embedded in attestations.

Certificates appear as Base64 DER (Sigstore ``rawBytes``) or PEM text (DSSE
``cert`` fields). Parsing is delegated to ``cryptography``; this module only
formats the fields a viewer shows and never raises on bad input.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa
from cryptography.x509.oid import SignatureAlgorithmOID

from attestview.core.patterns import is_dsse_envelope, is_sigstore_bundle

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
_PEM_MARKER = "-----BEGIN CERTIFICATE-----"
_TIME_FORMAT = "%Y-%m-%d %H:%M:%S UTC"

_SIGNATURE_ALGORITHMS = {
    SignatureAlgorithmOID.RSA_WITH_SHA256: "sha256WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA384: "sha384WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA512: "sha512WithRSAEncryption",
    SignatureAlgorithmOID.RSASSA_PSS: "RSASSA-PSS",
    SignatureAlgorithmOID.ECDSA_WITH_SHA256: "ecdsa-with-SHA256",
    SignatureAlgorithmOID.ECDSA_WITH_SHA384: "ecdsa-with-SHA384",
    SignatureAlgorithmOID.ECDSA_WITH_SHA512: "ecdsa-with-SHA512",
    SignatureAlgorithmOID.ED25519: "Ed25519",
    SignatureAlgorithmOID.ED448: "Ed448",
}


@dataclass(frozen=True)
class CertificateSummary:
    """Display fields of one certificate."""

    index: int
    subject: str
    issuer: str
    not_before: str
    not_after: str
    is_valid: bool
    key_algorithm: str
    key_size: str
    signature_algorithm: str
    serial_number: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def fallback_summary(index: int = 0) -> CertificateSummary:
    return CertificateSummary(
        index=index,
        subject="Error parsing certificate",
        issuer=UNKNOWN,
        not_before=UNKNOWN,
        not_after=UNKNOWN,
        is_valid=False,
        key_algorithm=UNKNOWN,
        key_size=UNKNOWN,
        signature_algorithm=UNKNOWN,
        serial_number=UNKNOWN,
    )


def _load_certificate(data: str | bytes) -> x509.Certificate:
    if isinstance(data, str):
        text = data.strip()
        if _PEM_MARKER in text:
            return x509.load_pem_x509_certificate(text.encode("ascii"))
        der = base64.b64decode("".join(text.split()), validate=True)
    else:
        der = bytes(data)
        if der.lstrip().startswith(_PEM_MARKER.encode("ascii")):
            return x509.load_pem_x509_certificate(der)
    return x509.load_der_x509_certificate(der)


def _format_name(name: x509.Name) -> str:
    text = name.rfc4514_string()
    return text or "Empty Name"


def _key_info(cert: x509.Certificate) -> tuple[str, str]:
    """(algorithm, size) where size is bits for RSA/DSA and the curve for EC."""

    try:
        key = cert.public_key()
    except (ValueError, TypeError) as e:
        logger.debug("unsupported public key: %s", e)
        return UNKNOWN, UNKNOWN
    if isinstance(key, rsa.RSAPublicKey):
        return "RSA", str(key.key_size)
    if isinstance(key, ec.EllipticCurvePublicKey):
        return "ECDSA", key.curve.name
    if isinstance(key, ed25519.Ed25519PublicKey):
        return "Ed25519", "256"
    if isinstance(key, ed448.Ed448PublicKey):
        return "Ed448", "456"
    if isinstance(key, dsa.DSAPublicKey):
        return "DSA", str(key.key_size)
    return UNKNOWN, UNKNOWN


def _serial_hex(serial: int) -> str:
    text = format(serial, "x")
    return text if len(text) % 2 == 0 else "0" + text


def parse_certificate(
    data: str | bytes, index: int = 0, *, now: Optional[datetime] = None
) -> CertificateSummary:
    """Summarize a Base64 DER / PEM certificate.

    Any failure yields fallback_summary(index); parse errors are logged at
    DEBUG and never raised.
    """

    if not data or (isinstance(data, str) and not data.strip()):
        logger.debug("empty certificate provided", extra={"cert_index": index})
        return fallback_summary(index)

    try:
        cert = _load_certificate(data)
        not_before = cert.not_valid_before_utc
        not_after = cert.not_valid_after_utc
        current = now or datetime.now(UTC)
        key_algorithm, key_size = _key_info(cert)
        sig_oid = cert.signature_algorithm_oid
        return CertificateSummary(
            index=index,
            subject=_format_name(cert.subject),
            issuer=_format_name(cert.issuer),
            not_before=not_before.strftime(_TIME_FORMAT),
            not_after=not_after.strftime(_TIME_FORMAT),
            is_valid=not_before <= current <= not_after,
            key_algorithm=key_algorithm,
            key_size=key_size,
            signature_algorithm=_SIGNATURE_ALGORITHMS.get(sig_oid, sig_oid.dotted_string),
            serial_number=_serial_hex(cert.serial_number),
        )
    except (binascii.Error, ValueError, TypeError, UnicodeError) as e:
        logger.debug("certificate parse failed: %s", e, extra={"cert_index": index})
        return fallback_summary(index)


def parse_certificates(items: Iterable[str | bytes]) -> List[CertificateSummary]:
    return [parse_certificate(item, i) for i, item in enumerate(items)]


def _raw_bytes(entry: Any) -> Optional[str]:
    if isinstance(entry, Mapping) and isinstance(entry.get("rawBytes"), str):
        return entry["rawBytes"]
    return None


def collect_certificates(doc: Any) -> List[str]:
    """Certificate strings embedded in a DSSE envelope or Sigstore bundle.

    - DSSE: signatures[].cert
    - Sigstore: verificationMaterial.x509CertificateChain.certificates[].rawBytes
      and verificationMaterial.certificate.rawBytes (bundle v0.3)
    """

    found: List[str] = []
    if is_dsse_envelope(doc):
        for sig in doc["signatures"]:
            if isinstance(sig, Mapping) and isinstance(sig.get("cert"), str) and sig["cert"]:
                found.append(sig["cert"])
    elif is_sigstore_bundle(doc):
        material = doc.get("verificationMaterial")
        if isinstance(material, Mapping):
            chain = material.get("x509CertificateChain")
            if isinstance(chain, Mapping) and isinstance(chain.get("certificates"), list):
                found.extend(c for c in map(_raw_bytes, chain["certificates"]) if c)
            leaf = _raw_bytes(material.get("certificate"))
            if leaf:
                found.append(leaf)
    return found
