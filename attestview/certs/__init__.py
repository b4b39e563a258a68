from .parser import (
    CertificateSummary,
    collect_certificates,
    fallback_summary,
    parse_certificate,
    parse_certificates,
)

__all__ = [
    "CertificateSummary",
    "parse_certificate",
    "parse_certificates",
    "collect_certificates",
    "fallback_summary",
]
