from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class TransformationOut(BaseModel):
    """One decode event, addressed by tree path."""

    path: str
    kind: str
    originalValue: str


class NormalizeOut(BaseModel):
    """Unwrapped tree plus provenance."""

    tree: Any = None
    transformations: List[TransformationOut] = Field(default_factory=list)
    originals: Dict[str, str] = Field(default_factory=dict)


class PatternOut(BaseModel):
    """Recognized envelope shape."""

    type: str
    confidence: float
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AnalyzeOut(NormalizeOut):
    pattern: PatternOut


class CertificateOut(BaseModel):
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


class HistoryItemOut(BaseModel):
    """A stored history entry; raw text is serialized as ``json``."""

    model_config = ConfigDict(populate_by_name=True)

    raw: str = Field(alias="json")
    timestamp: int
    patternType: Optional[str] = None


class ShareOut(BaseModel):
    token: str
    url: str
    too_long: bool
