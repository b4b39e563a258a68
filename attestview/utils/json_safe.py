from __future__ import annotations

import base64
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Mapping


def to_jsonable(obj: Any) -> Any:
    """
    Convert result objects to JSON-serializable equivalents.

    - objects exposing to_dict() use it (records, results, summaries)
    - str Enums collapse to their value
    - bytes are base64-encoded
    """
    if obj is None or isinstance(obj, (bool, int, float)):
        return obj

    if isinstance(obj, Enum):
        return to_jsonable(obj.value)

    if isinstance(obj, str):
        return obj

    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_jsonable(to_dict())

    # datetime/date -> ISO 8601
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()

    if isinstance(obj, Path):
        return str(obj)

    # bytes -> base64 string
    if isinstance(obj, (bytes, bytearray)):
        return {"__bytes_b64__": base64.b64encode(bytes(obj)).decode("ascii")}

    if is_dataclass(obj) and not isinstance(obj, type):
        return to_jsonable(asdict(obj))

    if isinstance(obj, Mapping):
        return {str(k): to_jsonable(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple, set, frozenset)):
        return [to_jsonable(x) for x in obj]

    # fallback: string representation
    return str(obj)
