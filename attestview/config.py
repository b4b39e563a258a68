from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from attestview.core.normalization import DEFAULT_MAX_CHAIN_DEPTH, DEFAULT_MAX_DEPTH

DEFAULT_HISTORY_LIMIT = 20
DEFAULT_SHARE_BASE_URL = "https://example.com/?json="
DEFAULT_SHARE_MAX_URL_LENGTH = 2000
DEFAULT_MAX_BODY_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime configuration shared by the CLI and the API.

    history_db is optional. Without it, history features are disabled.
    """

    max_depth: int = DEFAULT_MAX_DEPTH
    max_chain_depth: int = DEFAULT_MAX_CHAIN_DEPTH
    history_db: Optional[Path] = None
    history_limit: int = DEFAULT_HISTORY_LIMIT
    share_base_url: str = DEFAULT_SHARE_BASE_URL
    share_max_url_length: int = DEFAULT_SHARE_MAX_URL_LENGTH
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES
    log_level: str = "INFO"


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable; bad values fall back to default."""

    raw = os.environ.get(name, "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


def _env_str(name: str, default: Optional[str]) -> Optional[str]:
    raw = os.environ.get(name, "").strip()
    return raw or default


def load_settings(*, history_db: Optional[str] = None) -> Settings:
    """Build Settings from ATTESTVIEW_* environment variables.

    An explicit ``history_db`` argument overrides ATTESTVIEW_HISTORY_DB.
    """

    db = history_db or _env_str("ATTESTVIEW_HISTORY_DB", None)
    return Settings(
        max_depth=max(1, _env_int("ATTESTVIEW_MAX_DEPTH", DEFAULT_MAX_DEPTH)),
        max_chain_depth=max(0, _env_int("ATTESTVIEW_MAX_CHAIN_DEPTH", DEFAULT_MAX_CHAIN_DEPTH)),
        history_db=Path(db) if db else None,
        history_limit=max(1, _env_int("ATTESTVIEW_HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT)),
        share_base_url=_env_str("ATTESTVIEW_SHARE_BASE_URL", DEFAULT_SHARE_BASE_URL) or DEFAULT_SHARE_BASE_URL,
        share_max_url_length=_env_int("ATTESTVIEW_SHARE_MAX_URL_LENGTH", DEFAULT_SHARE_MAX_URL_LENGTH),
        max_body_bytes=_env_int("ATTESTVIEW_MAX_BODY_BYTES", DEFAULT_MAX_BODY_BYTES),
        log_level=(_env_str("ATTESTVIEW_LOG_LEVEL", "INFO") or "INFO").upper(),
    )
