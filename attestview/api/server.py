from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from attestview.api.middleware import AccessLogMiddleware, RequestIdMiddleware
from attestview.api.models import (
    AnalyzeOut,
    CertificateOut,
    HistoryItemOut,
    NormalizeOut,
    PatternOut,
    ShareOut,
)
from attestview.certs import collect_certificates, parse_certificates
from attestview.config import Settings, load_settings
from attestview.core.normalization import PayloadNormalizer
from attestview.core.patterns import PatternResult, recognize
from attestview.core.pipeline import Analysis, analyze, parse_document
from attestview.errors import InvalidJsonError
from attestview.history import HistoryStore
from attestview.sharing import compress_for_url, is_compressed_url_too_long

log = logging.getLogger("attestview.api")


def create_app(*, settings: Optional[Settings] = None) -> FastAPI:
    """Create the FastAPI app.

    Endpoints take the raw JSON document as the request body.
    """

    cfg = settings or load_settings()
    log.setLevel(cfg.log_level)

    app = FastAPI(title="attestview API", version="0.1")
    app.state.cfg = cfg

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(AccessLogMiddleware)

    if cfg.history_db is not None:
        store = HistoryStore(cfg.history_db, limit=cfg.history_limit)
        store.init_schema()
        app.state.store = store
    else:
        app.state.store = None

    normalizer = PayloadNormalizer(max_depth=cfg.max_depth, max_chain_depth=cfg.max_chain_depth)

    async def _read_body(request: Request) -> str:
        """Read the request body under the size cap."""

        chunks: List[bytes] = []
        total = 0
        async for chunk in request.stream():
            total += len(chunk)
            if total > cfg.max_body_bytes:
                raise HTTPException(status_code=413, detail="body_too_large")
            chunks.append(chunk)
        try:
            return b"".join(chunks).decode("utf-8")
        except UnicodeDecodeError:
            raise HTTPException(status_code=400, detail=str(InvalidJsonError()))

    def _parse(raw: str) -> Any:
        try:
            return parse_document(raw)
        except InvalidJsonError as e:
            raise HTTPException(status_code=400, detail=str(e))

    def _require_store() -> HistoryStore:
        store = getattr(app.state, "store", None)
        if store is None:
            raise HTTPException(status_code=404, detail="history_disabled")
        return store

    # CPU-bound work runs in the threadpool; only the body read stays async.

    def _normalize_raw(raw: str) -> Dict[str, Any]:
        return normalizer.normalize(_parse(raw)).to_dict()

    def _recognize_raw(raw: str) -> PatternResult:
        return recognize(_parse(raw))

    def _analyze_raw(raw: str, record: bool) -> Analysis:
        try:
            res = analyze(raw, settings=cfg)
        except InvalidJsonError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if record:
            _require_store().add(raw, pattern_type=res.pattern.type.value)
        return res

    def _certificates_raw(raw: str) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in parse_certificates(collect_certificates(_parse(raw)))]

    def _share_raw(raw: str) -> ShareOut:
        _parse(raw)
        token = compress_for_url(raw)
        return ShareOut(
            token=token,
            url=cfg.share_base_url + token,
            too_long=is_compressed_url_too_long(
                raw, cfg.share_max_url_length, base_url=cfg.share_base_url
            ),
        )

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"ok": True, "history": cfg.history_db is not None}

    @app.post("/normalize", response_model=NormalizeOut)
    async def normalize_endpoint(request: Request) -> Dict[str, Any]:
        raw = await _read_body(request)
        return await run_in_threadpool(_normalize_raw, raw)

    @app.post("/recognize", response_model=PatternOut)
    async def recognize_endpoint(request: Request) -> Dict[str, Any]:
        raw = await _read_body(request)
        pattern = await run_in_threadpool(_recognize_raw, raw)
        request.state.pattern_type = pattern.type.value
        return pattern.to_dict()

    @app.post("/analyze", response_model=AnalyzeOut)
    async def analyze_endpoint(request: Request, record: bool = False) -> Dict[str, Any]:
        """Normalize + recognize; ``record=true`` also stores the document in history."""

        raw = await _read_body(request)
        res = await run_in_threadpool(_analyze_raw, raw, record)
        request.state.pattern_type = res.pattern.type.value
        return res.to_dict()

    @app.post("/certificates", response_model=List[CertificateOut])
    async def certificates_endpoint(request: Request) -> List[Dict[str, Any]]:
        raw = await _read_body(request)
        return await run_in_threadpool(_certificates_raw, raw)

    @app.post("/share", response_model=ShareOut)
    async def share_endpoint(request: Request) -> ShareOut:
        raw = await _read_body(request)
        return await run_in_threadpool(_share_raw, raw)

    @app.get("/history", response_model=List[HistoryItemOut])
    def list_history() -> List[HistoryItemOut]:
        return [
            HistoryItemOut(raw=it.json, timestamp=it.timestamp, patternType=it.pattern_type)
            for it in _require_store().load()
        ]

    @app.delete("/history/{index}")
    def remove_history_item(index: int) -> Dict[str, Any]:
        try:
            _require_store().remove(index)
        except IndexError:
            raise HTTPException(status_code=404, detail="history_entry_not_found")
        return {"ok": True}

    @app.delete("/history")
    def clear_history() -> Dict[str, Any]:
        _require_store().clear()
        return {"ok": True}

    return app
