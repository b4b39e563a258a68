from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("attestview.api")

REQUEST_ID_HEADER = "X-Request-ID"


def _client_request_id(request: Request, header_name: str, max_len: int) -> Optional[str]:
    rid = request.headers.get(header_name)
    if rid and len(rid) <= max_len and rid.isprintable():
        return rid
    return None


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Echo or assign X-Request-ID.

    Client ids longer than ``max_len`` or containing control characters are
    replaced, so they never reach the access log verbatim.
    """

    def __init__(self, app, *, header_name: str = REQUEST_ID_HEADER, max_len: int = 128):
        super().__init__(app)
        self.header_name = header_name
        self.max_len = max_len

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = _client_request_id(request, self.header_name, self.max_len) or uuid4().hex
        request.state.request_id = rid
        response = await call_next(request)
        response.headers[self.header_name] = rid
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One ``api_request`` record per request.

    Documents are never logged. Endpoints that classify a document set
    ``request.state.pattern_type`` and it is logged alongside the timing.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.monotonic()
        response: Optional[Response] = None
        try:
            response = await call_next(request)
            return response
        finally:
            status_code = response.status_code if response is not None else 500
            fields: Dict[str, Any] = {
                "request_id": getattr(request.state, "request_id", None),
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "bytes_in": request.headers.get("content-length"),
                "pattern_type": getattr(request.state, "pattern_type", None),
                "duration_ms": int((time.monotonic() - start) * 1000),
            }
            level = logging.WARNING if status_code >= 500 else logging.INFO
            log.log(level, "api_request", extra=fields)
