from __future__ import annotations

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..observability.context import request_id_var
from ..observability.logging import get_logger


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    - Accepts inbound X-Request-Id (if present) or generates a UUIDv4.
    - Stores it in request.state.request_id and the logging contextvar.
    - Emits one structured access log line per request.
    - Always echoes X-Request-Id on the response.
    """

    header_name = "X-Request-Id"

    def __init__(self, app, *, exclude_paths: set[str] | None = None):
        super().__init__(app)
        self._exclude = exclude_paths or set()
        self._log = get_logger("access")

    async def dispatch(self, request: Request, call_next):
        inbound = request.headers.get("x-request-id")
        request_id = (str(inbound).strip() if inbound else "") or str(uuid.uuid4())

        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[self.header_name] = request_id
            if request.url.path not in self._exclude:
                self._log.info(
                    "request",
                    http_method=request.method.upper(),
                    path=request.url.path,
                    status_code=int(getattr(response, "status_code", 0) or 0),
                    duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
                )
            return response
        finally:
            request_id_var.reset(token)
