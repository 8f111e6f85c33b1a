from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .observability.logging import get_logger
from .settings import get_settings

PROBLEM_JSON = "application/problem+json"

log = get_logger("errors")


def _default_title(status_code: int) -> str:
    if status_code == 400:
        return "Bad Request"
    if status_code == 401:
        return "Unauthorized"
    if status_code == 404:
        return "Not Found"
    if status_code == 405:
        return "Method Not Allowed"
    if status_code == 422:
        return "Unprocessable Entity"
    if status_code == 503:
        return "Service Unavailable"
    if status_code >= 500:
        return "Internal Server Error"
    return "Error"


def _request_id(request: Request) -> str | None:
    rid = getattr(getattr(request, "state", None), "request_id", None)
    if rid:
        return str(rid)
    hdr = request.headers.get("x-request-id")
    return str(hdr) if hdr else None


def problem_response(
    *,
    request: Request,
    status_code: int,
    title: str | None = None,
    detail: str | None = None,
    errors: list[dict[str, Any]] | None = None,
) -> ORJSONResponse:
    """RFC7807 body; 5xx detail is suppressed in production."""
    settings = get_settings()

    payload: dict[str, Any] = {
        "type": "about:blank",
        "title": title or _default_title(int(status_code)),
        "status": int(status_code),
    }
    if detail and not (int(status_code) >= 500 and settings.is_production):
        payload["detail"] = str(detail)
    path = str(getattr(request.url, "path", "") or "")
    if path:
        payload["instance"] = path
    rid = _request_id(request)
    if rid:
        payload["requestId"] = rid
    if errors:
        payload["errors"] = errors

    return ORJSONResponse(status_code=int(status_code), content=payload, media_type=PROBLEM_JSON)


def http_exception_handler(request: Request, exc: StarletteHTTPException) -> ORJSONResponse:
    status_code = int(getattr(exc, "status_code", 500) or 500)
    detail = getattr(exc, "detail", None)
    safe_detail = str(detail) if detail is not None else None
    if status_code == 404:
        safe_detail = safe_detail if safe_detail and safe_detail != "Not Found" else "Route not found"
    return problem_response(request=request, status_code=status_code, detail=safe_detail)


def validation_error_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    errors = [
        {"loc": list(e.get("loc") or []), "msg": str(e.get("msg") or ""), "type": str(e.get("type") or "")}
        for e in exc.errors()
    ]
    return problem_response(request=request, status_code=422, title="Validation Failed", errors=errors)


def unhandled_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    log.exception("unhandled_exception", path=str(request.url.path))
    return problem_response(
        request=request,
        status_code=500,
        title="Something went wrong!",
        detail=str(exc) or type(exc).__name__,
    )
