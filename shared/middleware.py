"""FastAPI middleware for request correlation and problem+json errors."""

import time
from collections.abc import Callable
from contextvars import ContextVar
from uuid import uuid4

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from shared.exceptions import ProblemDetailError

logger = structlog.get_logger()

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

PROBLEM_JSON = "application/problem+json"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with an X-Request-ID and bind it into the log context.

    A caller-supplied X-Request-ID is echoed back; otherwise a UUID v4 is
    minted. Every aggregator and provider log line emitted while serving
    the request carries the same request_id, so one snapshot's fan-out
    can be followed across its per-metric query logs.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Callable[..., Response]]
    ):
        rid = request.headers.get("X-Request-ID") or str(uuid4())
        request_id_var.set(rid)
        structlog.contextvars.bind_contextvars(request_id=rid, path=request.url.path)
        start_time = time.monotonic()

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = rid
            logger.info(
                "request_completed",
                method=request.method,
                status_code=response.status_code,
                duration_ms=round((time.monotonic() - start_time) * 1000, 1),
            )
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id", "path")


def _problem_response(status: int, body: dict) -> JSONResponse:
    return JSONResponse(status_code=status, content=body, media_type=PROBLEM_JSON)


async def problem_detail_handler(request: Request, exc: ProblemDetailError) -> JSONResponse:
    """Render a ProblemDetailError as an RFC 9457 body."""
    logger.warning("problem_response", type=exc.type_uri, status=exc.status, detail=exc.detail)
    body = {
        "type": exc.type_uri,
        "title": exc.title,
        "status": exc.status,
        "detail": exc.detail,
        "instance": str(request.url.path),
    }
    return _problem_response(exc.status, body)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes and wrong methods still answer in problem+json."""
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    body = {
        "type": "about:blank",
        "title": detail,
        "status": exc.status_code,
        "detail": detail,
        "instance": str(request.url.path),
    }
    return _problem_response(exc.status_code, body)
