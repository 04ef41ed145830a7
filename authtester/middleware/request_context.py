"""Request context middleware: request IDs and per-request summary lines.

Every request gets an ID: the client's X-Request-ID when it is a short
token of safe characters, otherwise a fresh UUID4.  The ID lives in a
ContextVar, and a log-record factory copies it onto every LogRecord as it
is created, so lines from any logger (the token exchange included) carry
it regardless of which handler ends up formatting them.

The summary line records method, path, status and duration, plus the
*names* of the query parameters.  Values are never logged: /callback
carries the authorization code in its query string, and a provider error
redirect carries free text.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

_REQUEST_ID_RE = re.compile(r"[A-Za-z0-9._-]{1,64}")


def _install_record_factory() -> None:
    previous = logging.getLogRecordFactory()
    # Module reloads must not stack a second wrapper.
    if getattr(previous, "_adds_request_id", False):
        return

    def factory(*args: object, **kwargs: object) -> logging.LogRecord:
        record = previous(*args, **kwargs)
        record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        return record

    factory._adds_request_id = True  # type: ignore[attr-defined]
    logging.setLogRecordFactory(factory)


_install_record_factory()


def _request_id(request: Request) -> str:
    supplied = request.headers.get("x-request-id", "")
    if _REQUEST_ID_RE.fullmatch(supplied):
        return supplied
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, log one summary line.

    The ID is echoed back in the X-Request-ID response header.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = _request_id(request)
        token = request_id_var.set(req_id)
        try:
            start = time.monotonic()
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)

            params = ",".join(sorted(request.query_params.keys()))
            logger.info(
                "%s %s%s → %d (%.1fms)",
                request.method,
                request.url.path,
                f" params={params}" if params else "",
                response.status_code,
                duration_ms,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "query_params": params or None,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = req_id
        return response
