"""Prometheus metrics middleware.

Every request except scrapes of /metrics itself updates:
  - ACTIVE_REQUESTS (inc on entry, dec on exit)
  - REQUEST_COUNT by method / endpoint / status
  - REQUEST_DURATION by method / endpoint

The endpoint label is the path template of the route that handled the
request.  Anything that matched no route (scanners probing /wp-login.php,
typos) is counted under "unmatched", so arbitrary URLs cannot grow the
label set.  Callback outcomes are counted separately by the route, in
oauth_token_exchanges_total.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import BaseRoute

from authtester.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

UNMATCHED = "unmatched"


def endpoint_label(request: Request) -> str:
    """Return the route template the router matched, or UNMATCHED."""
    route: BaseRoute | None = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for every HTTP request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code = "500"

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            # The router records the matched route on the shared scope.
            endpoint = endpoint_label(request)
            ACTIVE_REQUESTS.dec()
            REQUEST_COUNT.labels(
                method=request.method, endpoint=endpoint, status_code=status_code
            ).inc()
            REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(
                time.monotonic() - start
            )

        return response
