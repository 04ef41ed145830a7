"""Prometheus metrics for authtester.

All metrics are defined here so there is one inventory of what the
harness measures.  Modules import the metric they own and increment it at
the point of action.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # /callback includes a round-trip to the provider, hence the long tail.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# OAuth / token metrics
# ---------------------------------------------------------------------------

TOKEN_EXCHANGES = Counter(
    "oauth_token_exchanges_total",
    "Authorization-code exchanges by outcome",
    # success, provider_error, missing_code, network_error, http_error,
    # malformed_response, missing_token
    ["outcome"],
)

TOKEN_DECODES = Counter(
    "token_decodes_total",
    "Session tokens decoded for display, by result",
    ["result"],  # ok, not_jwt, base64, utf8, json
)
