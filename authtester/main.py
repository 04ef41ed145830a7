from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI

from authtester.api.health import router as health_router
from authtester.api.home import router as home_router
from authtester.api.logout import router as logout_router
from authtester.api.metrics_endpoint import router as metrics_router
from authtester.api.oauth import router as oauth_router
from authtester.core.config import SETTINGS
from authtester.core.logging import setup_logging
from authtester.middleware.metrics import MetricsMiddleware
from authtester.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


# only app setup + router registration

app = FastAPI(
    title="authtester",
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) → Metrics → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(home_router)
app.include_router(oauth_router)
app.include_router(logout_router)

logger.info(
    "authtester started  env=%s log_level=%s port=%d provider=%s method=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.oauth.authorize_url,
    SETTINGS.oauth.request_method,
)


def run() -> None:
    """Console entry point: serve the harness with uvicorn."""
    uvicorn.run(app, host="127.0.0.1", port=SETTINGS.port, log_config=None)
