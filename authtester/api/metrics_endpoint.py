"""Prometheus scrape endpoint (text exposition format, not JSON).

Besides the HTTP request metrics, the interesting series here are
oauth_token_exchanges_total{outcome} and token_decodes_total{result}:
together they show how a provider under test is behaving.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
