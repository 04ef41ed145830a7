"""Liveness endpoint.

The harness has no backing services of its own; if the process can
answer, it is healthy.  The identity provider is not probed; a provider
outage shows up as a failed /callback.
"""

from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}
