"""Logout: forget the access token held in the session cookie.

Nothing is revoked at the provider; the token stays valid there until it
expires.  This only ends the harness's session.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from authtester.api.dependencies import get_session
from authtester.models.session import UserSession
from authtester.services import session_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/logout")
def logout(session: UserSession | None = Depends(get_session)) -> RedirectResponse:
    """Delete the session cookie and go back to the home page.

    Idempotent: logging out without a session is a plain redirect.
    """
    response = RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
    session_service.clear_session_cookie(response)
    if session is not None:
        logger.info("Session cleared")
    return response
