from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Request

from authtester.core.config import SETTINGS
from authtester.models.session import UserSession
from authtester.services import session_service
from authtester.services.oauth_client import OAuthClient

logger = logging.getLogger(__name__)


@lru_cache
def get_oauth_client() -> OAuthClient:
    """The process-wide OAuth client, built once from SETTINGS.

    Tests replace it through ``app.dependency_overrides``.
    """
    return OAuthClient(SETTINGS.oauth)


def get_session(request: Request) -> UserSession | None:
    """Return the session from the ``user_session`` cookie, or None."""
    cookie = request.cookies.get(session_service.SESSION_COOKIE)
    if not cookie:
        return None
    return session_service.decode_session(cookie)
