"""Cookie-backed session storage.

The session is carried entirely by the ``user_session`` cookie: a compact
HS256 JWT, signed with SESSION_SECRET, whose only application claim is
the provider's access token.  The signature stops the browser from
swapping in a token of its own; it is not encryption, and the token is
readable by anyone holding the cookie.

No server-side state exists.  Logging out deletes the cookie.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

import jwt
from starlette.responses import Response

from authtester.core.config import SETTINGS
from authtester.models.session import UserSession

logger = logging.getLogger(__name__)

SESSION_COOKIE = "user_session"
ALGORITHM = "HS256"
# Separates session cookies from any JWT the provider might issue.
AUDIENCE = "authtester-session"
# Browsers silently drop a cookie whose name plus value exceeds this.
MAX_COOKIE_BYTES = 4096


class SessionTooLargeError(Exception):
    """The signed session would not fit in a single browser cookie."""

    def __init__(self, size: int) -> None:
        super().__init__(
            f"session cookie would be {size} bytes; browsers drop cookies over "
            f"{MAX_COOKIE_BYTES} bytes"
        )
        self.size = size


def encode_session(session: UserSession, *, secret: str | None = None) -> str:
    """Sign *session* into a cookie value."""
    payload = {
        "aud": AUDIENCE,
        "iat": datetime.now(UTC),
        "access_token": session.access_token,
    }
    return jwt.encode(payload, secret or SETTINGS.session_secret, algorithm=ALGORITHM)


def decode_session(value: str, *, secret: str | None = None) -> UserSession | None:
    """Return the session in *value*, or None if it is missing or invalid.

    An invalid cookie (bad signature, wrong audience, garbage) is treated
    as "not logged in", never as an error.
    """
    if not value:
        return None
    try:
        claims = jwt.decode(
            value,
            secret or SETTINGS.session_secret,
            algorithms=[ALGORITHM],
            audience=AUDIENCE,
            options={"require": ["access_token"]},
        )
    except jwt.InvalidTokenError as e:
        logger.debug("Invalid session cookie ignored: %s", type(e).__name__)
        return None

    access_token = claims["access_token"]
    if not isinstance(access_token, str) or not access_token:
        logger.debug("Session cookie without a usable access token ignored")
        return None
    return UserSession(access_token=access_token)


def set_session_cookie(response: Response, session: UserSession) -> None:
    """Store *session* on *response*.

    Raises SessionTooLargeError instead of emitting a cookie the browser
    would discard; the caller decides how to report it.
    """
    value = encode_session(session)
    size = len(SESSION_COOKIE) + 1 + len(value)
    if size > MAX_COOKIE_BYTES:
        raise SessionTooLargeError(size)

    # No max_age: the cookie lives as long as the browser session.
    response.set_cookie(
        key=SESSION_COOKIE,
        value=value,
        httponly=True,
        samesite="lax",
        # The harness runs on plain http://localhost; no Secure flag.
        secure=False,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE, path="/")
