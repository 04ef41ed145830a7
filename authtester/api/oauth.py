from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from authtester.api.dependencies import get_oauth_client
from authtester.core.metrics import TOKEN_EXCHANGES
from authtester.models.session import UserSession
from authtester.services import session_service
from authtester.services.oauth_client import OAuthClient, OAuthExchangeError

# ---------------------------------------------------------------------------
# Relying party: OAuth 2.0 Authorization Code flow
#
# Endpoints:
#   GET /login   : send the browser to the provider's authorize endpoint
#   GET /callback: provider redirect target; exchange code, set session
#
# Known gap: no `state` parameter is sent or checked (no CSRF protection on
# the callback).
# ---------------------------------------------------------------------------

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])

OAuthClientDep = Annotated[OAuthClient, Depends(get_oauth_client)]


# ============================== GET /login ==================================


@router.get("/login")
def login(client: OAuthClientDep) -> RedirectResponse:
    url = client.authorize_url()
    logger.info(
        "Redirecting to provider  authorize_url=%s client_id=%s scopes=%s",
        client.config.authorize_url,
        client.config.client_id,
        " ".join(client.config.default_scopes),
    )
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


# ============================== GET /callback ===============================


def _fail(exc: OAuthExchangeError) -> HTTPException:
    TOKEN_EXCHANGES.labels(outcome=exc.outcome).inc()
    logger.warning(
        "Callback failed  outcome=%s: %s",
        exc.outcome,
        exc,
        extra={"outcome": exc.outcome},
    )
    return HTTPException(exc.status_code, str(exc))


@router.get("/callback")
def callback(
    client: OAuthClientDep,
    code: str | None = Query(None),
    error: str | None = Query(None),
    error_description: str | None = Query(None),
) -> RedirectResponse:
    """Exchange the authorization code and start the session.

    On any failure the request ends with an HTTP error and no cookie is
    set; the next visit to / still shows the login link.
    """
    # FAIL POINT: the provider redirected back with an error (user denied
    # consent, unknown client, bad scope).
    if error:
        detail = f"provider returned error={error}"
        if error_description:
            detail += f" ({error_description})"
        raise _fail(
            OAuthExchangeError(
                detail, outcome="provider_error", status_code=status.HTTP_400_BAD_REQUEST
            )
        )

    # FAIL POINT: /callback hit directly, without a code.
    if not code:
        raise _fail(
            OAuthExchangeError(
                "missing authorization code",
                outcome="missing_code",
                status_code=status.HTTP_400_BAD_REQUEST,
            )
        )

    try:
        access_token = client.exchange_code(code)
    except OAuthExchangeError as e:
        raise _fail(e) from None

    response = RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
    # FAIL POINT: the token is too large to carry in the session cookie.
    try:
        session_service.set_session_cookie(
            response, UserSession(access_token=access_token)
        )
    except session_service.SessionTooLargeError as e:
        raise _fail(
            OAuthExchangeError(
                f"access token of {len(access_token)} chars cannot be stored: {e}",
                outcome="session_too_large",
            )
        ) from None

    TOKEN_EXCHANGES.labels(outcome="success").inc()
    logger.info("Session created", extra={"outcome": "success"})
    return response
