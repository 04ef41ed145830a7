"""Diagnostic home page.

Without a session: a login link.  With a session, in this order:

  Common Claims   identity claims as Claim / Value rows
  Token Claims    iat / exp / auth_time with raw seconds and local time
  Decoded Token   the pretty-printed payload (or the best fallback text)
  Access Token    the raw token from the session

Decode and claim failures are rendered inline; the page itself always
renders.  Every interpolated value goes through html.escape.

Inline HTML keeps this to one module; there is a single page.
"""

from __future__ import annotations

import html
import logging
from datetime import tzinfo

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from authtester.api.dependencies import get_session
from authtester.core.metrics import TOKEN_DECODES
from authtester.models.session import UserSession
from authtester.services.claims import ClaimExtractionError, TokenClaims, extract_claims
from authtester.services.jwt_decoder import DecodedToken, decode_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["home"])

_PAGE_HTML = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>AuthTester</title>
  <style>
    body {{ max-width: 800px; margin: 0 auto; padding: 20px;
           font-family: system-ui, -apple-system, sans-serif; }}
    .data-table {{ width: 100%; border-collapse: collapse; margin-bottom: 20px; }}
    .data-table th, .data-table td {{
      border: 1px solid #ddd; padding: 8px; text-align: left;
    }}
    .data-table th {{ background-color: #f2f2f2; }}
    pre {{ white-space: pre-wrap; word-break: break-all; }}
    .error {{ color: #c00; }}
  </style>
</head>
<body>
  <h1>Welcome to AuthTester</h1>
{content}
</body>
</html>
"""

_PRE = "<pre>{}</pre>"


def _e(value: object) -> str:
    return html.escape(str(value), quote=True)


def _identity_table(claims: TokenClaims) -> str:
    rows = "".join(
        f"<tr><td>{_e(c.label)}</td><td>{_e(c.value)}</td></tr>"
        for c in claims.identity
    )
    return (
        "<h3>Common Claims:</h3>\n"
        '<table class="data-table">'
        "<tr><th>Claim</th><th>Value</th></tr>"
        f"{rows}</table>"
    )


def _timestamp_table(claims: TokenClaims) -> str:
    rows = "".join(
        f"<tr><td>{_e(c.label)}</td><td>{c.seconds}</td><td>{_e(c.local_time)}</td></tr>"
        for c in claims.timestamps
    )
    return (
        "<h3>Token Claims:</h3>\n"
        '<table class="data-table">'
        "<tr><th>Claim</th><th>Unix Timestamp</th><th>Local Date and Time</th></tr>"
        f"{rows}</table>"
    )


def _claims_section(decoded: DecodedToken, tz: tzinfo | None) -> str:
    if decoded.error is not None:
        return f'<p class="error">Error decoding token: {_e(decoded.error)}</p>'
    try:
        claims = extract_claims(decoded.payload, tz=tz)
    except ClaimExtractionError as e:
        logger.warning("Claim extraction failed: %s", e)
        return f'<p class="error">Error extracting claims: {_e(e)}</p>'
    return _identity_table(claims) + "\n" + _timestamp_table(claims)


def render_session(session: UserSession, *, tz: tzinfo | None = None) -> str:
    """HTML fragment for a logged-in visitor."""
    parts = ['<p><a href="/logout">Logout</a></p>', "<h2>Session Data:</h2>"]

    decoded = decode_token(session.access_token)
    if decoded is None:
        TOKEN_DECODES.labels(result="not_jwt").inc()
    else:
        TOKEN_DECODES.labels(
            result=decoded.error.stage if decoded.error else "ok"
        ).inc()
        parts.append(_claims_section(decoded, tz))
        parts.append("<h3>Decoded Token:</h3>")
        parts.append(_PRE.format(_e(decoded.pretty)))

    parts.append("<h3>Access Token:</h3>")
    parts.append(_PRE.format(_e(session.access_token)))
    return "\n".join(parts)


def render_page(session: UserSession | None, *, tz: tzinfo | None = None) -> str:
    if session is None:
        content = '<p><a href="/login">Login</a></p>'
    else:
        content = render_session(session, tz=tz)
    return _PAGE_HTML.format(content=content)


@router.get("/", response_class=HTMLResponse)
def home(session: UserSession | None = Depends(get_session)) -> HTMLResponse:
    return HTMLResponse(render_page(session))
