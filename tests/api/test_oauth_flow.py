"""Authorization-code flow, end to end, against a fake provider.

Flow:
  1. GET /login     → 302 to the provider's authorize endpoint
  2. (provider)     → user signs in, browser comes back with ?code=
  3. GET /callback  → code exchanged at the token endpoint, cookie set
  4. GET /          → decoded token view
  5. GET /logout    → cookie cleared, / shows the login link again
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import httpx
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from authtester.services import session_service
from authtester.services.claims import format_timestamp
from tests.conftest import AUTHORIZE_URL, CALLBACK_URL, CLIENT_ID, FakeProvider

# ---- /login ----


def test_login_redirects_to_provider(client: TestClient, provider: FakeProvider) -> None:
    resp = client.get("/login")
    assert resp.status_code == 302

    location = urlparse(resp.headers["location"])
    assert f"{location.scheme}://{location.netloc}{location.path}" == AUTHORIZE_URL
    query = parse_qs(location.query)
    assert query["client_id"] == [CLIENT_ID]
    assert query["redirect_uri"] == [CALLBACK_URL]
    assert query["scope"] == ["openid profile email"]
    assert query["response_type"] == ["code"]
    # No state parameter is sent (known gap).
    assert "state" not in query
    # Nothing is sent to the token endpoint yet.
    assert provider.requests == []


# ---- /callback: success ----


def test_full_flow_login_callback_home_logout(
    client: TestClient, provider: FakeProvider
) -> None:
    # Phase 1: start
    assert client.get("/login").status_code == 302

    # Phase 2/3: provider sends the browser back with a code
    resp = client.get("/callback", params={"code": "auth-code-1"})
    assert resp.status_code == 302
    assert resp.headers["location"] == "/"
    assert session_service.SESSION_COOKIE in resp.cookies

    (token_request,) = provider.requests
    assert parse_qs(token_request.content.decode())["code"] == ["auth-code-1"]

    # Phase 4: decoded token view
    page = client.get("/")
    assert page.status_code == 200
    assert 'href="/logout"' in page.text
    assert "<td>sub (Subject)</td><td>u1</td>" in page.text
    assert "iss (Issuer)" not in page.text
    assert f"<td>1700000000</td><td>{format_timestamp(1700000000)}</td>" in page.text
    assert f"<td>1700003600</td><td>{format_timestamp(1700003600)}</td>" in page.text
    assert provider.access_token in page.text

    # Phase 5: logout
    resp = client.get("/logout")
    assert resp.status_code == 302
    assert resp.headers["location"] == "/"

    page = client.get("/")
    assert 'href="/login"' in page.text
    assert "Session Data" not in page.text


def test_callback_stores_the_token_returned_by_provider(
    client: TestClient, provider: FakeProvider
) -> None:
    provider.access_token = "opaque-token-from-provider"
    resp = client.get("/callback", params={"code": "c"})
    cookie = resp.cookies[session_service.SESSION_COOKIE]
    session = session_service.decode_session(cookie)
    assert session is not None
    assert session.access_token == "opaque-token-from-provider"


# ---- /callback: failures never create a session ----


def _assert_no_session(client: TestClient, resp: httpx.Response) -> None:
    assert session_service.SESSION_COOKIE not in resp.cookies
    assert client.cookies.get(session_service.SESSION_COOKIE) is None
    page = client.get("/")
    assert 'href="/login"' in page.text
    assert "Decoded Token" not in page.text


def test_token_endpoint_400_creates_no_session(
    client: TestClient, provider: FakeProvider
) -> None:
    provider.status_code = 400
    provider.body = {"error": "invalid_grant"}

    resp = client.get("/callback", params={"code": "expired-code"})

    assert resp.status_code == 502
    assert "invalid_grant" in resp.json()["detail"]
    _assert_no_session(client, resp)


def test_missing_access_token_creates_no_session(
    client: TestClient, provider: FakeProvider
) -> None:
    provider.body = {"access_token": None}

    resp = client.get("/callback", params={"code": "c"})

    assert resp.status_code == 502
    assert "no access_token" in resp.json()["detail"]
    _assert_no_session(client, resp)


def test_unreachable_provider_creates_no_session(
    client: TestClient, provider: FakeProvider
) -> None:
    provider.error = httpx.ConnectError("connection refused")

    resp = client.get("/callback", params={"code": "c"})

    assert resp.status_code == 502
    _assert_no_session(client, resp)


def test_provider_error_redirect_is_400_without_token_request(
    client: TestClient, provider: FakeProvider
) -> None:
    resp = client.get(
        "/callback",
        params={"error": "access_denied", "error_description": "User cancelled"},
    )

    assert resp.status_code == 400
    assert resp.json()["detail"] == "provider returned error=access_denied (User cancelled)"
    assert provider.requests == []
    _assert_no_session(client, resp)


def test_callback_without_code_is_400(client: TestClient, provider: FakeProvider) -> None:
    resp = client.get("/callback")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "missing authorization code"
    assert provider.requests == []


def test_failed_callback_keeps_existing_session_untouched(
    client: TestClient, provider: FakeProvider
) -> None:
    client.get("/callback", params={"code": "good"})
    before = client.cookies.get(session_service.SESSION_COOKIE)

    provider.status_code = 400
    provider.body = {"error": "invalid_grant"}
    resp = client.get("/callback", params={"code": "bad"})

    assert resp.status_code == 502
    assert "set-cookie" not in resp.headers
    assert client.cookies.get(session_service.SESSION_COOKIE) == before


# ---- /logout ----


def test_logout_without_session_is_a_plain_redirect(client: TestClient) -> None:
    resp = client.get("/logout")
    assert resp.status_code == 302
    assert resp.headers["location"] == "/"


def test_token_too_large_for_a_cookie_creates_no_session(
    client: TestClient, provider: FakeProvider
) -> None:
    before = REGISTRY.get_sample_value(
        "oauth_token_exchanges_total", {"outcome": "session_too_large"}
    ) or 0.0
    provider.access_token = "x" * 3552

    resp = client.get("/callback", params={"code": "c"})

    assert resp.status_code == 502
    assert "browsers drop cookies over 4096 bytes" in resp.json()["detail"]
    assert "set-cookie" not in resp.headers
    _assert_no_session(client, resp)
    after = REGISTRY.get_sample_value(
        "oauth_token_exchanges_total", {"outcome": "session_too_large"}
    )
    assert after == before + 1
