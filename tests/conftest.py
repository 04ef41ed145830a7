from __future__ import annotations

import base64
import dataclasses
import json
import os
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any

# Settings are read at import time; pin the environment before importing the app.
os.environ.setdefault("APP_ENV", "test")

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import authtester` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from authtester.api.dependencies import get_oauth_client  # noqa: E402
from authtester.core.config import OAuthProviderConfig  # noqa: E402
from authtester.main import app  # noqa: E402
from authtester.models.session import UserSession  # noqa: E402
from authtester.services import session_service  # noqa: E402
from authtester.services.oauth_client import OAuthClient  # noqa: E402

AUTHORIZE_URL = "https://idp.example.com/realms/test/auth"
TOKEN_URL = "https://idp.example.com/realms/test/token"
CLIENT_ID = "authtester-test"
CLIENT_SECRET = "test-client-s3cret-value"
CALLBACK_URL = "http://localhost:8080/callback"

TEST_PROVIDER = OAuthProviderConfig(
    authorize_url=AUTHORIZE_URL,
    access_token_url=TOKEN_URL,
    client_id=CLIENT_ID,
    client_secret=CLIENT_SECRET,
    default_scopes=("openid", "profile", "email"),
    request_method="POST",
    callback_url=CALLBACK_URL,
    timeout_sec=5.0,
)

# Key the fake provider signs its tokens with. The harness never verifies it.
_PROVIDER_SIGNING_KEY = "fake-provider-signing-key-0123456789abcdef"


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------


def b64url(data: bytes) -> str:
    """base64url without padding, as used in compact JWTs."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def mint_jwt(payload: dict[str, Any]) -> str:
    """A signed JWT the way a real provider would issue it."""
    return jwt.encode(payload, _PROVIDER_SIGNING_KEY, algorithm="HS256")


def raw_jwt(payload_segment: str) -> str:
    """A three-segment token with an arbitrary (possibly broken) payload."""
    header = b64url(json.dumps({"alg": "RS256", "typ": "JWT"}).encode())
    return f"{header}.{payload_segment}.c2lnbmF0dXJl"


# ---------------------------------------------------------------------------
# Fake identity provider (token endpoint)
# ---------------------------------------------------------------------------


class FakeProvider:
    """Token endpoint stand-in, served through httpx.MockTransport.

    Tests mutate ``status_code`` / ``body`` / ``error`` before driving the
    callback; every request received is kept in ``requests``.
    """

    def __init__(self) -> None:
        self.status_code = 200
        self.access_token: str = mint_jwt(
            {"sub": "u1", "iat": 1700000000, "exp": 1700003600}
        )
        self.body: Any = None
        self.content_type: str | None = None
        self.error: Exception | None = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if isinstance(self.body, str):
            headers = {"content-type": self.content_type or "text/plain"}
            return httpx.Response(self.status_code, text=self.body, headers=headers)
        body = self.body
        if body is None:
            body = {
                "access_token": self.access_token,
                "token_type": "Bearer",
                "expires_in": 300,
            }
        return httpx.Response(self.status_code, json=body)

    def client(self, config: OAuthProviderConfig = TEST_PROVIDER) -> OAuthClient:
        return OAuthClient(config, transport=httpx.MockTransport(self.handler))


@pytest.fixture
def provider() -> FakeProvider:
    """Route the app's OAuth client to a FakeProvider."""
    fake = FakeProvider()
    app.dependency_overrides[get_oauth_client] = lambda: fake.client()
    return fake


@pytest.fixture(autouse=True)
def reset_dependency_overrides() -> Iterator[None]:
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app, follow_redirects=False)


def provider_config(**changes: Any) -> OAuthProviderConfig:
    return dataclasses.replace(TEST_PROVIDER, **changes)


def login_with_token(client: TestClient, access_token: str) -> None:
    """Put a session holding *access_token* into the client's cookie jar."""
    client.cookies.set(
        session_service.SESSION_COOKIE,
        session_service.encode_session(UserSession(access_token=access_token)),
    )

