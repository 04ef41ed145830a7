"""Demo: walk the login → callback → home → logout flow using TestClient.

The identity provider is simulated with httpx.MockTransport, so this runs
without a real provider.

Run with:
    python scripts/demo_login_flow.py
"""

from __future__ import annotations

import json
from urllib.parse import parse_qs, urlparse

import httpx
import jwt
from fastapi.testclient import TestClient

from authtester.api.dependencies import get_oauth_client
from authtester.core.config import SETTINGS
from authtester.main import app
from authtester.services.oauth_client import OAuthClient

DEMO_CLAIMS = {
    "sub": "demo-user",
    "iss": "https://idp.example.com/realms/demo",
    "preferred_username": "demo",
    "iat": 1700000000,
    "exp": 1700003600,
}


def _fake_token_endpoint(request: httpx.Request) -> httpx.Response:
    form = parse_qs(request.content.decode())
    if form.get("code") != ["demo-code"]:
        return httpx.Response(400, json={"error": "invalid_grant"})
    token = jwt.encode(DEMO_CLAIMS, "demo-provider-key-0123456789abcdef", algorithm="HS256")
    return httpx.Response(200, json={"access_token": token, "token_type": "Bearer"})


def main() -> None:
    app.dependency_overrides[get_oauth_client] = lambda: OAuthClient(
        SETTINGS.oauth, transport=httpx.MockTransport(_fake_token_endpoint)
    )
    client = TestClient(app, follow_redirects=False)

    # ── Step 1: GET / (anonymous) ───────────────────────────────────
    r = client.get("/")
    print(f"1. GET  /                  → {r.status_code}  login link: {'/login' in r.text}")

    # ── Step 2: GET /login ──────────────────────────────────────────
    r = client.get("/login")
    location = urlparse(r.headers["location"])
    print(
        f"2. GET  /login             → {r.status_code}  "
        f"{location.netloc}{location.path} "
        f"{json.dumps({k: v[0] for k, v in parse_qs(location.query).items()})}"
    )

    # ── Step 3: GET /callback (bad code) ────────────────────────────
    r = client.get("/callback", params={"code": "wrong-code"})
    print(f"3. GET  /callback (bad)    → {r.status_code}  {r.json()['detail']}")

    # ── Step 4: GET /callback (good code) ───────────────────────────
    r = client.get("/callback", params={"code": "demo-code"})
    print(
        f"4. GET  /callback (good)   → {r.status_code}  "
        f"session cookie set: {'user_session' in r.cookies}"
    )

    # ── Step 5: GET / (session) ─────────────────────────────────────
    r = client.get("/")
    print(
        f"5. GET  /                  → {r.status_code}  "
        f"claims table: {'Common Claims:' in r.text}  "
        f"timestamps: {'Token Claims:' in r.text}"
    )

    # ── Step 6: GET /logout ─────────────────────────────────────────
    r = client.get("/logout")
    r = client.get("/")
    print(f"6. GET  /logout, then /    → {r.status_code}  login link: {'/login' in r.text}")

    app.dependency_overrides.clear()
    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
