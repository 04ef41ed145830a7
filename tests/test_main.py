from __future__ import annotations

from fastapi.testclient import TestClient

from authtester.main import app

client = TestClient(app, follow_redirects=False)


def test_routes_are_registered() -> None:
    paths = {route.path for route in app.routes}
    assert {"/", "/login", "/callback", "/logout", "/health", "/metrics"} <= paths


def test_undefined_route_returns_404() -> None:
    resp = client.get("/nonexistent")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Not Found"}


def test_post_to_login_returns_405() -> None:
    resp = client.post("/login")
    assert resp.status_code == 405


def test_post_to_callback_returns_405() -> None:
    resp = client.post("/callback", data={"code": "c"})
    assert resp.status_code == 405


def test_docs_disabled_outside_dev() -> None:
    # Tests run with APP_ENV=test
    assert client.get("/docs").status_code == 404
