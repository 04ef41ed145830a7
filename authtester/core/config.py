from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]
RequestMethod = Literal["GET", "POST"]

# Dev defaults point at a local Keycloak realm named "test".
_DEV_REALM = "http://localhost:8180/realms/test/protocol/openid-connect"
_DEV_SESSION_SECRET = "dev-only-session-secret-change-me-0123456789"


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it's easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _parse_scopes(raw: str) -> tuple[str, ...]:
    # Accepts "openid,profile" as well as "openid profile"
    return tuple(s for s in re.split(r"[,\s]+", raw) if s)


@dataclass(frozen=True)
class OAuthProviderConfig:
    """Everything the OAuth client needs to talk to one provider."""

    authorize_url: str
    access_token_url: str
    client_id: str
    client_secret: str
    default_scopes: tuple[str, ...]
    request_method: RequestMethod
    callback_url: str
    timeout_sec: float


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    session_secret: str
    oauth: OAuthProviderConfig

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_oauth_config() -> OAuthProviderConfig:
    method_raw = _getenv("OAUTH_REQUEST_METHOD", "POST").upper()
    if method_raw not in ("GET", "POST"):
        raise ValueError(f"OAUTH_REQUEST_METHOD must be GET|POST (got {method_raw!r})")

    timeout_raw = _getenv("OAUTH_TIMEOUT_SEC", "10")
    try:
        timeout_sec = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"OAUTH_TIMEOUT_SEC must be a number (got {timeout_raw!r})"
        ) from None
    if timeout_sec <= 0:
        raise ValueError(f"OAUTH_TIMEOUT_SEC must be positive (got {timeout_raw!r})")

    authorize_url = _getenv("OAUTH_AUTHORIZE_URL", f"{_DEV_REALM}/auth")
    access_token_url = _getenv("OAUTH_ACCESS_TOKEN_URL", f"{_DEV_REALM}/token")
    callback_url = _getenv("OAUTH_CALLBACK_URL", "http://localhost:8080/callback")
    for name, value in (
        ("OAUTH_AUTHORIZE_URL", authorize_url),
        ("OAUTH_ACCESS_TOKEN_URL", access_token_url),
        ("OAUTH_CALLBACK_URL", callback_url),
    ):
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"{name} must be an http(s) URL (got {value!r})")

    client_id = _getenv("OAUTH_CLIENT_ID", "authtester")
    if not client_id:
        raise ValueError("OAUTH_CLIENT_ID must not be empty")

    return OAuthProviderConfig(  # type: ignore[arg-type]
        authorize_url=authorize_url,
        access_token_url=access_token_url,
        client_id=client_id,
        client_secret=_getenv("OAUTH_CLIENT_SECRET", ""),
        default_scopes=_parse_scopes(_getenv("OAUTH_DEFAULT_SCOPES", "openid,profile,email")),
        request_method=method_raw,
        callback_url=callback_url,
        timeout_sec=timeout_sec,
    )


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8080")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    session_secret = _getenv("SESSION_SECRET", _DEV_SESSION_SECRET)
    if not session_secret:
        raise ValueError("SESSION_SECRET must not be empty")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_parse_bool("LOG_JSON", _getenv("LOG_JSON", "false")),
        port=port,
        session_secret=session_secret,
        oauth=load_oauth_config(),
    )


# Module-level singleton so imports are cheap
SETTINGS = load_settings()
