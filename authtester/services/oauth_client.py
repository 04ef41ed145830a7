"""OAuth 2.0 client side of the authorization-code flow.

    /login     → 302 to authorize_url() at the provider
    provider   → 302 back to the callback URL with ?code=…
    /callback  → exchange_code(code) at the provider's token endpoint

No PKCE, no state, no refresh: this is a harness for looking at what a
provider issues, not a hardened relying party.

The token request is made with httpx.  Tests (and the demo script) pass
an ``httpx.MockTransport`` to stand in for the provider.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import parse_qsl, urlencode

import httpx

from authtester.core.config import OAuthProviderConfig

logger = logging.getLogger(__name__)


class OAuthExchangeError(Exception):
    """The code-for-token exchange failed; no session may be created.

    ``outcome`` is a short machine label (used as a metrics label) and
    ``status_code`` is the HTTP status the callback should answer with.
    """

    def __init__(self, message: str, *, outcome: str, status_code: int = 502) -> None:
        super().__init__(message)
        self.outcome = outcome
        self.status_code = status_code


class OAuthClient:
    def __init__(
        self,
        config: OAuthProviderConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport

    # ------------------------------------------------------------------
    # Step 1: authorization request
    # ------------------------------------------------------------------

    def authorize_url(self) -> str:
        """URL of the provider's authorize endpoint with our parameters."""
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.callback_url,
            "scope": " ".join(self.config.default_scopes),
            "response_type": "code",
        }
        sep = "&" if "?" in self.config.authorize_url else "?"
        return f"{self.config.authorize_url}{sep}{urlencode(params)}"

    # ------------------------------------------------------------------
    # Step 2: token request
    # ------------------------------------------------------------------

    def _token_params(self, code: str) -> dict[str, str]:
        return {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.config.callback_url,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
        }

    def _send(self, code: str) -> httpx.Response:
        params = self._token_params(code)
        headers = {"Accept": "application/json"}
        with httpx.Client(
            transport=self._transport, timeout=self.config.timeout_sec
        ) as client:
            if self.config.request_method == "GET":
                return client.get(
                    self.config.access_token_url, params=params, headers=headers
                )
            return client.post(
                self.config.access_token_url, data=params, headers=headers
            )

    def exchange_code(self, code: str) -> str:
        """Trade an authorization code for the provider's access token.

        Returns the raw access-token string.  Raises OAuthExchangeError on a
        network failure, a non-2xx response, an unreadable body, or a body
        without an access_token.
        """
        logger.info(
            "Token exchange start  method=%s url=%s",
            self.config.request_method,
            self.config.access_token_url,
        )
        try:
            response = self._send(code)
        except httpx.TimeoutException as e:
            raise OAuthExchangeError(
                f"token endpoint timed out after {self.config.timeout_sec}s",
                outcome="network_error",
            ) from e
        except httpx.HTTPError as e:
            raise OAuthExchangeError(
                f"token endpoint unreachable: {type(e).__name__}",
                outcome="network_error",
            ) from e

        try:
            body = _parse_token_body(response)
        except ValueError as e:
            if response.is_success:
                raise OAuthExchangeError(
                    f"malformed token response: {e}", outcome="malformed_response"
                ) from None
            body = {}

        if not response.is_success:
            raise OAuthExchangeError(
                _describe_http_error(response.status_code, body),
                outcome="http_error",
            )

        access_token = body.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise OAuthExchangeError(
                "token response contains no access_token", outcome="missing_token"
            )

        logger.info(
            "Token exchange succeeded  token_type=%s token_len=%d",
            body.get("token_type", "-"),
            len(access_token),
        )
        return access_token


def _parse_token_body(response: httpx.Response) -> dict[str, Any]:
    """Read a token endpoint body as JSON or form-encoded pairs.

    Raises ValueError if the body is neither a JSON object nor a form
    string.
    """
    content_type = response.headers.get("content-type", "").split(";")[0].strip()
    text = response.text
    if content_type == "application/x-www-form-urlencoded":
        return dict(parse_qsl(text, keep_blank_values=True))
    try:
        body = response.json()
    except ValueError:
        # Some providers answer form-encoded with a text/plain content type.
        pairs = parse_qsl(text, keep_blank_values=True, strict_parsing=True)
        if not pairs:
            raise ValueError("body is neither JSON nor form-encoded") from None
        return dict(pairs)
    if not isinstance(body, dict):
        raise ValueError("JSON body is not an object")
    return body


def _describe_http_error(status_code: int, body: dict[str, Any]) -> str:
    message = f"token endpoint returned HTTP {status_code}"
    error = body.get("error")
    if isinstance(error, str) and error:
        message += f" error={error}"
        description = body.get("error_description")
        if isinstance(description, str) and description:
            message += f" ({description})"
    return message
