"""Display-only JWT decoding.

Splits a compact token and decodes its payload segment for inspection.
Signature verification is NOT performed; the harness shows whatever the
provider issued.

Decoding is a pipeline of independent stages:

    base64  ->  utf8  ->  json

Each stage returns either its value or a DecodeError.  A failed stage
stops the pipeline, and the DecodedToken keeps the best text available so
far for display:

    base64 failed  -> the raw payload segment
    utf8 failed    -> the bytes decoded with U+FFFD replacements
    json failed    -> the decoded text as-is

Nothing in this module raises.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any, Literal

logger = logging.getLogger(__name__)

DecodeStage = Literal["base64", "utf8", "json"]


class DecodeError(Exception):
    """A failed decode stage.

    Returned as a value (never raised) so each stage's failure can be
    handled on its own.
    """

    def __init__(self, stage: DecodeStage, message: str) -> None:
        super().__init__(message)
        self.stage = stage
        self.message = message

    def __str__(self) -> str:
        return f"{self.stage}: {self.message}"


@dataclass(frozen=True)
class DecodedToken:
    raw: str
    payload_segment: str
    payload_text: str | None
    payload: Any
    pretty: str
    error: DecodeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def padding_for(segment: str) -> str:
    """Return the '=' padding that makes *segment* a multiple of 4 long.

    A length of 4n+1 can never be valid base64; the padding returned for it
    ("===") is what the arithmetic gives, and the decode stage rejects it.
    """
    return "=" * ((4 - len(segment) % 4) % 4)


def pretty_json(value: Any) -> str:
    # Stable indentation; key order is the provider's.
    return json.dumps(value, indent=2, ensure_ascii=False)


def _decode_base64url(segment: str) -> bytes | DecodeError:
    if len(segment) % 4 == 1:
        return DecodeError(
            "base64", f"invalid base64url length {len(segment)} (4n+1)"
        )
    try:
        return base64.b64decode(
            segment + padding_for(segment), altchars=b"-_", validate=True
        )
    except (binascii.Error, ValueError) as exc:
        return DecodeError("base64", str(exc))


def _decode_utf8(data: bytes) -> str | DecodeError:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        return DecodeError("utf8", str(exc))


def _parse_json(text: str) -> Any | DecodeError:
    # ValueError covers JSONDecodeError and the int-digit limit; deeply
    # nested arrays exhaust the recursion limit.
    try:
        return json.loads(text)
    except (ValueError, RecursionError) as exc:
        return DecodeError("json", str(exc) or type(exc).__name__)


def _format_json(payload: Any) -> str | DecodeError:
    # The indenting encoder recurses deeper per level than the parser.
    try:
        return pretty_json(payload)
    except RecursionError:
        return DecodeError("json", "payload is nested too deeply to display")


def decode_token(raw: str) -> DecodedToken | None:
    """Decode the payload of a compact JWT for display.

    Returns None when *raw* has fewer than two '.'-separated segments,
    i.e. it is not a JWT (an opaque access token, for example).
    """
    token = raw.strip()
    parts = token.split(".")
    if len(parts) < 2:
        logger.debug("Token has %d segment(s); not a JWT", len(parts))
        return None

    segment = parts[1]

    data = _decode_base64url(segment)
    if isinstance(data, DecodeError):
        logger.warning("Token payload decode failed  stage=%s", data.stage)
        return DecodedToken(
            raw=token,
            payload_segment=segment,
            payload_text=None,
            payload=None,
            pretty=segment,
            error=data,
        )

    text = _decode_utf8(data)
    if isinstance(text, DecodeError):
        logger.warning("Token payload decode failed  stage=%s", text.stage)
        return DecodedToken(
            raw=token,
            payload_segment=segment,
            payload_text=None,
            payload=None,
            pretty=data.decode("utf-8", errors="replace"),
            error=text,
        )

    payload = _parse_json(text)
    if isinstance(payload, DecodeError):
        logger.warning("Token payload decode failed  stage=%s", payload.stage)
        return DecodedToken(
            raw=token,
            payload_segment=segment,
            payload_text=text,
            payload=None,
            pretty=text,
            error=payload,
        )

    pretty = _format_json(payload)
    if isinstance(pretty, DecodeError):
        logger.warning("Token payload decode failed  stage=%s", pretty.stage)
        return DecodedToken(
            raw=token,
            payload_segment=segment,
            payload_text=text,
            payload=None,
            pretty=text,
            error=pretty,
        )

    return DecodedToken(
        raw=token,
        payload_segment=segment,
        payload_text=text,
        payload=payload,
        pretty=pretty,
    )
