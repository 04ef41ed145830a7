"""Typed extraction of well-known claims from a decoded JWT payload.

Two fixed lists are probed:

  identity claims   (sub, iss, aud, …)   included when the value is a string
  timestamp claims  (iat, exp, auth_time) included when the value is an integer

Anything absent or of another type is left out of the result.  Only a
payload that is not a JSON object at all (or a timestamp the platform
cannot convert) is an error, and the page shows it inline.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any

logger = logging.getLogger(__name__)

LOCAL_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")

IDENTITY_CLAIMS: tuple[tuple[str, str], ...] = (
    ("sub", "Subject"),
    ("iss", "Issuer"),
    ("aud", "Audience"),
    ("azp", "Authorized Party"),
    ("jti", "JWT ID"),
    ("scope", "Scope"),
    ("email", "Email Address"),
    ("name", "Full Name"),
    ("preferred_username", "Preferred Username"),
)

TIMESTAMP_CLAIMS: tuple[tuple[str, str], ...] = (
    ("iat", "Issued At"),
    ("exp", "Expiration Time"),
    ("auth_time", "Authentication Time"),
)


class ClaimExtractionError(Exception):
    """The payload cannot be read as a claims object."""


@dataclass(frozen=True)
class IdentityClaim:
    name: str
    description: str
    value: str

    @property
    def label(self) -> str:
        return f"{self.name} ({self.description})"


@dataclass(frozen=True)
class TimestampClaim:
    name: str
    description: str
    seconds: int
    local_time: str

    @property
    def label(self) -> str:
        return f"{self.name} ({self.description})"


@dataclass(frozen=True)
class TokenClaims:
    identity: tuple[IdentityClaim, ...]
    timestamps: tuple[TimestampClaim, ...]

    def get(self, name: str) -> IdentityClaim | TimestampClaim | None:
        for claim in (*self.identity, *self.timestamps):
            if claim.name == name:
                return claim
        return None


def format_timestamp(seconds: int, tz: tzinfo | None = None) -> str:
    """Render Unix epoch *seconds* as local date-time text.

    tz=None uses the system's local time zone.
    """
    return datetime.fromtimestamp(seconds, tz=tz).strftime(LOCAL_TIME_FORMAT)


def _as_string(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _as_epoch_seconds(name: str, value: Any) -> int | None:
    # bool is an int subclass; true/false are not timestamps.
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if _INTEGER_RE.fullmatch(value.strip()):
            try:
                return int(value)
            except ValueError as exc:
                # Past the interpreter's int-digit limit.
                raise ClaimExtractionError(
                    f"{name} is not a representable timestamp"
                ) from exc
    return None


def extract_claims(payload: Any, *, tz: tzinfo | None = None) -> TokenClaims:
    """Probe *payload* for the identity and timestamp claims.

    Raises ClaimExtractionError if the payload is not a JSON object or a
    timestamp claim is outside the platform's convertible range.
    """
    if not isinstance(payload, dict):
        raise ClaimExtractionError(
            f"payload is a JSON {_json_type(payload)}, not an object"
        )

    identity: list[IdentityClaim] = []
    for name, description in IDENTITY_CLAIMS:
        if name not in payload:
            continue
        value = _as_string(payload[name])
        if value is None:
            logger.debug("Skipping claim %s: not a string", name)
            continue
        identity.append(IdentityClaim(name, description, value))

    timestamps: list[TimestampClaim] = []
    for name, description in TIMESTAMP_CLAIMS:
        if name not in payload:
            continue
        seconds = _as_epoch_seconds(name, payload[name])
        if seconds is None:
            logger.debug("Skipping claim %s: not an integer", name)
            continue
        try:
            local_time = format_timestamp(seconds, tz)
        except (OverflowError, OSError, ValueError) as exc:
            raise ClaimExtractionError(
                f"{name} is not a representable timestamp"
            ) from exc
        timestamps.append(TimestampClaim(name, description, seconds, local_time))

    return TokenClaims(identity=tuple(identity), timestamps=tuple(timestamps))


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "string" if isinstance(value, str) else "array"
