from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class UserSession:
    """Browser session state: the opaque access token and nothing else.

    Created on a successful /callback, cleared by /logout.
    """

    access_token: str
