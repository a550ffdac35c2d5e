"""Verified-caller extraction for human approvers.

The relay never verifies credentials itself. An upstream access proxy (for
example Cloudflare Access) validates the caller and forwards either a signed
token cookie or a trusted header; the resolvers here only read the identity
the proxy already vouched for.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Protocol

from fastapi import Request

ACCESS_COOKIE = "CF_Authorization"
DEFAULT_IDENTITY_HEADER = "X-Relay-User"


class IdentityResolver(Protocol):
    def resolve(self, request: Request) -> str | None: ...


class AccessCookieIdentity:
    """Reads the ``email`` claim from the proxy's JWT cookie without re-validating it."""

    def __init__(self, cookie_name: str = ACCESS_COOKIE) -> None:
        self.cookie_name = cookie_name

    def resolve(self, request: Request) -> str | None:
        token = request.cookies.get(self.cookie_name)
        if not token:
            return None
        return email_from_jwt(token)


class HeaderIdentity:
    def __init__(self, header_name: str = DEFAULT_IDENTITY_HEADER) -> None:
        self.header_name = header_name

    def resolve(self, request: Request) -> str | None:
        value = (request.headers.get(self.header_name) or "").strip()
        return value or None


def email_from_jwt(token: str) -> str | None:
    parts = token.split(".")
    if len(parts) < 2:
        return None
    segment = parts[1]
    padded = segment + "=" * (-len(segment) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    email = payload.get("email")
    if not isinstance(email, str) or not email:
        return None
    return email


def build_identity_resolver(mode: str, header_name: str = DEFAULT_IDENTITY_HEADER) -> IdentityResolver:
    normalized = mode.strip().casefold()
    if normalized == "access":
        return AccessCookieIdentity()
    if normalized == "header":
        return HeaderIdentity(header_name)
    raise ValueError(f"unknown identity mode: {mode}")
