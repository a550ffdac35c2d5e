from __future__ import annotations

import base64
import json

import pytest

from approvalrelay.core.identity import AccessCookieIdentity, HeaderIdentity, build_identity_resolver, email_from_jwt


def _segment(payload: object) -> str:
    return base64.urlsafe_b64encode(json.dumps(payload).encode("utf-8")).decode("ascii").rstrip("=")


def test_email_from_jwt_reads_unpadded_payload() -> None:
    token = f"{_segment({'alg': 'RS256'})}.{_segment({'email': 'a@example.com', 'sub': '1'})}.sig"

    assert email_from_jwt(token) == "a@example.com"


@pytest.mark.parametrize(
    "token",
    [
        "",
        "only-one-part",
        "h.@@@@.sig",
        f"h.{_segment(['not', 'a', 'dict'])}.sig",
        f"h.{_segment({'sub': 'no-email'})}.sig",
        f"h.{_segment({'email': ''})}.sig",
        f"h.{_segment({'email': 42})}.sig",
    ],
)
def test_email_from_jwt_rejects_unusable_tokens(token: str) -> None:
    assert email_from_jwt(token) is None


def test_build_identity_resolver_modes() -> None:
    assert isinstance(build_identity_resolver("access"), AccessCookieIdentity)
    header = build_identity_resolver(" Header ", header_name="X-Forwarded-Email")
    assert isinstance(header, HeaderIdentity)
    assert header.header_name == "X-Forwarded-Email"

    with pytest.raises(ValueError):
        build_identity_resolver("none")
