from __future__ import annotations

import hmac
import os

from fastapi import Depends, Request

from approvalrelay.core.approvals.service import ApprovalLedger
from approvalrelay.core.errors import NotAuthorized, Unauthorized
from approvalrelay.core.identity import IdentityResolver

from .deps import get_approval_ledger, get_identity_resolver

SYNC_SECRET_ENV = "RELAY_SYNC_SECRET"
AUTH_HEADER = "Authorization"
BEARER_PREFIX = "Bearer "


def get_sync_secret() -> str:
    return os.getenv(SYNC_SECRET_ENV, "")


def extract_bearer(request: Request) -> str:
    header = request.headers.get(AUTH_HEADER, "")
    if header.startswith(BEARER_PREFIX):
        return header[len(BEARER_PREFIX):]
    return header


def is_agent_authenticated(request: Request) -> bool:
    required = get_sync_secret()
    if not required:
        return False
    provided = extract_bearer(request)
    return hmac.compare_digest(provided.encode("utf-8"), required.encode("utf-8"))


def require_agent(request: Request) -> None:
    if not is_agent_authenticated(request):
        raise Unauthorized()


def require_identity(request: Request, resolver: IdentityResolver = Depends(get_identity_resolver)) -> str:
    email = resolver.resolve(request)
    if not email:
        raise Unauthorized()
    return email


def require_approver(
    email: str = Depends(require_identity),
    ledger: ApprovalLedger = Depends(get_approval_ledger),
) -> str:
    if not ledger.is_approver(email):
        raise NotAuthorized()
    return email

