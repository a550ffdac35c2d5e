from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from approvalrelay.core.approvals.schemas import ApprovalState, Decision, DecisionRequest
from approvalrelay.core.approvals.service import ApprovalLedger
from approvalrelay.core.errors import InvalidPayload

from .auth import require_approver, require_identity
from .deps import get_approval_ledger

STORAGE_DEGRADED_HEADER = "X-Storage-Degraded"

router = APIRouter()
decisions_router = APIRouter()


@router.get("", response_model=ApprovalState, dependencies=[Depends(require_identity)])
def list_approvals(ledger: ApprovalLedger = Depends(get_approval_ledger)) -> ApprovalState:
    return ledger.list_state()


@router.post("")
async def submit_decision(
    request: Request,
    approver: str = Depends(require_approver),
    ledger: ApprovalLedger = Depends(get_approval_ledger),
) -> JSONResponse:
    try:
        payload = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidPayload("Invalid JSON body") from exc
    if not isinstance(payload, dict):
        raise InvalidPayload("Invalid JSON body")
    try:
        body = DecisionRequest.model_validate(payload)
    except ValidationError as exc:
        raise InvalidPayload("id, action and note must be strings") from exc

    outcome = await run_in_threadpool(
        ledger.record_decision,
        id=body.id,
        action=body.action,
        note=body.note,
        approver=approver,
    )
    headers = {} if outcome.persisted else {STORAGE_DEGRADED_HEADER: "true"}
    return JSONResponse(content={"ok": True, **outcome.decision.model_dump()}, headers=headers)


@decisions_router.get("/{decision_id}", response_model=Decision, dependencies=[Depends(require_identity)])
def get_decision(decision_id: str, ledger: ApprovalLedger = Depends(get_approval_ledger)) -> Decision:
    return ledger.get_decision(decision_id)
