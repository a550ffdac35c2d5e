from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from approvalrelay.core.relay.service import StatusRelay

from .auth import require_agent
from .deps import get_status_relay

router = APIRouter()


@router.post("", dependencies=[Depends(require_agent)])
async def push_status(request: Request, relay: StatusRelay = Depends(get_status_relay)) -> dict:
    body = await request.body()
    receipt = await run_in_threadpool(relay.accept_snapshot, body)
    return {"ok": True, "received_at": receipt.received_at, "agents": receipt.agents}


@router.get("")
def get_status(relay: StatusRelay = Depends(get_status_relay)) -> Response:
    return Response(content=relay.get_latest_snapshot(), media_type="application/json")
