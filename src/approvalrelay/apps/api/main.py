from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from approvalrelay.core import config
from approvalrelay.core.errors import RelayError
from approvalrelay.core.kv import FileKVStore
from approvalrelay.core.logging import configure_logging
from approvalrelay.core.logging.context import log_context

from .auth import get_sync_secret
from .deps import get_approval_ledger, get_approvals_store, get_status_relay, get_status_store
from .routes_approvals import decisions_router
from .routes_approvals import router as approvals_router
from .routes_sync import router as sync_router

logger = logging.getLogger("approvalrelay.api")


def _state_dir_writable(state_dir: Path) -> bool:
    try:
        state_dir.mkdir(parents=True, exist_ok=True)
        probe = state_dir / ".write-check"
        probe.write_text("ok", encoding="utf-8")
        probe.unlink(missing_ok=True)
        return True
    except OSError:
        return False


app = FastAPI(title="Approval Relay API")
configure_logging(config.state_dir())

app.include_router(sync_router, prefix="/api/sync", tags=["sync"])
app.include_router(approvals_router, prefix="/api/approve", tags=["approvals"])
app.include_router(decisions_router, prefix="/api/decisions", tags=["approvals"])


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    level = logging.WARNING if exc.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "request_failed",
        extra={"extra_fields": {"path": request.url.path, "status": exc.status_code, "error": type(exc).__name__}},
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.middleware("http")
async def no_store_middleware(request, call_next):
    response = await call_next(request)
    response.headers["Cache-Control"] = "no-store"
    return response


@app.middleware("http")
async def request_context_middleware(request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid4())
    with log_context(correlation_id=correlation_id):
        response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


@app.on_event("startup")
def startup() -> None:
    get_status_relay()
    ledger = get_approval_ledger()
    logger.info(
        "relay_started",
        extra={"extra_fields": {"store_mode": config.store_mode(), "approvers": len(ledger.approvers)}},
    )


@app.get("/healthz")
def healthz() -> dict[str, bool]:
    return {"ok": True}


@app.get("/healthz/full")
def healthz_full() -> dict[str, object]:
    mode = config.store_mode()
    status_store = get_status_store()
    approvals_store = get_approvals_store()
    file_backed = isinstance(status_store, FileKVStore) or isinstance(approvals_store, FileKVStore)
    state_writable = _state_dir_writable(config.state_dir()) if file_backed else None
    approvers = get_approval_ledger().approvers

    payload: dict[str, object] = {
        "ok": True,
        "python": {"version": sys.version.split()[0]},
        "storage": {
            "mode": mode,
            "degraded": status_store is None or approvals_store is None,
            "state_dir": str(config.state_dir()) if file_backed else None,
            "writable": state_writable,
        },
        "sync": {
            "secret_configured": bool(get_sync_secret()),
            "last_sync": get_status_relay().last_sync(),
        },
        "auth": {"identity_mode": config.identity_mode(), "approvers": len(approvers)},
    }

    if mode == "off" or state_writable is False:
        payload["ok"] = False
    if not get_sync_secret() or not approvers:
        payload["ok"] = False

    return payload


def run() -> None:
    uvicorn.run(
        "approvalrelay.apps.api.main:app",
        host=os.getenv("RELAY_HOST", "127.0.0.1"),
        port=int(os.getenv("RELAY_PORT", "8000")),
    )
