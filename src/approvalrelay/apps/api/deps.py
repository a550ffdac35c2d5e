from __future__ import annotations

from functools import lru_cache

from approvalrelay.core import config
from approvalrelay.core.approvals.service import ApprovalLedger
from approvalrelay.core.identity import IdentityResolver, build_identity_resolver
from approvalrelay.core.kv import FileKVStore, KeyValueStore, MemoryKVStore
from approvalrelay.core.relay.service import StatusRelay

STATUS_NAMESPACE = "status"
APPROVALS_NAMESPACE = "approvals"


def _build_store(namespace: str) -> KeyValueStore | None:
    mode = config.store_mode()
    if mode == "off":
        return None
    if mode == "memory":
        return MemoryKVStore(namespace=namespace)
    return FileKVStore(state_dir=config.state_dir(), namespace=namespace)


@lru_cache(maxsize=1)
def get_status_store() -> KeyValueStore | None:
    return _build_store(STATUS_NAMESPACE)


@lru_cache(maxsize=1)
def get_approvals_store() -> KeyValueStore | None:
    return _build_store(APPROVALS_NAMESPACE)


@lru_cache(maxsize=1)
def get_status_relay() -> StatusRelay:
    return StatusRelay(status_store=get_status_store(), approvals_store=get_approvals_store())


@lru_cache(maxsize=1)
def get_approval_ledger() -> ApprovalLedger:
    return ApprovalLedger(
        store=get_approvals_store(),
        approvers=config.approvers(),
        history_max=config.history_max(),
        write_attempts=config.write_attempts(),
    )


@lru_cache(maxsize=1)
def get_identity_resolver() -> IdentityResolver:
    return build_identity_resolver(config.identity_mode(), header_name=config.identity_header())


def reset_deps() -> None:
    get_status_store.cache_clear()
    get_approvals_store.cache_clear()
    get_status_relay.cache_clear()
    get_approval_ledger.cache_clear()
    get_identity_resolver.cache_clear()
