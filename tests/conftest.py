from __future__ import annotations

import pytest

from approvalrelay.apps.api import deps
from approvalrelay.core.kv import MemoryKVStore

APPROVERS = "approver@example.com,Second.Approver@Example.com"


@pytest.fixture(autouse=True)
def relay_env(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RELAY_STATE_DIR", str(tmp_path))
    monkeypatch.setenv("RELAY_STORE_MODE", "memory")
    monkeypatch.setenv("RELAY_SYNC_SECRET", "sync-secret")
    monkeypatch.setenv("RELAY_APPROVERS", APPROVERS)
    monkeypatch.setenv("RELAY_IDENTITY_MODE", "header")
    monkeypatch.setenv("RELAY_LOG_TO_FILE", "off")
    monkeypatch.delenv("RELAY_HISTORY_MAX", raising=False)
    monkeypatch.delenv("RELAY_IDENTITY_HEADER", raising=False)
    deps.reset_deps()
    yield
    deps.reset_deps()


class InterleavingStore(MemoryKVStore):
    """Memory store that runs a one-shot hook right before a conditional write on a key.

    Lets a test slip a competing writer between a read and its write-back.
    """

    def __init__(self, namespace: str = "approvals") -> None:
        super().__init__(namespace=namespace)
        self.hooks: dict[str, object] = {}
        self.conditional_writes: list[tuple[str, bool]] = []

    def put_if_version(self, key: str, value: str, expected_version: int | None) -> bool:
        hook = self.hooks.pop(key, None)
        if callable(hook):
            hook()
        written = super().put_if_version(key, value, expected_version)
        self.conditional_writes.append((key, written))
        return written


@pytest.fixture
def interleaving_store() -> InterleavingStore:
    return InterleavingStore()
