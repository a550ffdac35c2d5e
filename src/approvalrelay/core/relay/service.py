from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from approvalrelay.core.approvals.keys import PENDING_KEY
from approvalrelay.core.errors import InvalidPayload, NotFound
from approvalrelay.core.kv import KeyValueStore, VersionedList

STATUS_KEY = "status"
LAST_SYNC_KEY = "last_sync"
NO_STATUS_MESSAGE = "No status data available. Waiting for first sync."


@dataclass
class SyncReceipt:
    received_at: str
    agents: str
    seeded: bool = False


class StatusRelay:
    def __init__(self, status_store: KeyValueStore | None, approvals_store: KeyValueStore | None) -> None:
        self.status_store = status_store
        self.approvals_store = approvals_store
        self.logger = logging.getLogger("approvalrelay.relay")

    def accept_snapshot(self, body: str | bytes | dict[str, Any], now: datetime | None = None) -> SyncReceipt:
        raw, snapshot = _parse_snapshot(body)
        received_at = (now or datetime.now(timezone.utc)).isoformat()

        if self.status_store is not None:
            self.status_store.put(STATUS_KEY, raw)
            self.status_store.put(LAST_SYNC_KEY, received_at)
        else:
            self.logger.warning("snapshot_not_persisted")

        seeded = False
        if self.approvals_store is not None:
            pending = VersionedList(self.approvals_store, PENDING_KEY)
            if not pending.exists():
                items = _seed_items(snapshot.get("pending_approvals"))
                seeded = pending.initialize(items)
                if seeded:
                    self.logger.info("pending_seeded", extra={"extra_fields": {"pending_count": len(items)}})

        receipt = SyncReceipt(received_at=received_at, agents=_agents_summary(snapshot), seeded=seeded)
        self.logger.info("snapshot_accepted", extra={"extra_fields": {"agents": receipt.agents, "bytes": len(raw)}})
        return receipt

    def get_latest_snapshot(self) -> str:
        raw = self.status_store.get(STATUS_KEY) if self.status_store is not None else None
        if raw is None:
            raise NotFound(NO_STATUS_MESSAGE)
        return raw

    def last_sync(self) -> str | None:
        if self.status_store is None:
            return None
        return self.status_store.get(LAST_SYNC_KEY)


def _parse_snapshot(body: str | bytes | dict[str, Any]) -> tuple[str, dict[str, Any]]:
    if isinstance(body, dict):
        return json.dumps(body, ensure_ascii=False), body
    try:
        text = body.decode("utf-8") if isinstance(body, bytes) else body
        snapshot = json.loads(text)
    except (json.JSONDecodeError, ValueError) as exc:
        raise InvalidPayload("Invalid JSON") from exc
    if not isinstance(snapshot, dict):
        raise InvalidPayload("Status payload must be a JSON object")
    return text, snapshot


def _seed_items(raw_items: object) -> list[Any]:
    if not isinstance(raw_items, list):
        return []
    seen: set[str] = set()
    items: list[Any] = []
    for item in raw_items:
        item_id = item.get("id") if isinstance(item, dict) else None
        if item_id is not None:
            if str(item_id) in seen:
                continue
            seen.add(str(item_id))
        items.append(item)
    return items


def _agents_summary(snapshot: dict[str, Any]) -> str:
    summary = snapshot.get("summary")
    if isinstance(summary, dict) and summary.get("active_agents") is not None:
        return f"{summary['active_agents']} active"
    return "unknown"
