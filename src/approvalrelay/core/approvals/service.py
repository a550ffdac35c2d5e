from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from approvalrelay.core.approvals.keys import HISTORY_KEY, PENDING_KEY, decision_key
from approvalrelay.core.approvals.schemas import ACTIONS, ApprovalState, Decision, DecisionOutcome
from approvalrelay.core.errors import InvalidAction, MissingField, NotAuthorized, NotFound
from approvalrelay.core.kv import KeyValueStore, VersionedList
from approvalrelay.core.logging.context import log_context

DEFAULT_HISTORY_MAX = 100


class ApprovalLedger:
    """Pending queue plus a bounded, newest-first decision history.

    ``store`` may be ``None`` when no storage is configured; decisions are then
    built and returned but never persisted, and ``DecisionOutcome.persisted`` is
    ``False`` so callers can tell.
    """

    def __init__(
        self,
        store: KeyValueStore | None,
        approvers: Iterable[str],
        history_max: int = DEFAULT_HISTORY_MAX,
        write_attempts: int = 5,
    ) -> None:
        self.store = store
        self.approvers = frozenset(email.strip().casefold() for email in approvers if email.strip())
        self.history_max = max(1, history_max)
        self.write_attempts = write_attempts
        self.logger = logging.getLogger("approvalrelay.approvals")

    @property
    def pending(self) -> VersionedList | None:
        if self.store is None:
            return None
        return VersionedList(self.store, PENDING_KEY, max_attempts=self.write_attempts)

    @property
    def history(self) -> VersionedList | None:
        if self.store is None:
            return None
        return VersionedList(self.store, HISTORY_KEY, max_attempts=self.write_attempts)

    def is_approver(self, identity: str | None) -> bool:
        return bool(identity) and identity.strip().casefold() in self.approvers

    def list_state(self) -> ApprovalState:
        if self.pending is None or self.history is None:
            return ApprovalState()
        return ApprovalState(pending=self.pending.read(), history=self.history.read())

    def get_decision(self, decision_id: str) -> Decision:
        raw = self.store.get(decision_key(decision_id)) if self.store is not None else None
        if raw is None:
            raise NotFound(f"no decision recorded for {decision_id}")
        return Decision.model_validate_json(raw)

    def record_decision(
        self,
        id: str | None,
        action: str | None,
        note: str | None,
        approver: str | None,
        now: datetime | None = None,
    ) -> DecisionOutcome:
        if not id or not action:
            raise MissingField()
        if action not in ACTIONS:
            raise InvalidAction()
        if not self.is_approver(approver):
            raise NotAuthorized()

        at = (now or datetime.now(timezone.utc)).isoformat()
        decision = Decision(id=id, action=action, note=note or "", by=approver, at=at)

        with log_context(decision_id=id, caller=approver):
            if self.store is None:
                self.logger.warning("decision_not_persisted", extra={"extra_fields": {"action": action}})
                return DecisionOutcome(decision=decision, persisted=False)

            self.store.put(decision_key(id), decision.model_dump_json())

            removed = 0

            def drop_decided(items: list) -> list:
                nonlocal removed
                kept = [item for item in items if _item_id(item) != id]
                removed = len(items) - len(kept)
                return kept

            # An unseeded queue stays absent so the first snapshot can still seed it.
            remaining = self.pending.update(drop_decided, create=False)
            self.history.update(lambda entries: [decision.model_dump(), *entries][: self.history_max])
            self.logger.info(
                "decision_recorded",
                extra={"extra_fields": {"action": action, "was_pending": removed > 0, "pending_count": len(remaining)}},
            )
            return DecisionOutcome(decision=decision, persisted=True)


def _item_id(item: object) -> object:
    if isinstance(item, dict):
        return item.get("id")
    return None
