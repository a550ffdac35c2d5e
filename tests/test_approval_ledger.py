from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from approvalrelay.core.approvals.service import ApprovalLedger
from approvalrelay.core.errors import InvalidAction, MissingField, NotAuthorized, NotFound
from approvalrelay.core.kv import MemoryKVStore
from approvalrelay.core.relay.service import StatusRelay

APPROVER = "approver@example.com"
T0 = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def _ledger(store: MemoryKVStore | None = None, pending: list[dict] | None = None, **kwargs) -> ApprovalLedger:
    store = store if store is not None else MemoryKVStore(namespace="approvals")
    if pending is not None:
        store.put("pending", json.dumps(pending))
    return ApprovalLedger(store=store, approvers=[APPROVER, "Ops.Lead@Example.com"], **kwargs)


def test_decision_removes_item_and_prepends_history() -> None:
    ledger = _ledger(pending=[{"id": "A", "title": "prune"}, {"id": "B"}])

    outcome = ledger.record_decision("A", "approve", "looks fine", APPROVER, now=T0)

    assert outcome.persisted is True
    state = ledger.list_state()
    assert state.pending == [{"id": "B"}]
    first = state.history[0]
    assert (first.id, first.action, first.at, first.by, first.note) == ("A", "approve", T0.isoformat(), APPROVER, "looks fine")


def test_decision_is_indexed_by_id() -> None:
    ledger = _ledger(pending=[{"id": "A"}])
    ledger.record_decision("A", "reject", None, APPROVER, now=T0)

    stored = ledger.get_decision("A")

    assert stored.action == "reject"
    assert stored.note == ""
    assert json.loads(ledger.store.get("decision:A"))["at"] == T0.isoformat()


def test_unknown_decision_is_not_found() -> None:
    with pytest.raises(NotFound):
        _ledger().get_decision("missing")


def test_history_is_capped_newest_first() -> None:
    ledger = _ledger(pending=[])
    for index in range(101):
        ledger.record_decision(f"item-{index}", "approve", None, APPROVER, now=T0 + timedelta(minutes=index))

    history = ledger.list_state().history

    assert len(history) == 100
    assert history[0].id == "item-100"
    assert history[-1].id == "item-1"
    assert [entry.id for entry in history] == [f"item-{index}" for index in range(100, 0, -1)]


def test_custom_history_cap() -> None:
    ledger = _ledger(pending=[], history_max=3)
    for index in range(5):
        ledger.record_decision(f"item-{index}", "reject", None, APPROVER, now=T0)

    assert [entry.id for entry in ledger.list_state().history] == ["item-4", "item-3", "item-2"]


def test_decision_for_id_not_pending_still_recorded() -> None:
    ledger = _ledger(pending=[{"id": "B"}])

    ledger.record_decision("Z", "approve", None, APPROVER, now=T0)

    state = ledger.list_state()
    assert state.pending == [{"id": "B"}]
    assert state.history[0].id == "Z"


def test_decision_before_first_sync_leaves_queue_seedable() -> None:
    store = MemoryKVStore(namespace="approvals")
    ledger = _ledger(store=store)
    relay = StatusRelay(status_store=MemoryKVStore(namespace="status"), approvals_store=store)

    ledger.record_decision("Z", "approve", None, APPROVER, now=T0)
    assert store.get("pending") is None

    receipt = relay.accept_snapshot({"pending_approvals": [{"id": "A"}, {"id": "B"}]}, now=T0)

    assert receipt.seeded is True
    state = ledger.list_state()
    assert state.pending == [{"id": "A"}, {"id": "B"}]
    assert [entry.id for entry in state.history] == ["Z"]


def test_redeciding_overwrites_point_lookup_and_appends_history() -> None:
    ledger = _ledger(pending=[{"id": "A"}])
    ledger.record_decision("A", "approve", None, APPROVER, now=T0)
    ledger.record_decision("A", "reject", "changed my mind", APPROVER, now=T0 + timedelta(hours=1))

    assert ledger.get_decision("A").action == "reject"
    assert [entry.action for entry in ledger.list_state().history] == ["reject", "approve"]


def test_approver_check_is_case_insensitive() -> None:
    ledger = _ledger(pending=[{"id": "A"}])

    outcome = ledger.record_decision("A", "approve", None, "ops.lead@example.com", now=T0)

    assert outcome.decision.by == "ops.lead@example.com"


@pytest.mark.parametrize(
    ("item_id", "action", "approver", "error"),
    [
        (None, "approve", APPROVER, MissingField),
        ("A", "", APPROVER, MissingField),
        # Field presence is checked before the action value and the approver.
        (None, "maybe", "stranger@example.com", MissingField),
        ("A", "maybe", APPROVER, InvalidAction),
        ("A", "maybe", "stranger@example.com", InvalidAction),
        ("A", "approve", "stranger@example.com", NotAuthorized),
        ("A", "approve", None, NotAuthorized),
    ],
)
def test_preconditions_fail_in_order_without_mutation(item_id, action, approver, error) -> None:
    ledger = _ledger(pending=[{"id": "A"}])

    with pytest.raises(error):
        ledger.record_decision(item_id, action, None, approver, now=T0)

    state = ledger.list_state()
    assert state.pending == [{"id": "A"}]
    assert state.history == []


def test_without_storage_decision_is_returned_but_not_persisted() -> None:
    ledger = ApprovalLedger(store=None, approvers=[APPROVER])

    outcome = ledger.record_decision("A", "approve", "dev run", APPROVER, now=T0)

    assert outcome.persisted is False
    assert outcome.decision.id == "A"
    assert outcome.decision.at == T0.isoformat()
    state = ledger.list_state()
    assert state.pending == []
    assert state.history == []


def test_concurrent_decisions_on_different_ids_are_both_applied(interleaving_store) -> None:
    interleaving_store.put("pending", json.dumps([{"id": "A"}, {"id": "B"}, {"id": "C"}]))
    first = ApprovalLedger(store=interleaving_store, approvers=[APPROVER])
    second = ApprovalLedger(store=interleaving_store, approvers=[APPROVER])
    # The second request completes entirely between the first one's pending read and write.
    interleaving_store.hooks["pending"] = lambda: second.record_decision("B", "reject", None, APPROVER, now=T0)

    first.record_decision("A", "approve", None, APPROVER, now=T0 + timedelta(seconds=1))

    state = first.list_state()
    assert state.pending == [{"id": "C"}]
    assert [entry.id for entry in state.history] == ["A", "B"]
    assert ("pending", False) in interleaving_store.conditional_writes
