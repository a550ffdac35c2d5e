from __future__ import annotations

PENDING_KEY = "pending"
HISTORY_KEY = "history"


def decision_key(decision_id: str) -> str:
    return f"decision:{decision_id}"
