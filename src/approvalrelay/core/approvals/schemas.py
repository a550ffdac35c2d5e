from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, Field

ACTIONS = ("approve", "reject")


class Decision(BaseModel):
    id: str
    action: Literal["approve", "reject"]
    note: str = ""
    by: str
    at: str


class DecisionRequest(BaseModel):
    id: str | None = None
    action: str | None = None
    note: str | None = None


class ApprovalState(BaseModel):
    pending: list[dict[str, Any]] = Field(default_factory=list)
    history: list[Decision] = Field(default_factory=list)


@dataclass
class DecisionOutcome:
    decision: Decision
    persisted: bool
