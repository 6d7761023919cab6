"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - OwnerId wraps the opaque principal string, CardId wraps a UUID
    - LedgerEntry is frozen: once posted, an entry never changes
    - CardPatch enumerates exactly the mutable card fields; UNSET means "not supplied"

Design Decisions:
    - NewType over dataclass wrappers for ids: zero runtime cost, full type-checker support
    - UNSET sentinel instead of None: an explicit null in a patch is a value to validate,
      an absent key is not (ADR: partial update semantics)
    - Snapshots store amounts as strings: JSON has no decimal type and float would round
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

OwnerId = NewType("OwnerId", str)
CardId = NewType("CardId", UUID)


# ─── Value Types ─────────────────────────────────────────────────

@dataclass(frozen=True)
class LedgerEntry:
    """One posted operation: a signed amount, what it was for, and when."""
    amount: Decimal
    description: str
    date: datetime

    def to_snapshot(self) -> dict:
        return {
            "amount": str(self.amount),
            "description": self.description,
            "date": self.date.isoformat(),
        }

    @classmethod
    def from_snapshot(cls, data: dict) -> "LedgerEntry":
        return cls(
            amount=Decimal(data["amount"]),
            description=data["description"],
            date=datetime.fromisoformat(data["date"]),
        )


@dataclass(frozen=True)
class CardState:
    """The parts of a persisted card the update rules reason about."""
    name: str
    balance: Decimal
    operations: tuple[LedgerEntry, ...]


class _Unset(Enum):
    UNSET = "unset"


UNSET = _Unset.UNSET


@dataclass(frozen=True)
class CardPatch:
    """Partial card update. Each field is optional and validated on its own."""
    name: Any = UNSET
    color: Any = UNSET
    balance: Any = UNSET
    operations: Any = UNSET
    last_operation: Any = UNSET
    order: Any = UNSET

    def supplied(self) -> set[str]:
        return {f.name for f in fields(self) if getattr(self, f.name) is not UNSET}

    def is_empty(self) -> bool:
        return not self.supplied()


@dataclass
class UpdatePlan:
    """Validated outcome of a CardPatch against a CardState, ready to write."""
    values: dict[str, Any] = field(default_factory=dict)
    replace_history: list[LedgerEntry] | None = None
    append: LedgerEntry | None = None

    def is_noop(self) -> bool:
        return not self.values and self.replace_history is None and self.append is None
