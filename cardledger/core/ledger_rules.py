"""Ledger Rules — pure validation and state transitions for cards and their entries.

Invariants:
    - balance == sum(entry.amount for entry in operations) for every state these rules produce
    - Labels (name, color, description) are trimmed and never empty
    - Amounts are finite decimals with at most two fractional digits
    - plan_update validates every supplied field before returning; nothing is half-applied

Design Decisions:
    - Pure functions with an injected `now`: deterministic, no IO (ADR: functional core)
    - Balance overwrite becomes a correction entry, history overwrite recomputes the balance,
      so the administrative path cannot desynchronize balance from history
    - lastOperation is derived; a supplied value is only checked against the derived one
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from uuid import UUID

from cardledger.core.domain_types import (
    CardId, CardPatch, CardState, LedgerEntry, UpdatePlan, UNSET,
)
from cardledger.core.errors import CardNotFoundError, LedgerValidationError

CENTS = Decimal("0.01")
# Numeric(18, 2) holds 16 integer digits: every value with abs < 1e16 fits
MAX_ABS_AMOUNT = Decimal("1e16")

NAME_MAX_LENGTH = 200
COLOR_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 500

OPENING_DESCRIPTION = "account opened: {name}"
CORRECTION_DESCRIPTION = "balance adjusted: {name}"


# ─── Field validation ───────────────────────────────────────────

def normalize_label(value: object, field: str, max_length: int = NAME_MAX_LENGTH) -> str:
    """Trim a display string; reject non-strings, blanks and overlong values."""
    if not isinstance(value, str):
        raise LedgerValidationError(f"{field} must be a string", field)
    value = value.strip()
    if not value:
        raise LedgerValidationError(f"{field} cannot be empty or whitespace", field)
    if len(value) > max_length:
        raise LedgerValidationError(
            f"{field} must be at most {max_length} characters", field,
        )
    return value


def require_amount(value: object, field: str = "amount") -> Decimal:
    """Coerce a JSON number to a cent-precision Decimal."""
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise LedgerValidationError(f"{field} must be a number", field)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise LedgerValidationError(f"{field} must be a number", field)
    if not amount.is_finite():
        raise LedgerValidationError(f"{field} must be a finite number", field)
    if amount.normalize().as_tuple().exponent < -2:
        raise LedgerValidationError(
            f"{field} supports at most 2 decimal places", field,
        )
    if abs(amount) >= MAX_ABS_AMOUNT:
        raise LedgerValidationError(f"{field} is out of range", field)
    return amount.quantize(CENTS)


def require_in_range(value: Decimal, field: str) -> Decimal:
    """Reject a derived sum or difference that would not fit a money column."""
    if abs(value) >= MAX_ABS_AMOUNT:
        raise LedgerValidationError(f"resulting {field} amount is out of range", field)
    return value


def require_order(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise LedgerValidationError("order must be an integer", "order")
    return value


def parse_card_id(raw: str | UUID) -> CardId:
    """Parse a path id. Malformed ids read as missing cards."""
    if isinstance(raw, UUID):
        return CardId(raw)
    try:
        return CardId(UUID(str(raw)))
    except ValueError:
        raise CardNotFoundError(str(raw))


# ─── Entries ────────────────────────────────────────────────────

def build_entry(amount: object, description: object, now: datetime) -> LedgerEntry:
    """Validate a posting request and stamp it with the posting time."""
    return LedgerEntry(
        amount=require_amount(amount),
        description=normalize_label(
            description, "description", DESCRIPTION_MAX_LENGTH,
        ),
        date=now,
    )


def opening_entry(name: str, balance: Decimal, now: datetime) -> LedgerEntry:
    return LedgerEntry(
        amount=balance,
        description=OPENING_DESCRIPTION.format(name=name),
        date=now,
    )


def entry_from_payload(data: object, now: datetime, field: str) -> LedgerEntry:
    """Validate one client-supplied entry (admin history rewrite)."""
    if not isinstance(data, dict):
        raise LedgerValidationError(f"{field} must be an object", field)
    for key in ("amount", "description"):
        if key not in data:
            raise LedgerValidationError(f"{field}.{key} is required", f"{field}.{key}")
    date = data.get("date") or now
    if not isinstance(date, datetime):
        raise LedgerValidationError(f"{field}.date must be a timestamp", f"{field}.date")
    return LedgerEntry(
        amount=require_amount(data["amount"], f"{field}.amount"),
        description=normalize_label(
            data["description"], f"{field}.description", DESCRIPTION_MAX_LENGTH,
        ),
        date=date,
    )


def balance_of(entries: list[LedgerEntry] | tuple[LedgerEntry, ...]) -> Decimal:
    return sum((e.amount for e in entries), Decimal("0")).quantize(CENTS)


# ─── Update planning ────────────────────────────────────────────

def plan_update(state: CardState, patch: CardPatch, now: datetime) -> UpdatePlan:
    """Turn a partial update into the exact writes that keep the card consistent.

    Every supplied field is validated first; a single bad field rejects the
    whole patch. Returned `values` are column updates on the card row,
    `replace_history` swaps the full history, `append` adds one correction entry.
    """
    plan = UpdatePlan()

    if patch.name is not UNSET:
        plan.values["name"] = normalize_label(patch.name, "name")
    if patch.color is not UNSET:
        plan.values["color"] = normalize_label(patch.color, "color", COLOR_MAX_LENGTH)
    if patch.order is not UNSET:
        plan.values["order"] = require_order(patch.order)

    target_balance = None
    if patch.balance is not UNSET:
        target_balance = require_amount(patch.balance, "balance")

    history = None
    if patch.operations is not UNSET:
        history = _validate_history(patch.operations, now)

    if history is not None:
        recomputed = balance_of(history)
        require_in_range(recomputed, "operations")
        if target_balance is not None and target_balance != recomputed:
            raise LedgerValidationError(
                "balance must equal the sum of operations", "balance",
            )
        plan.replace_history = history
        plan.values["balance"] = recomputed
        last = history[-1]
    elif target_balance is not None and target_balance != state.balance:
        name = plan.values.get("name", state.name)
        last = LedgerEntry(
            amount=require_in_range(target_balance - state.balance, "balance"),
            description=CORRECTION_DESCRIPTION.format(name=name),
            date=now,
        )
        plan.append = last
        plan.values["balance"] = target_balance
    else:
        last = state.operations[-1] if state.operations else None

    if patch.last_operation is not UNSET:
        _check_last_operation(patch.last_operation, last, now)

    if plan.replace_history is not None or plan.append is not None:
        plan.values["last_operation"] = last.to_snapshot()
    return plan


def _validate_history(raw: object, now: datetime) -> list[LedgerEntry]:
    if not isinstance(raw, list):
        raise LedgerValidationError("operations must be a list", "operations")
    if not raw:
        raise LedgerValidationError(
            "operations must contain at least one entry", "operations",
        )
    return [
        entry_from_payload(item, now, f"operations.{i}")
        for i, item in enumerate(raw)
    ]


def _check_last_operation(
    raw: object, expected: LedgerEntry | None, now: datetime,
) -> None:
    supplied = entry_from_payload(raw, now, "lastOperation")
    if (
        expected is None
        or supplied.amount != expected.amount
        or supplied.description != expected.description
    ):
        raise LedgerValidationError(
            "lastOperation must match the most recent operation", "lastOperation",
        )
