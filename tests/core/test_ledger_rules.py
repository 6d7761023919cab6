"""Ledger Rules — tests for pure validation and update planning.

Tests cover:
    - normalize_label trims and rejects blanks, non-strings, overlong values
    - require_amount accepts numbers at cent precision, rejects everything else
    - parse_card_id turns malformed ids into CardNotFoundError
    - opening/posted entries carry the right description and amount
    - plan_update keeps balance == sum(operations) for every correction shape
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from cardledger.core.domain_types import CardPatch, CardState, LedgerEntry
from cardledger.core.errors import CardNotFoundError, LedgerValidationError
from cardledger.core.ledger_rules import (
    balance_of,
    build_entry,
    normalize_label,
    opening_entry,
    parse_card_id,
    plan_update,
    require_amount,
    require_in_range,
    require_order,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _state(*amounts: str, name: str = "Cash") -> CardState:
    ops = tuple(
        LedgerEntry(Decimal(a), f"op {i}", NOW) for i, a in enumerate(amounts)
    )
    return CardState(name=name, balance=balance_of(ops), operations=ops)


# ─── normalize_label ─────────────────────────────────────────────

def test_normalize_label_trims_whitespace():
    assert normalize_label("  Cash  ", "name") == "Cash"


@pytest.mark.parametrize("value", ["", "   ", "\t\n"])
def test_normalize_label_rejects_blank(value):
    with pytest.raises(LedgerValidationError) as exc:
        normalize_label(value, "name")
    assert exc.value.field == "name"


@pytest.mark.parametrize("value", [None, 42, ["Cash"]])
def test_normalize_label_rejects_non_strings(value):
    with pytest.raises(LedgerValidationError):
        normalize_label(value, "color")


def test_normalize_label_rejects_overlong():
    with pytest.raises(LedgerValidationError):
        normalize_label("x" * 51, "color", max_length=50)


# ─── require_amount ──────────────────────────────────────────────

def test_require_amount_accepts_int_and_float():
    assert require_amount(100) == Decimal("100.00")
    assert require_amount(-30.5) == Decimal("-30.50")
    assert require_amount(0.1) == Decimal("0.10")


def test_require_amount_quantizes_to_cents():
    assert require_amount(Decimal("12.5")).as_tuple().exponent == -2


@pytest.mark.parametrize("value", ["100", True, None, [1]])
def test_require_amount_rejects_non_numbers(value):
    with pytest.raises(LedgerValidationError) as exc:
        require_amount(value)
    assert exc.value.field == "amount"


@pytest.mark.parametrize("value", [float("nan"), float("inf"), Decimal("-Infinity")])
def test_require_amount_rejects_non_finite(value):
    with pytest.raises(LedgerValidationError):
        require_amount(value)


def test_require_amount_rejects_sub_cent_precision():
    with pytest.raises(LedgerValidationError):
        require_amount(Decimal("1.005"))


def test_require_amount_allows_trailing_zeros():
    assert require_amount(Decimal("1.500")) == Decimal("1.50")


def test_require_amount_rejects_out_of_range():
    with pytest.raises(LedgerValidationError):
        require_amount(10 ** 17)


def test_require_amount_reports_custom_field():
    with pytest.raises(LedgerValidationError) as exc:
        require_amount("x", "balance")
    assert exc.value.field == "balance"


def test_require_order_rejects_bool_and_float():
    assert require_order(7) == 7
    with pytest.raises(LedgerValidationError):
        require_order(True)
    with pytest.raises(LedgerValidationError):
        require_order(1.5)


# ─── parse_card_id ───────────────────────────────────────────────

def test_parse_card_id_accepts_uuid_string():
    card_id = uuid4()
    assert parse_card_id(str(card_id)) == card_id


def test_parse_card_id_malformed_reads_as_missing():
    with pytest.raises(CardNotFoundError):
        parse_card_id("not-a-uuid")


# ─── entries ─────────────────────────────────────────────────────

def test_opening_entry_names_the_card():
    entry = opening_entry("Cash", Decimal("100.00"), NOW)
    assert entry.description == "account opened: Cash"
    assert entry.amount == Decimal("100.00")
    assert entry.date == NOW


def test_build_entry_trims_description_and_stamps_time():
    entry = build_entry(-30, "  coffee ", NOW)
    assert entry == LedgerEntry(Decimal("-30.00"), "coffee", NOW)


def test_build_entry_rejects_blank_description():
    with pytest.raises(LedgerValidationError) as exc:
        build_entry(10, "  ", NOW)
    assert exc.value.field == "description"


def test_balance_of_empty_history_is_zero():
    assert balance_of([]) == Decimal("0.00")


# ─── plan_update ─────────────────────────────────────────────────

def test_plan_update_empty_patch_is_noop():
    assert plan_update(_state("100"), CardPatch(), NOW).is_noop()


def test_plan_update_labels_and_order_only():
    plan = plan_update(
        _state("100"), CardPatch(name=" Wallet ", color="blue", order=4), NOW,
    )
    assert plan.values == {"name": "Wallet", "color": "blue", "order": 4}
    assert plan.append is None
    assert plan.replace_history is None


def test_plan_update_balance_appends_correction_entry():
    plan = plan_update(_state("100", "-30"), CardPatch(balance=50), NOW)
    assert plan.append == LedgerEntry(
        Decimal("-20.00"), "balance adjusted: Cash", NOW,
    )
    assert plan.values["balance"] == Decimal("50.00")
    assert plan.values["last_operation"]["amount"] == "-20.00"


def test_plan_update_correction_uses_new_name():
    plan = plan_update(_state("10"), CardPatch(name="Savings", balance=15), NOW)
    assert plan.append.description == "balance adjusted: Savings"


def test_plan_update_unchanged_balance_appends_nothing():
    plan = plan_update(_state("100"), CardPatch(balance=100), NOW)
    assert plan.is_noop()


def test_plan_update_history_rewrite_recomputes_balance():
    patch = CardPatch(operations=[
        {"amount": Decimal("40"), "description": "opening"},
        {"amount": Decimal("-15.25"), "description": "lunch", "date": NOW},
    ])
    plan = plan_update(_state("100"), patch, NOW)
    assert [e.amount for e in plan.replace_history] == [Decimal("40.00"), Decimal("-15.25")]
    assert plan.values["balance"] == Decimal("24.75")
    assert plan.values["last_operation"]["description"] == "lunch"


def test_plan_update_history_and_balance_must_agree():
    patch = CardPatch(
        operations=[{"amount": 10, "description": "a"}], balance=11,
    )
    with pytest.raises(LedgerValidationError) as exc:
        plan_update(_state("100"), patch, NOW)
    assert exc.value.field == "balance"


def test_plan_update_history_and_matching_balance_accepted():
    patch = CardPatch(
        operations=[{"amount": 10, "description": "a"}], balance=10,
    )
    assert plan_update(_state("100"), patch, NOW).values["balance"] == Decimal("10.00")


def test_plan_update_rejects_empty_history():
    with pytest.raises(LedgerValidationError):
        plan_update(_state("100"), CardPatch(operations=[]), NOW)


def test_plan_update_reports_bad_entry_position():
    patch = CardPatch(operations=[
        {"amount": 10, "description": "ok"},
        {"amount": 5, "description": "   "},
    ])
    with pytest.raises(LedgerValidationError) as exc:
        plan_update(_state("100"), patch, NOW)
    assert exc.value.field == "operations.1.description"


def test_plan_update_one_bad_field_rejects_whole_patch():
    with pytest.raises(LedgerValidationError) as exc:
        plan_update(_state("100"), CardPatch(name="Fine", color=""), NOW)
    assert exc.value.field == "color"


def test_plan_update_explicit_null_name_rejected():
    with pytest.raises(LedgerValidationError):
        plan_update(_state("100"), CardPatch(name=None), NOW)


def test_plan_update_last_operation_must_match_history():
    state = _state("100", "-30")
    ok = CardPatch(last_operation={"amount": Decimal("-30"), "description": "op 1"})
    assert plan_update(state, ok, NOW).is_noop()

    bad = CardPatch(last_operation={"amount": Decimal("999"), "description": "op 1"})
    with pytest.raises(LedgerValidationError) as exc:
        plan_update(state, bad, NOW)
    assert exc.value.field == "lastOperation"


def test_plan_update_last_operation_checked_against_correction():
    patch = CardPatch(
        balance=150,
        last_operation={"amount": 50, "description": "balance adjusted: Cash"},
    )
    plan = plan_update(_state("100"), patch, NOW)
    assert plan.append.amount == Decimal("50.00")


@pytest.mark.parametrize("patch", [
    CardPatch(balance=42),
    CardPatch(operations=[{"amount": 1, "description": "a"}, {"amount": 2, "description": "b"}]),
    CardPatch(operations=[{"amount": 5, "description": "a"}], balance=5),
])
def test_plan_update_preserves_balance_invariant(patch):
    state = _state("100", "-30", "7.5")
    plan = plan_update(state, patch, NOW)
    if plan.replace_history is not None:
        history = plan.replace_history
    else:
        history = list(state.operations) + [plan.append]
    assert balance_of(history) == plan.values["balance"]


def test_plan_update_rejects_history_sum_out_of_range():
    patch = CardPatch(operations=[
        {"amount": Decimal("9000000000000000"), "description": "a"},
        {"amount": Decimal("9000000000000000"), "description": "b"},
    ])
    with pytest.raises(LedgerValidationError) as exc:
        plan_update(_state("100"), patch, NOW)
    assert exc.value.field == "operations"


def test_plan_update_rejects_correction_out_of_range():
    state = _state("-9000000000000000")
    with pytest.raises(LedgerValidationError) as exc:
        plan_update(state, CardPatch(balance=Decimal("9000000000000000")), NOW)
    assert exc.value.field == "balance"


def test_require_in_range_accepts_largest_column_value():
    assert require_in_range(Decimal("9999999999999999.99"), "balance")
    with pytest.raises(LedgerValidationError):
        require_in_range(Decimal("-1e16"), "balance")
