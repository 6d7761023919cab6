"""Card Schemas — camelCase wire models for cards, ledger entries and postings.

Invariants:
    - Money is a JSON number on the wire in both directions (never a string)
    - Numeric inputs reject booleans and numeric strings
    - CardUpdate only carries what the client sent: to_patch() maps unset keys to UNSET
    - Responses never include the version column

Design Decisions:
    - alias_generator=to_camel with populate_by_name: snake_case in Python, camelCase on the wire
    - Decimal internally, serialized as float for JSON (ADR: clients expect numbers)
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import (
    BaseModel, BeforeValidator, ConfigDict, PlainSerializer, StrictInt,
)
from pydantic.alias_generators import to_camel

from cardledger.core.domain_types import CardPatch


def _reject_non_numbers(v: object) -> object:
    if isinstance(v, bool) or isinstance(v, str):
        raise ValueError("must be a number, not a string or boolean")
    return v


MoneyIn = Annotated[Decimal, BeforeValidator(_reject_non_numbers)]
MoneyOut = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json"),
]


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests -----------------------------------------------------------------

class CardCreate(_WireModel):
    """Card creation — balance defaults to 0, order to the owner's next value."""
    name: str
    color: str
    balance: MoneyIn = Decimal("0")
    order: StrictInt | None = None


class LedgerEntryPayload(_WireModel):
    """Client-supplied entry for an administrative history rewrite."""
    amount: MoneyIn
    description: str
    date: datetime | None = None


class CardUpdate(_WireModel):
    """Partial update — every field optional, only supplied ones are applied."""
    name: str | None = None
    color: str | None = None
    balance: MoneyIn | None = None
    operations: list[LedgerEntryPayload] | None = None
    last_operation: LedgerEntryPayload | None = None
    order: StrictInt | None = None

    def to_patch(self) -> CardPatch:
        return CardPatch(**self.model_dump(exclude_unset=True))


class TransactionCreate(_WireModel):
    """Posting request — a signed amount and what it was for."""
    amount: MoneyIn
    description: str


# --- Responses ----------------------------------------------------------------

class LedgerEntryResponse(_WireModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True,
    )

    amount: MoneyOut
    description: str
    date: datetime


class CardResponse(_WireModel):
    """Card response — public-facing card with its full history."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True,
    )

    id: UUID
    owner: str
    name: str
    color: str
    balance: MoneyOut
    last_operation: LedgerEntryResponse
    operations: list[LedgerEntryResponse]
    order: int
    created_at: datetime
    updated_at: datetime


class CardDeleted(_WireModel):
    message: str = "Card deleted"
    id: UUID
