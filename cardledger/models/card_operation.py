"""CardOperation ORM — one immutable ledger entry of a card.

Invariants:
    - Always belongs to a Card (card_id FK, ON DELETE CASCADE)
    - Never updated after insert; removed only with its card or by an admin history rewrite
    - id is autoincrement so it doubles as chronological post order

Design Decisions:
    - Integer id over UUID: insertion order is the ledger order, no timestamp ties
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Integer, Numeric, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from cardledger.core.domain_types import LedgerEntry
from cardledger.db.base import Base


class CardOperation(Base):
    """Ledger entry entity — a signed amount posted to a card."""
    __tablename__ = "card_operations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    card: Mapped["Card"] = relationship("Card", back_populates="operations")

    @classmethod
    def from_entry(cls, entry: LedgerEntry, **kwargs) -> "CardOperation":
        return cls(
            amount=entry.amount, description=entry.description,
            date=entry.date, **kwargs,
        )

    def to_entry(self) -> LedgerEntry:
        return LedgerEntry(
            amount=self.amount, description=self.description, date=self.date,
        )
