"""Card ORM — persists the aggregate root: a named, owner-scoped running balance.

Invariants:
    - id is UUID primary key, owner is immutable after insert
    - balance equals the sum of operations.amount (maintained by the services layer)
    - version increments on every write of the row; ORM flushes check it (StaleDataError)
    - operations ordered by insertion (CardOperation.id)

Design Decisions:
    - last_operation as JSON snapshot: cached copy of the newest entry, never read back
      as a source of truth (ADR: keeps list responses a single query)
    - Numeric(18, 2) for money: exact decimal arithmetic in the store, no float drift
    - cascade delete for operations, both ORM-level and FK ON DELETE CASCADE
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Integer, Numeric, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from cardledger.db.base import Base


class Card(Base):
    """Card aggregate root — owns its ledger entries."""
    __tablename__ = "cards"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    owner: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    color: Mapped[str] = mapped_column(String(50), nullable=False)
    balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0"),
    )
    last_operation: Mapped[dict] = mapped_column(JSON, nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    operations: Mapped[list["CardOperation"]] = relationship(
        "CardOperation", back_populates="card",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="CardOperation.id", lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Card {self.id} owner={self.owner} balance={self.balance}>"
