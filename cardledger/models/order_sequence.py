"""OrderSequence ORM — per-owner counter behind default card display order.

Invariants:
    - One row per owner (owner is the primary key)
    - last_value only grows: advanced by next_order, raised by explicit orders

Design Decisions:
    - Counter row over SELECT max(order)+1: the increment is a single UPDATE, so two
      concurrent creates cannot read the same maximum (ADR: duplicate-order race)
"""

from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column

from cardledger.db.base import Base


class OrderSequence(Base):
    __tablename__ = "card_order_sequences"

    owner: Mapped[str] = mapped_column(String(128), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
