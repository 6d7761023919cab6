"""ORM Models — SQLAlchemy declarative models for cards and their ledgers.

Invariants:
    - All models inherit from Base (db/base.py)
    - Card is the aggregate root; operations are owned by exactly one card

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from cardledger.models.card import Card  # noqa: F401
from cardledger.models.card_operation import CardOperation  # noqa: F401
from cardledger.models.order_sequence import OrderSequence  # noqa: F401
