"""Ordering Manager — default display order for new cards, scoped per owner.

Invariants:
    - next_order() is strictly greater than every order issued or observed for the owner
    - The counter row is advanced by a single in-store UPDATE inside the caller's transaction
    - Explicit orders are recorded, never rejected or renumbered

Design Decisions:
    - Per-owner scope: one owner's cards never shift another owner's numbering
    - Counter seeded lazily from max(cards.order) so pre-existing cards are respected
    - INSERT .. ON CONFLICT DO NOTHING for the seed: idempotent under concurrent first use
"""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from cardledger.core.domain_types import OwnerId
from cardledger.models.card import Card
from cardledger.models.order_sequence import OrderSequence

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class OrderingManager:
    """Per-owner order counter. Does not commit; the caller owns the transaction."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def next_order(self, owner: OwnerId) -> int:
        await self._ensure_sequence(owner)
        await self._db.execute(
            update(OrderSequence)
            .where(OrderSequence.owner == owner)
            .values(last_value=OrderSequence.last_value + 1)
            .execution_options(synchronize_session=False),
        )
        value = await self._current(owner)
        logger.debug(f"Issued order {value}", extra={"owner": owner})
        return value

    async def observe_order(self, owner: OwnerId, value: int) -> None:
        """Raise the owner's counter to `value` if it is below it."""
        await self._ensure_sequence(owner)
        await self._db.execute(
            update(OrderSequence)
            .where(
                OrderSequence.owner == owner,
                OrderSequence.last_value < value,
            )
            .values(last_value=value)
            .execution_options(synchronize_session=False),
        )

    async def _ensure_sequence(self, owner: OwnerId) -> None:
        dialect = self._db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Unsupported database dialect for ordering: {dialect}")
        seed = (
            select(func.coalesce(func.max(Card.order), 0))
            .where(Card.owner == owner)
            .scalar_subquery()
        )
        await self._db.execute(
            insert(OrderSequence)
            .values(owner=owner, last_value=seed)
            .on_conflict_do_nothing(index_elements=[OrderSequence.owner]),
        )

    async def _current(self, owner: OwnerId) -> int:
        result = await self._db.execute(
            select(OrderSequence.last_value).where(OrderSequence.owner == owner),
        )
        return result.scalar_one()
