"""Card Store — owner-scoped create, read, update and delete of cards.

Invariants:
    - Every query filters on (id, owner); another owner's card reads as missing
    - Create writes the card, its opening entry and its order in one transaction
    - Update validates the whole patch before writing anything
    - Update never overwrites a concurrent write: the ORM version check rejects the flush
      and the patch is re-planned against fresh state, up to max_write_attempts

Design Decisions:
    - Optimistic concurrency (version_id_col) for updates: a correction needs to read
      the current state, so an in-store increment is not enough here
    - load_card() exported for reuse by the posting engine
    - populate_existing on every load: the session may hold stale copies after an
      in-store UPDATE issued by the posting engine
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from cardledger.core.domain_types import CardId, CardPatch, CardState, OwnerId
from cardledger.core.errors import CardNotFoundError, ConcurrencyError, ErrorContext
from cardledger.core.ledger_rules import (
    COLOR_MAX_LENGTH, normalize_label, opening_entry, parse_card_id,
    plan_update, require_amount, require_order,
)
from cardledger.infrastructure.database import unit_of_work
from cardledger.models.card import Card
from cardledger.models.card_operation import CardOperation
from cardledger.services.ordering import OrderingManager

logger = logging.getLogger(__name__)


async def load_card(db: AsyncSession, owner: OwnerId, card_id: CardId) -> Card:
    """Get an owned card or raise CardNotFoundError."""
    result = await db.execute(
        select(Card)
        .where(Card.id == card_id, Card.owner == owner)
        .execution_options(populate_existing=True),
    )
    card = result.scalar_one_or_none()
    if card is None:
        raise CardNotFoundError(str(card_id))
    return card


def card_state(card: Card) -> CardState:
    return CardState(
        name=card.name,
        balance=card.balance,
        operations=tuple(op.to_entry() for op in card.operations),
    )


class CardStore:
    """Owner-scoped card persistence."""

    def __init__(self, db: AsyncSession, max_write_attempts: int = 3):
        self._db = db
        self._ordering = OrderingManager(db)
        self._max_write_attempts = max(1, max_write_attempts)

    async def create(
        self,
        owner: OwnerId,
        name: object,
        color: object,
        initial_balance: object = 0,
        order: object = None,
    ) -> Card:
        name = normalize_label(name, "name")
        color = normalize_label(color, "color", COLOR_MAX_LENGTH)
        balance = require_amount(initial_balance, "balance")
        explicit_order = require_order(order) if order is not None else None

        now = datetime.now(timezone.utc)
        opening = opening_entry(name, balance, now)
        async with unit_of_work(self._db, "create"):
            if explicit_order is None:
                card_order = await self._ordering.next_order(owner)
            else:
                await self._ordering.observe_order(owner, explicit_order)
                card_order = explicit_order
            card = Card(
                owner=owner, name=name, color=color, balance=balance,
                order=card_order, last_operation=opening.to_snapshot(),
                created_at=now, updated_at=now,
                operations=[CardOperation.from_entry(opening)],
            )
            self._db.add(card)
            await self._db.commit()
        logger.info(
            f"Card created with order {card_order}",
            extra={"owner": owner, "card_id": str(card.id)},
        )
        return await load_card(self._db, owner, card.id)

    async def list_for_owner(self, owner: OwnerId) -> list[Card]:
        """All of the owner's cards by display order, then creation time, then id."""
        result = await self._db.execute(
            select(Card)
            .where(Card.owner == owner)
            .order_by(Card.order.asc(), Card.created_at.asc(), Card.id.asc())
            .execution_options(populate_existing=True),
        )
        return list(result.scalars().all())

    async def get(self, owner: OwnerId, card_id: str | UUID) -> Card:
        return await load_card(self._db, owner, parse_card_id(card_id))

    async def update(
        self, owner: OwnerId, card_id: str | UUID, patch: CardPatch,
    ) -> Card:
        card_id = parse_card_id(card_id)
        for attempt in range(1, self._max_write_attempts + 1):
            card = await load_card(self._db, owner, card_id)
            now = datetime.now(timezone.utc)
            plan = plan_update(card_state(card), patch, now)
            if plan.is_noop():
                return card

            async with unit_of_work(self._db, "update"):
                # any flush in this block may hit the version check, not only commit()
                try:
                    if "order" in plan.values:
                        await self._ordering.observe_order(owner, plan.values["order"])
                    for key, value in plan.values.items():
                        setattr(card, key, value)
                    card.updated_at = now
                    if plan.replace_history is not None:
                        card.operations = [
                            CardOperation.from_entry(e) for e in plan.replace_history
                        ]
                    if plan.append is not None:
                        card.operations.append(CardOperation.from_entry(plan.append))
                    await self._db.commit()
                except StaleDataError:
                    await self._db.rollback()
                    logger.warning(
                        "Card changed during update, retrying",
                        extra={"card_id": str(card_id), "attempt": attempt},
                    )
                    continue

            logger.info(
                f"Card updated: {', '.join(sorted(patch.supplied()))}",
                extra={"owner": owner, "card_id": str(card_id)},
            )
            return await load_card(self._db, owner, card_id)

        raise ConcurrencyError(
            f"Card was modified concurrently; gave up after "
            f"{self._max_write_attempts} attempts",
            ErrorContext(card_id=str(card_id)),
        )

    async def delete(self, owner: OwnerId, card_id: str | UUID) -> CardId:
        """Remove the card and its whole history. Irreversible."""
        card_id = parse_card_id(card_id)
        async with unit_of_work(self._db, "delete"):
            result = await self._db.execute(
                delete(Card)
                .where(Card.id == card_id, Card.owner == owner)
                .execution_options(synchronize_session=False),
            )
            if result.rowcount == 0:
                raise CardNotFoundError(str(card_id))
            # FK cascade covers PostgreSQL; SQLite runs without FK enforcement
            await self._db.execute(
                delete(CardOperation).where(CardOperation.card_id == card_id),
            )
            await self._db.commit()
        logger.info("Card deleted", extra={"owner": owner, "card_id": str(card_id)})
        return card_id
