"""Posting Engine — appends a ledger entry and advances the card balance as one unit.

Invariants:
    - balance increment, lastOperation snapshot and entry insert share one transaction
    - The increment is computed by the store (balance = balance + :amount), never from
      a value read earlier, so concurrent posts on one card cannot lose an increment
    - The UPDATE runs first: it takes the card's write lock before the entry insert,
      which serializes concurrent posts on the same card
    - Posting never removes or reorders existing entries
    - A post whose resulting balance would not fit the balance column matches no row
      and is rejected as a validation error, not a storage failure

Design Decisions:
    - In-store atomic increment over read-modify-write (ADR: lost-update race)
    - Bumps the card version so an in-flight administrative update detects the post
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession

from cardledger.core.domain_types import OwnerId
from cardledger.core.errors import LedgerValidationError
from cardledger.core.ledger_rules import MAX_ABS_AMOUNT, build_entry, parse_card_id
from cardledger.infrastructure.database import unit_of_work
from cardledger.models.card import Card
from cardledger.models.card_operation import CardOperation
from cardledger.services.card_store import load_card

logger = logging.getLogger(__name__)


class PostingEngine:
    """Posts credits and debits to owned cards."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def post(
        self,
        owner: OwnerId,
        card_id: str | UUID,
        amount: object,
        description: object,
    ) -> Card:
        entry = build_entry(amount, description, datetime.now(timezone.utc))
        card_id = parse_card_id(card_id)

        async with unit_of_work(self._db, "post"):
            result = await self._db.execute(
                update(Card)
                .where(
                    Card.id == card_id,
                    Card.owner == owner,
                    func.abs(Card.balance + entry.amount, type_=Card.balance.type)
                    < MAX_ABS_AMOUNT,
                )
                .values(
                    balance=Card.balance + entry.amount,
                    last_operation=entry.to_snapshot(),
                    version=Card.version + 1,
                    updated_at=entry.date,
                )
                .execution_options(synchronize_session=False),
            )
            if result.rowcount == 0:
                # raises CardNotFoundError when the card is absent or foreign
                await load_card(self._db, owner, card_id)
                raise LedgerValidationError(
                    "resulting balance is out of range", "amount",
                )
            self._db.add(CardOperation.from_entry(entry, card_id=card_id))
            await self._db.commit()

        logger.info(
            f"Posted {entry.amount} to card",
            extra={"owner": owner, "card_id": str(card_id)},
        )
        return await load_card(self._db, owner, card_id)
