"""Transactions Route — posts credits and debits to a card.

Invariants:
    - 201 with the updated card on success
    - Validation failures (400) and missing/foreign cards (404) leave the card untouched

Design Decisions:
    - Separate module from cards: posting is the ledger's write path, CRUD is not
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from cardledger.api.access_guard import get_current_owner
from cardledger.core.domain_types import OwnerId
from cardledger.infrastructure.database import get_db
from cardledger.schemas.card import CardResponse, TransactionCreate
from cardledger.services.posting_engine import PostingEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/cards", tags=["transactions"])


def get_posting_engine(db: AsyncSession = Depends(get_db)) -> PostingEngine:
    return PostingEngine(db)


@router.post(
    "/{card_id}/transactions",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_transaction(
    card_id: str,
    body: TransactionCreate,
    owner: OwnerId = Depends(get_current_owner),
    engine: PostingEngine = Depends(get_posting_engine),
):
    """Append an entry to the card and advance its balance."""
    card = await engine.post(owner, card_id, body.amount, body.description)
    return CardResponse.model_validate(card)
