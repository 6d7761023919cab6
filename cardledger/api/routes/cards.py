"""Cards Routes — owner-scoped CRUD over cards.

Invariants:
    - Every route depends on get_current_owner; the owner is passed to CardStore explicitly
    - Request bodies are shape-checked by Pydantic; content rules are enforced by the store
    - A card owned by someone else is indistinguishable from a missing one (404)

Design Decisions:
    - get_card_store exported so transactions and tests share one wiring point
    - PUT carries partial bodies: CardUpdate.to_patch() keeps only the keys the client sent
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from cardledger.api.access_guard import get_current_owner
from cardledger.config import Settings, get_settings
from cardledger.core.domain_types import OwnerId
from cardledger.infrastructure.database import get_db
from cardledger.schemas.card import (
    CardCreate, CardDeleted, CardResponse, CardUpdate,
)
from cardledger.services.card_store import CardStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/cards", tags=["cards"])


def get_card_store(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> CardStore:
    return CardStore(db, max_write_attempts=settings.card_write_max_attempts)


@router.get("", response_model=list[CardResponse])
async def list_cards(
    owner: OwnerId = Depends(get_current_owner),
    store: CardStore = Depends(get_card_store),
):
    """List the caller's cards in display order."""
    cards = await store.list_for_owner(owner)
    return [CardResponse.model_validate(c) for c in cards]


@router.post(
    "", response_model=CardResponse, status_code=status.HTTP_201_CREATED,
)
async def create_card(
    body: CardCreate,
    owner: OwnerId = Depends(get_current_owner),
    store: CardStore = Depends(get_card_store),
):
    """Create a card with its opening entry."""
    card = await store.create(
        owner, body.name, body.color,
        initial_balance=body.balance, order=body.order,
    )
    return CardResponse.model_validate(card)


@router.get("/{card_id}", response_model=CardResponse)
async def get_card(
    card_id: str,
    owner: OwnerId = Depends(get_current_owner),
    store: CardStore = Depends(get_card_store),
):
    """Get one of the caller's cards."""
    return CardResponse.model_validate(await store.get(owner, card_id))


@router.put("/{card_id}", response_model=CardResponse)
async def update_card(
    card_id: str,
    body: CardUpdate,
    owner: OwnerId = Depends(get_current_owner),
    store: CardStore = Depends(get_card_store),
):
    """Apply a partial update (including administrative balance/history corrections)."""
    card = await store.update(owner, card_id, body.to_patch())
    return CardResponse.model_validate(card)


@router.delete("/{card_id}", response_model=CardDeleted)
async def delete_card(
    card_id: str,
    owner: OwnerId = Depends(get_current_owner),
    store: CardStore = Depends(get_card_store),
):
    """Delete a card and its history."""
    deleted_id = await store.delete(owner, card_id)
    return CardDeleted(id=deleted_id)
