"""
Card catalog API endpoints.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from powercards.db import load_catalog
from powercards.db.database import get_session
from powercards.models.card import Card, CardType, effect_to_dict

router = APIRouter(prefix="/cards", tags=["cards"])


class CardResponse(BaseModel):
    """Response model for a single card."""

    id: str
    name: str
    type: CardType
    tier: str
    slot_cost: int
    effect: dict[str, Any] = Field(default_factory=dict)
    requires_target: str
    description: str = ""
    is_active: bool = True


class CardListResponse(BaseModel):
    """Response model for the catalog."""

    cards: list[CardResponse]
    count: int


def card_response(card: Card) -> CardResponse:
    return CardResponse(
        id=card.id,
        name=card.name,
        type=card.type,
        tier=card.tier.value,
        slot_cost=card.slot_cost,
        effect=effect_to_dict(card.effect),
        requires_target=card.requires_target.value,
        description=card.description,
        is_active=card.is_active,
    )


@router.get("", response_model=CardListResponse)
async def list_cards(
    session: Annotated[AsyncSession, Depends(get_session)],
    card_type: Annotated[CardType | None, Query(alias="type")] = None,
    active_only: bool = True,
) -> CardListResponse:
    """
    List Power Cards.

    Filter by type with ?type=driver or ?type=team.
    """
    catalog = await load_catalog(session)
    cards = [
        card
        for card in catalog
        if (card_type is None or card.type == card_type) and (card.is_active or not active_only)
    ]
    return CardListResponse(cards=[card_response(c) for c in cards], count=len(cards))
