"""
Deck API endpoints.

Decks are replaced wholesale on save and lock for the season five minutes
before the season's first qualifying session.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from powercards.api.dependencies import get_now, require_league_member
from powercards.db import get_deck, get_season_races, get_used_ledger, load_catalog, replace_deck
from powercards.db.database import get_session
from powercards.models.deck import Deck, DeckSideSummary
from powercards.services.deck_validator import (
    ensure_deck_editable,
    require_valid_deck,
    summarize_deck,
)
from powercards.services.lock_schedule import is_locked, season_lock_time

router = APIRouter(prefix="/leagues/{league_id}/players/{user_id}", tags=["decks"])


class DeckSideResponse(BaseModel):
    """Usage of one side of a deck."""

    card_ids: list[str] = Field(default_factory=list)
    slots_used: int
    slots_max: int
    cards_count: int
    cards_max: int
    gold_count: int
    gold_max: int


class DeckResponse(BaseModel):
    """Response model for a player's deck."""

    league_id: str
    user_id: str
    season: int
    driver: DeckSideResponse
    team: DeckSideResponse
    locked: bool
    lock_time: datetime | None = None


class DeckUpdateRequest(BaseModel):
    """Request model for saving a deck."""

    driver_card_ids: list[str] = Field(
        ...,
        description="Driver cards, exactly 12 slots, at most 8 cards and 2 gold",
        examples=[["driver-double-points", "driver-mirror", "driver-the-lift", "driver-mystery", "driver-plus-three", "driver-bottom5"]],
    )
    team_card_ids: list[str] = Field(
        ...,
        description="Team cards, exactly 10 slots, at most 6 cards and 1 gold",
        examples=[["team-podium", "team-undercut", "team-top10", "team-sponsors", "team-bottom5"]],
    )


class UsedCardsResponse(BaseModel):
    """Cards a player has spent this season."""

    league_id: str
    user_id: str
    season: int
    card_ids: list[str]


def _side(card_ids: tuple[str, ...], summary: DeckSideSummary) -> DeckSideResponse:
    return DeckSideResponse(
        card_ids=list(card_ids),
        slots_used=summary.slots_used,
        slots_max=summary.slots_max,
        cards_count=summary.cards_count,
        cards_max=summary.cards_max,
        gold_count=summary.gold_count,
        gold_max=summary.gold_max,
    )


async def _deck_response(
    session: AsyncSession,
    league_id: str,
    user_id: str,
    season: int,
    deck: Deck,
    lock: datetime | None,
    now: datetime,
) -> DeckResponse:
    catalog = await load_catalog(session)
    summary = summarize_deck(deck, catalog)
    return DeckResponse(
        league_id=league_id,
        user_id=user_id,
        season=season,
        driver=_side(deck.driver_card_ids, summary.driver),
        team=_side(deck.team_card_ids, summary.team),
        locked=lock is not None and is_locked(now, lock),
        lock_time=lock,
    )


@router.get("/deck", response_model=DeckResponse)
async def read_deck(
    league_id: str,
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    now: Annotated[datetime, Depends(get_now)],
) -> DeckResponse:
    """Get a player's deck with slot usage and lock status."""
    league = await require_league_member(session, league_id, user_id)
    deck = await get_deck(session, user_id, league_id, league.season)
    lock = season_lock_time(await get_season_races(session, league.season), league.season)
    return await _deck_response(session, league_id, user_id, league.season, deck, lock, now)


@router.put("/deck", response_model=DeckResponse)
async def save_deck(
    league_id: str,
    user_id: str,
    request: DeckUpdateRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    now: Annotated[datetime, Depends(get_now)],
) -> DeckResponse:
    """
    Replace a player's deck.

    Returns 422 listing every broken deck rule, or 409 once the season lock has passed.
    """
    league = await require_league_member(session, league_id, user_id)
    lock = season_lock_time(await get_season_races(session, league.season), league.season)
    ensure_deck_editable(now, lock)

    catalog = await load_catalog(session)
    deck = require_valid_deck(request.driver_card_ids, request.team_card_ids, catalog)
    await replace_deck(session, user_id, league_id, league.season, deck)

    return await _deck_response(session, league_id, user_id, league.season, deck, lock, now)


@router.get("/cards/used", response_model=UsedCardsResponse)
async def read_used_cards(
    league_id: str,
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> UsedCardsResponse:
    """Cards the player has already spent this season."""
    league = await require_league_member(session, league_id, user_id)
    ledger = await get_used_ledger(session, user_id, league_id, league.season)
    return UsedCardsResponse(
        league_id=league_id,
        user_id=user_id,
        season=league.season,
        card_ids=sorted(ledger.card_ids),
    )
