"""
Card activation API endpoints.

A player plays at most one driver card and one team card per race. Every
POST re-resolves the activation, re-rolling Mystery/Random draws.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from powercards.api.dependencies import get_now, get_resolver, require_league_member
from powercards.db import (
    delete_activation,
    get_activation,
    get_deck,
    get_league_members,
    get_race,
    get_race_entries,
    get_race_selection,
    get_reserved_card_ids,
    get_used_ledger,
    load_catalog,
    save_activation,
)
from powercards.db.database import get_session
from powercards.models.activation import Activation, ActivationSide, ActivationTargets
from powercards.models.failure import FailureKind, ReferentialError
from powercards.services.activation import ActivationContext, ActivationResolver
from powercards.services.card_catalog import CardCatalog

router = APIRouter(
    prefix="/leagues/{league_id}/races/{race_id}/players/{user_id}",
    tags=["activations"],
)


class ActivationRequest(BaseModel):
    """Request model for activating cards."""

    driver_card_id: str | None = None
    team_card_id: str | None = None
    target_player: str | None = None
    target_driver: str | None = None
    target_team: str | None = None


class PlayedCard(BaseModel):
    """A played card and, for Mystery/Random cards, what it became."""

    card_id: str
    name: str
    transformed_card_id: str | None = None
    transformed_name: str | None = None


class ActivationResponse(BaseModel):
    """Response model for an activation."""

    league_id: str
    race_id: str
    user_id: str
    season: int
    driver_card: PlayedCard | None = None
    team_card: PlayedCard | None = None
    target_player: str | None = None
    target_driver: str | None = None
    target_team: str | None = None
    lock_time: datetime


class ClearResponse(BaseModel):
    """What is left after clearing."""

    cleared: ActivationSide | None = None
    activation: ActivationResponse | None = None


def _played(catalog: CardCatalog, card_id: str | None, transformed_id: str | None) -> PlayedCard | None:
    if card_id is None:
        return None
    card = catalog.get(card_id)
    transformed = catalog.get(transformed_id) if transformed_id else None
    return PlayedCard(
        card_id=card_id,
        name=card.name if card else card_id,
        transformed_card_id=transformed_id,
        transformed_name=transformed.name if transformed else None,
    )


def activation_response(
    activation: Activation, catalog: CardCatalog, lock_time: datetime
) -> ActivationResponse:
    return ActivationResponse(
        league_id=activation.league_id,
        race_id=activation.race_id,
        user_id=activation.player_id,
        season=activation.season,
        driver_card=_played(
            catalog, activation.driver_card_id, activation.mystery_transformed_card_id
        ),
        team_card=_played(catalog, activation.team_card_id, activation.random_transformed_card_id),
        target_player=activation.target_player,
        target_driver=activation.target_driver,
        target_team=activation.target_team,
        lock_time=lock_time,
    )


async def _load_context(
    session: AsyncSession,
    league_id: str,
    race_id: str,
    user_id: str,
    now: datetime,
) -> ActivationContext:
    league = await require_league_member(session, league_id, user_id)
    race = await get_race(session, race_id)
    if race is None:
        raise ReferentialError(kind=FailureKind.NOT_FOUND, message=f"Race '{race_id}' not found")
    if race.season != league.season:
        raise ReferentialError(
            kind=FailureKind.NOT_FOUND,
            message=f"Race '{race_id}' is not part of the {league.season} season",
            detail=f"race season {race.season}",
        )

    entries = await get_race_entries(session, race)
    ledger = await get_used_ledger(session, user_id, league_id, league.season)
    return ActivationContext(
        player_id=user_id,
        league_id=league_id,
        league_season=league.season,
        race=race,
        now=now,
        deck=await get_deck(session, user_id, league_id, league.season),
        catalog=await load_catalog(session),
        used_card_ids=ledger.card_ids,
        reserved_card_ids=await get_reserved_card_ids(
            session, user_id, league_id, league.season, exclude_race_id=race_id
        ),
        league_members=frozenset(await get_league_members(session, league_id)),
        player_selection=await get_race_selection(session, user_id, league_id, race_id),
        eligible_drivers=frozenset(entry.driver for entry in entries),
        eligible_teams=frozenset(entry.team for entry in entries),
        existing=await get_activation(session, user_id, league_id, race_id),
    )


@router.get("/activation", response_model=ActivationResponse)
async def read_activation(
    league_id: str,
    race_id: str,
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    now: Annotated[datetime, Depends(get_now)],
) -> ActivationResponse:
    """Get a player's activation for a race. Returns 404 if none."""
    context = await _load_context(session, league_id, race_id, user_id, now)
    if context.existing is None:
        raise ReferentialError(
            kind=FailureKind.NOT_FOUND,
            message=f"No cards activated for race '{race_id}'",
        )
    return activation_response(context.existing, context.catalog, context.lock_time)


@router.post("/activation", response_model=ActivationResponse)
async def activate_cards(
    league_id: str,
    race_id: str,
    user_id: str,
    request: ActivationRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    now: Annotated[datetime, Depends(get_now)],
    resolver: Annotated[ActivationResolver, Depends(get_resolver)],
) -> ActivationResponse:
    """
    Activate cards for a race, replacing any previous choice.

    Returns 409 on a sprint weekend, an ineligible season, a passed lock or
    a used card; 404/400 for a card or target that does not resolve.
    """
    context = await _load_context(session, league_id, race_id, user_id, now)
    activation = resolver.activate(
        context,
        driver_card_id=request.driver_card_id,
        team_card_id=request.team_card_id,
        targets=ActivationTargets(
            player=request.target_player,
            driver=request.target_driver,
            team=request.target_team,
        ),
    )
    await save_activation(session, activation)
    return activation_response(activation, context.catalog, context.lock_time)


@router.delete("/activation", response_model=ClearResponse)
async def clear_activation(
    league_id: str,
    race_id: str,
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    now: Annotated[datetime, Depends(get_now)],
    resolver: Annotated[ActivationResolver, Depends(get_resolver)],
    side: ActivationSide | None = None,
) -> ClearResponse:
    """
    Clear one side (?side=driver or ?side=team) or the whole activation.

    Returns 409 once the race lock has passed.
    """
    context = await _load_context(session, league_id, race_id, user_id, now)
    remaining = resolver.clear(context, side)

    if remaining is None:
        await delete_activation(session, user_id, league_id, race_id)
        return ClearResponse(cleared=side)

    await save_activation(session, remaining)
    return ClearResponse(
        cleared=side,
        activation=activation_response(remaining, context.catalog, context.lock_time),
    )
