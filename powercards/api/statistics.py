"""
League statistics API endpoints.

Statistics are recomputed from the league's scored selections on every
request; nothing is cached.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from powercards.analysis.statistics import aggregate, aggregate_player
from powercards.db import get_league, get_scored_selections
from powercards.db.database import get_session
from powercards.models.failure import FailureKind, ReferentialError
from powercards.models.statistics import LeagueStatistics

router = APIRouter(prefix="/leagues/{league_id}/statistics", tags=["statistics"])


class HeadToHeadResponse(BaseModel):
    opponent_id: str
    wins: int
    losses: int
    total_points: float
    opponent_total_points: float
    points_difference: float
    average_points_difference: float
    races_compared: int
    best_race_difference: float
    worst_race_difference: float


class RecoveryResponse(BaseModel):
    below_average_races: int
    successful_recoveries: int
    average_recovery_points: float
    recovery_rate: float


class PlayerStatisticsResponse(BaseModel):
    """Statistics for one player in a league."""

    league_id: str
    user_id: str
    total_points: float
    races_participated: int
    average_points_per_race: float
    highest_points_in_race: float
    highest_points_race_id: str | None = None
    success_rate: float
    points_standard_deviation: float
    consistency_rating: float
    comeback_rating: float
    recovery_stats: RecoveryResponse
    head_to_head_records: list[HeadToHeadResponse] = Field(default_factory=list)
    running_average: list[float] = Field(default_factory=list)


class LeagueStatisticsResponse(BaseModel):
    """Statistics for every player in a league, highest total first."""

    league_id: str
    players: list[PlayerStatisticsResponse]
    count: int


def statistics_response(stats: LeagueStatistics) -> PlayerStatisticsResponse:
    recovery = stats.recovery_stats
    return PlayerStatisticsResponse(
        league_id=stats.league_id,
        user_id=stats.user_id,
        total_points=stats.total_points,
        races_participated=stats.races_participated,
        average_points_per_race=stats.average_points_per_race,
        highest_points_in_race=stats.highest_points_in_race,
        highest_points_race_id=stats.highest_points_race_id,
        success_rate=stats.success_rate,
        points_standard_deviation=stats.points_standard_deviation,
        consistency_rating=stats.consistency_rating,
        comeback_rating=stats.comeback_rating,
        recovery_stats=RecoveryResponse(
            below_average_races=recovery.below_average_races,
            successful_recoveries=recovery.successful_recoveries,
            average_recovery_points=recovery.average_recovery_points,
            recovery_rate=recovery.recovery_rate,
        ),
        head_to_head_records=[
            HeadToHeadResponse(
                opponent_id=r.opponent_id,
                wins=r.wins,
                losses=r.losses,
                total_points=r.total_points,
                opponent_total_points=r.opponent_total_points,
                points_difference=r.points_difference,
                average_points_difference=r.average_points_difference,
                races_compared=r.races_compared,
                best_race_difference=r.best_race_difference,
                worst_race_difference=r.worst_race_difference,
            )
            for r in stats.head_to_head_records
        ],
        running_average=stats.running_average,
    )


async def _require_league(session: AsyncSession, league_id: str) -> None:
    if await get_league(session, league_id) is None:
        raise ReferentialError(kind=FailureKind.NOT_FOUND, message=f"League '{league_id}' not found")


@router.get("", response_model=LeagueStatisticsResponse)
async def read_league_statistics(
    league_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> LeagueStatisticsResponse:
    """Statistics for every player with at least one scored race."""
    await _require_league(session, league_id)
    stats = aggregate(league_id, await get_scored_selections(session, league_id))
    players = [statistics_response(s) for s in stats]
    return LeagueStatisticsResponse(league_id=league_id, players=players, count=len(players))


@router.get("/{user_id}", response_model=PlayerStatisticsResponse)
async def read_player_statistics(
    league_id: str,
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> PlayerStatisticsResponse:
    """
    Statistics for one player. Returns 404 if the player has no scored race.

    A malformed selection of this player is a 500; other players' bad data
    never fails this request.
    """
    await _require_league(session, league_id)
    stats = aggregate_player(league_id, user_id, await get_scored_selections(session, league_id))
    if stats is not None:
        return statistics_response(stats)
    raise ReferentialError(
        kind=FailureKind.NOT_FOUND,
        message=f"No scored races for '{user_id}' in league '{league_id}'",
    )
