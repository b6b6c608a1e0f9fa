"""
League statistics.

A pure fold over a league's scored selections. Nothing here is stored
incrementally: running `aggregate` over the same selections always gives
the same statistics.

Metrics per player:
- Totals, average and best race
- Success rate: points relative to everyone who picked the same main driver
- Population standard deviation and a 0-10 consistency rating
- Recovery after below-average races and a 0-10 comeback rating
- Head-to-head records against every opponent sharing a race
"""

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Sequence

from powercards.config import (
    COMEBACK_MAGNITUDE_WEIGHT,
    COMEBACK_RATE_WEIGHT,
    CONSISTENCY_SPREAD_WEIGHT,
    RATING_MAX,
)
from powercards.models.failure import DataIntegrityError, FailureKind
from powercards.models.scoring import ScoredSelection
from powercards.models.statistics import HeadToHeadRecord, LeagueStatistics, RecoveryStats

logger = logging.getLogger(__name__)


class MalformedScoredSelection(DataIntegrityError):
    """A scored selection cannot be aggregated."""

    def __init__(self, message: str, player_id: str | None = None, race_id: str | None = None):
        self.player_id = player_id
        self.race_id = race_id
        super().__init__(kind=FailureKind.MALFORMED_SCORED_SELECTION, message=message)


def aggregate(league_id: str, scored_selections: Iterable[ScoredSelection]) -> list[LeagueStatistics]:
    """
    Compute statistics for every player in a league.

    A player with a malformed selection is left out of the result and none
    of their selections reach anyone else's success rate or head-to-head
    records. The failure is logged; `aggregate_player` raises it.

    Args:
        league_id: League to aggregate
        scored_selections: Every scored selection of the league, any order

    Returns:
        One LeagueStatistics per well-formed player, highest total points first
    """
    selections, failures = _partition(league_id, scored_selections)
    for failure in failures.values():
        logger.error("Leaving %s out of league %s statistics: %s", failure.player_id, league_id, failure)
    return _fold(league_id, selections)


def aggregate_player(
    league_id: str, user_id: str, scored_selections: Iterable[ScoredSelection]
) -> LeagueStatistics | None:
    """
    Compute one player's statistics against the rest of the league.

    Returns:
        The player's statistics, or None if they have no scored race

    Raises:
        MalformedScoredSelection: On a selection of this player from another
            league, with non-finite points, or scored twice for one race
    """
    selections, failures = _partition(league_id, scored_selections)
    if user_id in failures:
        raise failures[user_id]
    return next((s for s in _fold(league_id, selections) if s.user_id == user_id), None)


def _fold(league_id: str, selections: list[ScoredSelection]) -> list[LeagueStatistics]:
    by_player: dict[str, list[ScoredSelection]] = defaultdict(list)
    by_race: dict[str, dict[str, ScoredSelection]] = defaultdict(dict)
    for selection in selections:
        by_player[selection.player_id].append(selection)
        by_race[selection.race_id][selection.player_id] = selection

    driver_means = _same_driver_means(by_race)

    stats: list[LeagueStatistics] = []
    for player_id, races in by_player.items():
        races.sort(key=lambda s: (s.round, s.race_id))
        stats.append(_player_statistics(league_id, player_id, races, by_race, driver_means))

    stats.sort(key=lambda s: (-s.total_points, s.user_id))
    return stats


def running_average(points: Sequence[float]) -> list[float]:
    """Cumulative average after each race."""
    averages: list[float] = []
    total = 0.0
    for count, value in enumerate(points, start=1):
        total += value
        averages.append(total / count)
    return averages


def population_std(points: Sequence[float]) -> float:
    """Standard deviation dividing by the race count, not count - 1."""
    if not points:
        return 0.0
    mean = sum(points) / len(points)
    return math.sqrt(sum((p - mean) ** 2 for p in points) / len(points))


def consistency_rating(std: float, average: float, races: int) -> float:
    """
    0-10; lower spread relative to the player's own average rates higher.

    A player who always scores the same (including always zero) rates 10.
    """
    if races == 0:
        return 0.0
    if std == 0:
        return RATING_MAX
    if average <= 0:
        return 0.0
    return _clamp(RATING_MAX * (1 - CONSISTENCY_SPREAD_WEIGHT * std / average))


def comeback_rating(recovery: RecoveryStats, average: float) -> float:
    """0-10; scales with how often and how strongly the player bounced back."""
    if recovery.below_average_races == 0 or average <= 0:
        return 0.0
    magnitude = min(1.0, recovery.average_recovery_points / average)
    return _clamp(
        COMEBACK_RATE_WEIGHT * recovery.recovery_rate + COMEBACK_MAGNITUDE_WEIGHT * magnitude
    )


def recovery_stats(points: Sequence[float], average: float) -> RecoveryStats:
    """
    Count below-average races and recoveries in the race immediately after.

    The last race can be below average but can never be recovered from.
    """
    below = 0
    recoveries: list[float] = []
    for index, value in enumerate(points):
        if value >= average:
            continue
        below += 1
        if index + 1 < len(points) and points[index + 1] > average:
            recoveries.append(points[index + 1] - average)

    return RecoveryStats(
        below_average_races=below,
        successful_recoveries=len(recoveries),
        average_recovery_points=sum(recoveries) / len(recoveries) if recoveries else 0.0,
    )


def head_to_head(
    opponent_id: str,
    races: Sequence[ScoredSelection],
    by_race: dict[str, dict[str, ScoredSelection]],
) -> HeadToHeadRecord | None:
    """Record against one opponent over shared races; None if they never met."""
    record = HeadToHeadRecord(opponent_id=opponent_id)
    differences: list[float] = []

    for own in races:
        other = by_race[own.race_id].get(opponent_id)
        if other is None:
            continue
        mine, theirs = own.final_points, other.final_points
        if mine > theirs:
            record.wins += 1
        elif mine < theirs:
            record.losses += 1
        record.total_points += mine
        record.opponent_total_points += theirs
        differences.append(mine - theirs)

    if not differences:
        return None

    record.races_compared = len(differences)
    record.points_difference = record.total_points - record.opponent_total_points
    record.average_points_difference = record.points_difference / record.races_compared
    record.best_race_difference = max(differences)
    record.worst_race_difference = min(differences)
    return record


def _player_statistics(
    league_id: str,
    player_id: str,
    races: list[ScoredSelection],
    by_race: dict[str, dict[str, ScoredSelection]],
    driver_means: dict[tuple[str, str], float],
) -> LeagueStatistics:
    points = [s.final_points for s in races]
    count = len(points)
    total = sum(points)
    average = total / count if count else 0.0

    best = max(races, key=lambda s: s.final_points)

    success = []
    for selection in races:
        mean = driver_means[(selection.race_id, selection.main_driver.strip().casefold())]
        success.append(selection.final_points / mean if mean else 0.0)

    std = population_std(points)
    recovery = recovery_stats(points, average)

    opponents = sorted(
        {pid for s in races for pid in by_race[s.race_id] if pid != player_id}
    )
    records = [
        record
        for record in (head_to_head(opp, races, by_race) for opp in opponents)
        if record is not None
    ]

    return LeagueStatistics(
        league_id=league_id,
        user_id=player_id,
        total_points=total,
        races_participated=count,
        average_points_per_race=average,
        highest_points_in_race=best.final_points,
        highest_points_race_id=best.race_id,
        success_rate=sum(success) / len(success) if success else 0.0,
        points_standard_deviation=std,
        consistency_rating=consistency_rating(std, average, count),
        comeback_rating=comeback_rating(recovery, average),
        recovery_stats=recovery,
        head_to_head_records=records,
        running_average=running_average(points),
    )


def _same_driver_means(
    by_race: dict[str, dict[str, ScoredSelection]],
) -> dict[tuple[str, str], float]:
    """Mean final points per (race, main driver) across the league."""
    sums: dict[tuple[str, str], list[float]] = defaultdict(list)
    for race_id, selections in by_race.items():
        for selection in selections.values():
            sums[(race_id, selection.main_driver.strip().casefold())].append(selection.final_points)
    return {key: sum(values) / len(values) for key, values in sums.items()}


def _partition(
    league_id: str, scored_selections: Iterable[ScoredSelection]
) -> tuple[list[ScoredSelection], dict[str, MalformedScoredSelection]]:
    """Split selections into those of well-formed players and the first failure per other player."""
    selections = list(scored_selections)
    failures: dict[str, MalformedScoredSelection] = {}
    seen: set[tuple[str, str]] = set()

    for selection in selections:
        failure = None
        key = (selection.player_id, selection.race_id)
        if selection.league_id != league_id:
            failure = (
                f"Selection of {selection.player_id} for {selection.race_id} "
                f"belongs to league {selection.league_id}, not {league_id}"
            )
        elif not math.isfinite(selection.final_points):
            failure = f"Selection of {selection.player_id} for {selection.race_id} has no finite points"
        elif key in seen:
            failure = f"{selection.player_id} is scored twice for {selection.race_id}"
        seen.add(key)
        if failure is not None and selection.player_id not in failures:
            failures[selection.player_id] = MalformedScoredSelection(
                failure, selection.player_id, selection.race_id
            )

    valid = [s for s in selections if s.player_id not in failures]
    logger.debug("Aggregating %d scored selections for league %s", len(valid), league_id)
    return valid, failures


def _clamp(value: float, low: float = 0.0, high: float = RATING_MAX) -> float:
    return max(low, min(high, value))
