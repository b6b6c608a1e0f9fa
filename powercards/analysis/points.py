"""
Championship points tables.
"""

from collections.abc import Iterable

from powercards.models.race import DriverResult, TeamResult

RACE_POINTS: dict[int, int] = {1: 25, 2: 18, 3: 15, 4: 12, 5: 10, 6: 8, 7: 6, 8: 4, 9: 2, 10: 1}
SPRINT_POINTS: dict[int, int] = {1: 8, 2: 7, 3: 6, 4: 5, 5: 4, 6: 3, 7: 2, 8: 1}

# Positions at or above this are "in the points" in a main race
POINTS_POSITIONS = len(RACE_POINTS)


def points_for_position(position: int | None, sprint: bool = False) -> int:
    """Points for a finishing position; 0 outside the table or when unclassified."""
    if position is None:
        return 0
    table = SPRINT_POINTS if sprint else RACE_POINTS
    return table.get(position, 0)


def derive_team_results(
    drivers: Iterable[DriverResult],
    sprint_drivers: Iterable[DriverResult] = (),
) -> list[TeamResult]:
    """
    Build per-team aggregates from driver rows.

    Teams are returned in the order they first appear in the main race
    classification, followed by any team seen only in the sprint.
    """
    race_points: dict[str, float] = {}
    sprint_points: dict[str, float] = {}

    for row in drivers:
        race_points[row.team] = race_points.get(row.team, 0) + row.scored_points
    for row in sprint_drivers:
        sprint_points[row.team] = sprint_points.get(row.team, 0) + row.scored_points

    teams = list(race_points)
    teams.extend(team for team in sprint_points if team not in race_points)

    return [
        TeamResult(
            team=team,
            race_points=race_points.get(team, 0),
            sprint_points=sprint_points.get(team, 0),
        )
        for team in teams
    ]
