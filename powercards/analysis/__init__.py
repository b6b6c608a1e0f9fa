from powercards.analysis.points import (
    RACE_POINTS,
    SPRINT_POINTS,
    derive_team_results,
    points_for_position,
)
from powercards.analysis.scoring import IncompleteRaceResult, cards_apply, score
from powercards.analysis.statistics import (
    MalformedScoredSelection,
    aggregate,
    aggregate_player,
    running_average,
)

__all__ = [
    "RACE_POINTS",
    "SPRINT_POINTS",
    "derive_team_results",
    "points_for_position",
    "IncompleteRaceResult",
    "cards_apply",
    "score",
    "MalformedScoredSelection",
    "aggregate",
    "aggregate_player",
    "running_average",
]
