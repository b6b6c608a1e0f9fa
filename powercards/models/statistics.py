from dataclasses import dataclass, field


@dataclass
class HeadToHeadRecord:
    """
    A player's record against one opponent over their shared races.

    Ties count as neither a win nor a loss.
    """

    opponent_id: str
    wins: int = 0
    losses: int = 0
    total_points: float = 0
    opponent_total_points: float = 0
    points_difference: float = 0
    average_points_difference: float = 0
    races_compared: int = 0
    best_race_difference: float = 0
    worst_race_difference: float = 0


@dataclass
class RecoveryStats:
    """How a player bounced back after races below their own average."""

    below_average_races: int = 0
    successful_recoveries: int = 0
    average_recovery_points: float = 0

    @property
    def recovery_rate(self) -> float:
        if self.below_average_races == 0:
            return 0.0
        return self.successful_recoveries / self.below_average_races


@dataclass
class LeagueStatistics:
    """
    Derived per-player statistics for one league.

    Fully recomputable from the league's scored selections; never edited
    by hand.
    """

    league_id: str
    user_id: str
    total_points: float = 0
    races_participated: int = 0
    average_points_per_race: float = 0
    highest_points_in_race: float = 0
    highest_points_race_id: str | None = None
    success_rate: float = 0
    points_standard_deviation: float = 0
    consistency_rating: float = 0
    comeback_rating: float = 0
    recovery_stats: RecoveryStats = field(default_factory=RecoveryStats)
    head_to_head_records: list[HeadToHeadRecord] = field(default_factory=list)
    # Cumulative average after each race, in round order
    running_average: list[float] = field(default_factory=list)

    def head_to_head(self, opponent_id: str) -> HeadToHeadRecord | None:
        for record in self.head_to_head_records:
            if record.opponent_id == opponent_id:
                return record
        return None
