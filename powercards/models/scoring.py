from dataclasses import dataclass, field


@dataclass(frozen=True)
class PointsBreakdown:
    """Points split by where they were earned."""

    main_driver: float = 0
    reserve_driver: float = 0
    team: float = 0

    @property
    def drivers(self) -> float:
        return self.main_driver + self.reserve_driver

    @property
    def total(self) -> float:
        return self.main_driver + self.reserve_driver + self.team


@dataclass(frozen=True)
class CardEffectOutcome:
    """
    What one played card did to the running total.

    Attributes:
        card_id: Card the player activated
        card_name: Display name of the activated card
        resolved_card_id: Card whose effect was scored (differs for Mystery/Random)
        applied: False when a condition was not met or a target was missing
        description: Human-readable explanation
        points_before: Running total before the effect
        points_after: Running total after the effect
    """

    card_id: str
    card_name: str
    resolved_card_id: str
    applied: bool
    description: str
    points_before: float
    points_after: float


@dataclass(frozen=True)
class ScoredSelection:
    """
    A player's scored race in one league.

    Attributes:
        player_id: Player the score belongs to
        league_id: League the score counts in
        race_id: Race that was scored
        round: Round number (orders races for statistics)
        main_driver: Main driver as selected
        reserve_driver: Reserve driver as selected
        team: Team as selected
        is_sprint: Weekend type
        main_driver_dns: True when the reserve was substituted
        base: Points before card effects
        final: Points after card effects
        driver_card: Outcome of the driver card, if one was played
        team_card: Outcome of the team card, if one was played
    """

    player_id: str
    league_id: str
    race_id: str
    round: int
    main_driver: str
    reserve_driver: str
    team: str
    base: PointsBreakdown
    final: PointsBreakdown
    is_sprint: bool = False
    main_driver_dns: bool = False
    driver_card: CardEffectOutcome | None = None
    team_card: CardEffectOutcome | None = None

    @property
    def base_points(self) -> float:
        return self.base.total

    @property
    def final_points(self) -> float:
        return self.final.total

    @property
    def card_outcomes(self) -> list[CardEffectOutcome]:
        return [o for o in (self.driver_card, self.team_card) if o is not None]


@dataclass
class RaceScoringReport:
    """Result of scoring every selection of one race in one league."""

    league_id: str
    race_id: str
    scored: list[ScoredSelection] = field(default_factory=list)
    excluded_reason: str | None = None

    @property
    def excluded(self) -> bool:
        return self.excluded_reason is not None
