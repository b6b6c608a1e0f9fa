from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class DriverStatus(str, Enum):
    """Classification status of a driver in one session."""

    FINISHED = "finished"
    DNF = "dnf"
    DNS = "dns"
    DSQ = "dsq"


@dataclass(frozen=True)
class RaceEntry:
    """A driver entered for a race weekend, with their team."""

    driver: str
    team: str


@dataclass(frozen=True)
class RaceWeekend:
    """
    A calendar entry for one round of a season.

    Attributes:
        race_id: Stable race identifier
        season: Championship year
        round: Round number within the season
        name: Grand Prix name
        is_sprint: True on sprint weekends
        qualifying_start: Start of qualifying (UTC)
        sprint_qualifying_start: Start of sprint qualifying (sprint weekends only)
        race_start: Start of the main race (UTC)
        entries: Entry list; Switcheroo and Espionage may only target it
    """

    race_id: str
    season: int
    round: int
    qualifying_start: datetime
    name: str = ""
    is_sprint: bool = False
    sprint_qualifying_start: datetime | None = None
    race_start: datetime | None = None
    entries: tuple[RaceEntry, ...] = ()

    @property
    def drivers(self) -> frozenset[str]:
        return frozenset(entry.driver for entry in self.entries)

    @property
    def teams(self) -> frozenset[str]:
        return frozenset(entry.team for entry in self.entries)


@dataclass(frozen=True)
class DriverResult:
    """One driver's classification in a session."""

    driver: str
    team: str
    position: int | None
    points: float = 0
    status: DriverStatus = DriverStatus.FINISHED

    @property
    def classified(self) -> bool:
        return self.status == DriverStatus.FINISHED and self.position is not None

    @property
    def scored_points(self) -> float:
        """Points that count: DNF, DNS and DSQ always score zero."""
        return self.points if self.status == DriverStatus.FINISHED else 0


@dataclass(frozen=True)
class TeamResult:
    """A team's aggregate points for a weekend."""

    team: str
    race_points: float = 0
    sprint_points: float = 0

    @property
    def total_points(self) -> float:
        return self.race_points + self.sprint_points


@dataclass
class RaceResult:
    """
    Raw results for one round.

    Attributes:
        race_id: Race the results belong to
        season: Championship year
        round: Round number
        is_sprint: True on sprint weekends
        drivers: Main race classification
        sprint_drivers: Sprint classification (sprint weekends only)
        teams: Per-team aggregate points
    """

    race_id: str
    season: int
    round: int
    is_sprint: bool = False
    drivers: list[DriverResult] = field(default_factory=list)
    sprint_drivers: list[DriverResult] = field(default_factory=list)
    teams: list[TeamResult] = field(default_factory=list)

    def driver(self, name: str, sprint: bool = False) -> DriverResult | None:
        """Find a driver's result by case-insensitive name."""
        rows = self.sprint_drivers if sprint else self.drivers
        wanted = name.strip().casefold()
        for row in rows:
            if row.driver.strip().casefold() == wanted:
                return row
        return None

    def team(self, name: str) -> TeamResult | None:
        """Find a team's aggregate by case-insensitive name."""
        wanted = name.strip().casefold()
        for row in self.teams:
            if row.team.strip().casefold() == wanted:
                return row
        return None

    def team_drivers(self, team: str) -> list[DriverResult]:
        """Main race rows for the drivers of a team."""
        wanted = team.strip().casefold()
        return [row for row in self.drivers if row.team.strip().casefold() == wanted]

    def teammate(self, driver: str) -> DriverResult | None:
        """The other driver of the same team in the main race."""
        own = self.driver(driver)
        if own is None:
            return None
        for row in self.team_drivers(own.team):
            if row.driver.strip().casefold() != own.driver.strip().casefold():
                return row
        return None

    @property
    def field_size(self) -> int:
        return len(self.drivers)


@dataclass(frozen=True)
class RaceSelection:
    """A player's driver/team picks for one race in one league."""

    player_id: str
    league_id: str
    race_id: str
    round: int
    main_driver: str
    reserve_driver: str
    team: str
