"""
Race scoring.

Turns a player's race selection and the raw race result into base points,
then applies the player's activated cards: the driver card first, the team
card second, each reading the running total the previous step left.

Effects only apply on non-sprint weekends of card-eligible seasons. A
missing result row for anything the score depends on is a data integrity
failure, never a silent zero.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from powercards.analysis.points import POINTS_POSITIONS, points_for_position
from powercards.config import settings
from powercards.models.activation import Activation, ActivationSide
from powercards.models.card import (
    Card,
    Condition,
    ConditionalBonus,
    Effect,
    EffectScope,
    Espionage,
    FlatBonus,
    Mirror,
    Multiply,
    Mystery,
    Podium,
    RandomTeamCard,
    RankShift,
    Sponsors,
    Switcheroo,
    TeammateSum,
    TeammateSwap,
    Undercut,
)
from powercards.models.failure import DataIntegrityError, FailureKind
from powercards.models.race import DriverResult, DriverStatus, RaceResult, RaceSelection
from powercards.models.scoring import CardEffectOutcome, PointsBreakdown, ScoredSelection
from powercards.services.card_catalog import CardCatalog, get_default_catalog

logger = logging.getLogger(__name__)

# Bottom-five conditions count this many places from the back of the field
BOTTOM_PLACES = 5


class IncompleteRaceResult(DataIntegrityError):
    """A race result is missing a row the selection needs."""

    def __init__(self, race_id: str, missing: str):
        self.race_id = race_id
        self.missing = missing
        super().__init__(
            kind=FailureKind.INCOMPLETE_RACE_RESULT,
            message=f"Race {race_id} has no result for {missing}",
        )


def cards_apply(result: RaceResult) -> bool:
    """Cards count on non-sprint weekends from the first card season on."""
    return not result.is_sprint and result.season >= settings.first_card_season


def score(
    selection: RaceSelection,
    result: RaceResult,
    activation: Activation | None = None,
    catalog: CardCatalog | None = None,
    opponents: Mapping[str, PointsBreakdown] | None = None,
) -> ScoredSelection:
    """
    Score one player's selection for one race.

    Args:
        selection: The player's main/reserve driver and team
        result: Raw race result
        activation: The player's committed activation, if any
        catalog: Card catalog (defaults to the standard catalog)
        opponents: Base points of other players in the same race, by player ID (Mirror)

    Returns:
        ScoredSelection with base and final points

    Raises:
        IncompleteRaceResult: If a needed driver or team row is missing
    """
    if selection.race_id != result.race_id:
        raise ValueError(f"Selection for {selection.race_id} scored against {result.race_id}")

    base, main_dns = _base_points(selection, result)

    driver_outcome: CardEffectOutcome | None = None
    team_outcome: CardEffectOutcome | None = None
    final = base

    if activation is not None and not activation.is_empty():
        if activation.race_id != selection.race_id or activation.player_id != selection.player_id:
            raise ValueError("Activation does not belong to this selection")

        if cards_apply(result):
            tally = _Tally(
                main_driver=base.main_driver,
                reserve_driver=base.reserve_driver,
                team=base.team,
                reserve_active=main_dns,
            )
            scorer = _EffectScorer(
                selection=selection,
                result=result,
                activation=activation,
                catalog=catalog or get_default_catalog(),
                opponents=opponents or {},
                tally=tally,
            )
            driver_outcome = scorer.apply_side(ActivationSide.DRIVER)
            team_outcome = scorer.apply_side(ActivationSide.TEAM)
            final = tally.breakdown()
        else:
            logger.debug(
                "Ignoring activation of %s for %s: cards do not apply to this weekend",
                selection.player_id,
                result.race_id,
            )

    return ScoredSelection(
        player_id=selection.player_id,
        league_id=selection.league_id,
        race_id=selection.race_id,
        round=selection.round,
        main_driver=selection.main_driver,
        reserve_driver=selection.reserve_driver,
        team=selection.team,
        base=base,
        final=final,
        is_sprint=result.is_sprint,
        main_driver_dns=main_dns,
        driver_card=driver_outcome,
        team_card=team_outcome,
    )


def _require_driver(result: RaceResult, name: str, sprint: bool = False) -> DriverResult:
    row = result.driver(name, sprint=sprint)
    if row is None:
        session = "sprint" if sprint else "race"
        raise IncompleteRaceResult(result.race_id, f"driver {name} ({session})")
    return row


def _base_points(selection: RaceSelection, result: RaceResult) -> tuple[PointsBreakdown, bool]:
    """Base points and whether the reserve was substituted for a main-driver DNS."""
    main = _require_driver(result, selection.main_driver)
    team = result.team(selection.team)
    if team is None:
        raise IncompleteRaceResult(result.race_id, f"team {selection.team}")

    if result.is_sprint:
        # Reserve scores the sprint; the main driver keeps the race
        reserve = _require_driver(result, selection.reserve_driver, sprint=True)
        breakdown = PointsBreakdown(
            main_driver=main.scored_points,
            reserve_driver=reserve.scored_points,
            team=team.race_points + team.sprint_points,
        )
        return breakdown, False

    if main.status == DriverStatus.DNS:
        reserve = _require_driver(result, selection.reserve_driver)
        breakdown = PointsBreakdown(
            main_driver=0,
            reserve_driver=reserve.scored_points,
            team=team.race_points,
        )
        return breakdown, True

    return PointsBreakdown(main_driver=main.scored_points, team=team.race_points), False


@dataclass
class _Tally:
    """Running point totals while effects are applied."""

    main_driver: float
    reserve_driver: float
    team: float
    reserve_active: bool = False

    @property
    def active(self) -> float:
        return self.reserve_driver if self.reserve_active else self.main_driver

    @active.setter
    def active(self, value: float) -> None:
        if self.reserve_active:
            self.reserve_driver = value
        else:
            self.main_driver = value

    @property
    def total(self) -> float:
        return self.main_driver + self.reserve_driver + self.team

    def scale(self, scope: EffectScope, factor: float) -> None:
        if scope == EffectScope.DRIVER:
            self.active *= factor
        elif scope == EffectScope.TEAM:
            self.team *= factor
        else:
            self.main_driver *= factor
            self.reserve_driver *= factor
            self.team *= factor

    def breakdown(self) -> PointsBreakdown:
        return PointsBreakdown(
            main_driver=self.main_driver,
            reserve_driver=self.reserve_driver,
            team=self.team,
        )


@dataclass
class _EffectScorer:
    selection: RaceSelection
    result: RaceResult
    activation: Activation
    catalog: CardCatalog
    opponents: Mapping[str, PointsBreakdown]
    tally: _Tally

    @property
    def active_driver(self) -> str:
        if self.tally.reserve_active:
            return self.selection.reserve_driver
        return self.selection.main_driver

    def apply_side(self, side: ActivationSide) -> CardEffectOutcome | None:
        card_id = (
            self.activation.driver_card_id
            if side == ActivationSide.DRIVER
            else self.activation.team_card_id
        )
        if card_id is None:
            return None

        card = self.catalog.require(card_id)
        resolved = self.catalog.require(self.activation.effective_card_id(side) or card_id)

        before = self.tally.total
        applied, description = self._apply(resolved, side)
        if resolved.id != card.id:
            description = f"{card.name} became {resolved.name}: {description}"
        if not applied:
            logger.debug("%s had no effect for %s: %s", card.id, self.selection.player_id, description)

        return CardEffectOutcome(
            card_id=card.id,
            card_name=card.name,
            resolved_card_id=resolved.id,
            applied=applied,
            description=description,
            points_before=before,
            points_after=self.tally.total,
        )

    def _add(self, side: ActivationSide, value: float) -> None:
        """Additive effects land on the side of the card that produced them."""
        if side == ActivationSide.DRIVER:
            self.tally.active += value
        else:
            self.tally.team += value

    def _apply(self, card: Card, side: ActivationSide) -> tuple[bool, str]:
        effect: Effect = card.effect
        tally = self.tally

        if isinstance(effect, Multiply):
            tally.scale(effect.scope, effect.factor)
            return True, f"{effect.scope.value} points ×{effect.factor:g}"

        if isinstance(effect, FlatBonus):
            if effect.scope == EffectScope.DRIVER:
                tally.active += effect.value
            elif effect.scope == EffectScope.TEAM:
                tally.team += effect.value
            else:
                self._add(side, effect.value)
            return True, f"flat bonus +{effect.value:g}"

        if isinstance(effect, RankShift):
            row = _require_driver(self.result, self.active_driver)
            if not row.classified:
                return False, f"{row.driver} was not classified"
            new_position = min(max(1, row.position - effect.positions), self.result.field_size)
            tally.active = points_for_position(new_position)
            return True, f"{row.driver} P{row.position} → P{new_position}"

        if isinstance(effect, Mirror):
            target = self.activation.target_player
            if target is None:
                return False, "no target player"
            opponent = self.opponents.get(target)
            if opponent is None:
                logger.warning(
                    "Mirror target %s has no selection for %s; copying 0 points",
                    target,
                    self.result.race_id,
                )
                tally.main_driver = 0
                tally.reserve_driver = 0
                return False, f"{target} has no selection this race"
            tally.main_driver = opponent.main_driver
            tally.reserve_driver = opponent.reserve_driver
            return True, f"copied {target}'s drivers: {opponent.drivers:g} points"

        if isinstance(effect, Switcheroo):
            target = self.activation.target_driver
            if target is None:
                return False, "no target driver"
            row = _require_driver(self.result, target)
            tally.active = row.scored_points
            return True, f"scored {row.driver}'s {row.scored_points:g} points"

        if isinstance(effect, TeammateSwap | TeammateSum):
            mate = self.result.teammate(self.active_driver)
            if mate is None:
                return False, f"no teammate found for {self.active_driver}"
            if isinstance(effect, TeammateSwap):
                tally.active = mate.scored_points
                return True, f"scored teammate {mate.driver}'s {mate.scored_points:g} points"
            tally.active += mate.scored_points
            return True, f"added teammate {mate.driver}'s {mate.scored_points:g} points"

        if isinstance(effect, ConditionalBonus):
            if not self._condition_holds(effect.condition):
                return False, f"condition not met: {effect.condition.value}"
            self._add(side, effect.bonus)
            return True, f"{effect.condition.value} bonus +{effect.bonus:g}"

        if isinstance(effect, Sponsors):
            if tally.team == 0:
                tally.team += effect.zero_bonus
                return True, f"team scored 0: +{effect.zero_bonus:g}"
            if tally.team == 1:
                tally.team += effect.one_bonus
                return True, f"team scored 1: +{effect.one_bonus:g}"
            return False, "team scored more than 1 point"

        if isinstance(effect, Podium):
            podiums = sum(
                1
                for row in self.result.team_drivers(self.selection.team)
                if row.classified and row.position <= 3
            )
            bonus = min(podiums * effect.points_per_podium, effect.max_points)
            tally.team += bonus
            return podiums > 0, f"{podiums} podium car(s): +{bonus:g}"

        if isinstance(effect, Espionage):
            target = self.activation.target_team
            if target is None:
                return False, "no target team"
            spied = self.result.team(target)
            if spied is None:
                raise IncompleteRaceResult(self.result.race_id, f"team {target}")
            tally.team = spied.race_points
            return True, f"copied {spied.team}'s {spied.race_points:g} points"

        if isinstance(effect, Undercut):
            cars = [row for row in self.result.team_drivers(self.selection.team) if row.classified]
            if len(cars) < 2:
                return False, "both cars must be classified"
            better, worse = sorted(cars, key=lambda row: row.position)[:2]
            new_position = min(better.position + 1, self.result.field_size)
            tally.team = tally.team - worse.scored_points + points_for_position(new_position)
            return True, f"{worse.driver} P{worse.position} → P{new_position}"

        if isinstance(effect, Mystery | RandomTeamCard):
            logger.warning(
                "%s for %s in %s was never transformed",
                card.id,
                self.selection.player_id,
                self.result.race_id,
            )
            return False, "card was not transformed at activation"

        raise TypeError(f"Unhandled card effect: {effect!r}")

    def _condition_holds(self, condition: Condition) -> bool:
        field_size = self.result.field_size

        if condition in (
            Condition.TOP5,
            Condition.TOP10,
            Condition.AHEAD_OF_TEAMMATE,
            Condition.BOTTOM5,
        ):
            row = _require_driver(self.result, self.active_driver)
            if not row.classified:
                return False
            if condition == Condition.TOP5:
                return row.position <= 5
            if condition == Condition.TOP10:
                return row.position <= 10
            if condition == Condition.BOTTOM5:
                return row.position > field_size - BOTTOM_PLACES
            mate = self.result.teammate(row.driver)
            return mate is not None and mate.classified and row.position < mate.position

        cars = self.result.team_drivers(self.selection.team)
        if len(cars) < 2:
            return False
        positions = [row.position if row.classified else None for row in cars]

        if condition == Condition.BOTH_TOP5:
            return all(p is not None and p <= 5 for p in positions)
        if condition == Condition.BOTH_TOP10:
            return all(p is not None and p <= 10 for p in positions)
        if condition == Condition.BOTH_OUTSIDE_POINTS:
            return all(p is None or p > POINTS_POSITIONS for p in positions)
        if condition == Condition.BOTH_BOTTOM5:
            return all(p is not None and p > field_size - BOTTOM_PLACES for p in positions)
        if condition == Condition.ONE_LAST_PLACE:
            return any(p == field_size for p in positions)

        raise TypeError(f"Unhandled condition: {condition!r}")
