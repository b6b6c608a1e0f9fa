"""Tests for race scoring."""

import pytest
from builders import GRID, classified_grid, make_result, make_selection

from powercards.analysis.scoring import IncompleteRaceResult, cards_apply, score
from powercards.models.activation import Activation
from powercards.models.card import (
    Card,
    CardType,
    Condition,
    ConditionalBonus,
    EffectScope,
    FlatBonus,
    Multiply,
    Podium,
    Tier,
)
from powercards.models.failure import DataIntegrityError, FailureKind
from powercards.models.race import DriverResult, DriverStatus, RaceResult
from powercards.models.scoring import PointsBreakdown
from powercards.services.card_catalog import build_catalog


def _activation(
    driver_card_id: str | None = None,
    team_card_id: str | None = None,
    player_id: str = "alice",
    race_id: str = "2026-03",
    **extra,
) -> Activation:
    return Activation(
        player_id=player_id,
        league_id="league-1",
        race_id=race_id,
        season=2026,
        driver_card_id=driver_card_id,
        team_card_id=team_card_id,
        **extra,
    )


def _with_status(driver: str, status: DriverStatus) -> list[DriverResult]:
    """The standard grid with one driver's status replaced."""
    rows = []
    for row in classified_grid():
        if row.driver == driver:
            position = None if status == DriverStatus.DNS else row.position
            row = DriverResult(row.driver, row.team, position, row.points, status)
        rows.append(row)
    return rows


def _reordered(*swaps: tuple[int, int]) -> RaceResult:
    """The standard grid with pairs of finishing positions swapped."""
    grid = list(GRID)
    for a, b in swaps:
        grid[a - 1], grid[b - 1] = grid[b - 1], grid[a - 1]
    return make_result(classified_grid(grid))


class TestBasePoints:
    """Tests for points before card effects."""

    def test_main_driver_and_team(self, race_result: RaceResult) -> None:
        """The reserve only scores on sprint weekends or after a main-driver DNS."""
        scored = score(make_selection(), race_result)

        assert scored.base == PointsBreakdown(main_driver=18, reserve_driver=0, team=30)
        assert scored.final == scored.base
        assert scored.final_points == 48
        assert scored.card_outcomes == []

    def test_names_match_case_insensitively(self, race_result: RaceResult) -> None:
        scored = score(make_selection(main_driver="lando norris", team="mclaren"), race_result)

        assert scored.base_points == 48

    def test_dnf_scores_zero(self) -> None:
        result = make_result(_with_status("Lando Norris", DriverStatus.DNF))

        scored = score(make_selection(), result)

        assert scored.base.main_driver == 0
        assert not scored.main_driver_dns

    def test_dns_brings_in_reserve(self) -> None:
        result = make_result(_with_status("Lando Norris", DriverStatus.DNS))

        scored = score(make_selection(), result)

        assert scored.main_driver_dns
        assert scored.base.main_driver == 0
        assert scored.base.reserve_driver == 2

    def test_dns_with_missing_reserve(self) -> None:
        result = make_result(_with_status("Lando Norris", DriverStatus.DNS))

        with pytest.raises(IncompleteRaceResult):
            score(make_selection(reserve_driver="Nico Hulkenberg"), result)

    def test_missing_main_driver(self, race_result: RaceResult) -> None:
        """A missing row is a data integrity failure, never zero points."""
        with pytest.raises(IncompleteRaceResult) as exc_info:
            score(make_selection(main_driver="Nico Hulkenberg"), race_result)

        assert isinstance(exc_info.value, DataIntegrityError)
        assert exc_info.value.kind == FailureKind.INCOMPLETE_RACE_RESULT
        assert exc_info.value.race_id == "2026-03"
        assert "Nico Hulkenberg" in exc_info.value.missing

    def test_missing_team(self, race_result: RaceResult) -> None:
        with pytest.raises(IncompleteRaceResult, match="team Williams"):
            score(make_selection(team="Williams"), race_result)

    def test_wrong_race(self, race_result: RaceResult) -> None:
        with pytest.raises(ValueError):
            score(make_selection(race_id="2026-04"), race_result)


class TestSprintWeekend:
    """Tests for sprint weekend scoring."""

    @pytest.fixture
    def sprint_result(self) -> RaceResult:
        sprint = [
            DriverResult("Fernando Alonso", "Aston Martin", 1, 8),
            DriverResult("Lando Norris", "McLaren", 2, 7),
            DriverResult("Max Verstappen", "Red Bull", 3, 6),
        ]
        return make_result(is_sprint=True, sprint_drivers=sprint)

    def test_reserve_scores_sprint(self, sprint_result: RaceResult) -> None:
        scored = score(make_selection(), sprint_result)

        assert scored.is_sprint
        assert scored.base == PointsBreakdown(main_driver=18, reserve_driver=8, team=37)

    def test_activation_ignored(self, sprint_result: RaceResult) -> None:
        scored = score(make_selection(), sprint_result, _activation("driver-double-points"))

        assert scored.final == scored.base
        assert scored.driver_card is None
        assert not cards_apply(sprint_result)

    def test_reserve_missing_from_sprint(self, sprint_result: RaceResult) -> None:
        with pytest.raises(IncompleteRaceResult, match="sprint"):
            score(make_selection(reserve_driver="Lance Stroll"), sprint_result)


class TestCardEligibility:
    """Tests for when card effects count."""

    def test_season_before_cards(self) -> None:
        result = make_result(season=2025)

        scored = score(make_selection(), result, _activation("driver-double-points"))

        assert scored.final == scored.base
        assert scored.driver_card is None

    def test_empty_activation(self, race_result: RaceResult) -> None:
        scored = score(make_selection(), race_result, _activation())

        assert scored.final == scored.base

    def test_activation_of_another_player(self, race_result: RaceResult) -> None:
        with pytest.raises(ValueError, match="does not belong"):
            score(make_selection(), race_result, _activation("driver-plus-three", player_id="bob"))


class TestDriverCards:
    """Tests for driver card effects."""

    def test_double_points(self, race_result: RaceResult) -> None:
        scored = score(make_selection(), race_result, _activation("driver-double-points"))

        assert scored.final.main_driver == 36
        assert scored.final.team == 30
        outcome = scored.driver_card
        assert outcome is not None
        assert outcome.applied
        assert outcome.points_before == 48
        assert outcome.points_after == 66

    def test_plus_three(self, race_result: RaceResult) -> None:
        scored = score(make_selection(), race_result, _activation("driver-plus-three"))

        assert scored.final.main_driver == 21

    def test_the_lift(self, race_result: RaceResult) -> None:
        """P2 is rescored as P1."""
        scored = score(make_selection(), race_result, _activation("driver-the-lift"))

        assert scored.final.main_driver == 25

    def test_the_lift_clamped_at_pole(self, race_result: RaceResult) -> None:
        selection = make_selection(main_driver="Max Verstappen", team="Red Bull")

        scored = score(selection, race_result, _activation("driver-the-lift"))

        assert scored.final.main_driver == 25

    def test_the_lift_unclassified(self) -> None:
        result = make_result(_with_status("Lando Norris", DriverStatus.DNF))

        scored = score(make_selection(), result, _activation("driver-the-lift"))

        assert scored.final.main_driver == 0
        assert scored.driver_card is not None
        assert not scored.driver_card.applied

    def test_switcheroo(self, race_result: RaceResult) -> None:
        activation = _activation("driver-switcheroo", target_driver="Max Verstappen")

        scored = score(make_selection(), race_result, activation)

        assert scored.final.main_driver == 25

    def test_switcheroo_target_missing_from_result(self, race_result: RaceResult) -> None:
        activation = _activation("driver-switcheroo", target_driver="Nico Hulkenberg")

        with pytest.raises(IncompleteRaceResult):
            score(make_selection(), race_result, activation)

    def test_teamwork(self, race_result: RaceResult) -> None:
        """Norris 18 plus Piastri 12."""
        scored = score(make_selection(), race_result, _activation("driver-teamwork"))

        assert scored.final.main_driver == 30

    def test_team_orders(self, race_result: RaceResult) -> None:
        scored = score(make_selection(), race_result, _activation("driver-team-orders"))

        assert scored.final.main_driver == 12

    @pytest.mark.parametrize(
        ("card_id", "main_driver", "expected"),
        [
            ("driver-top5-boost", "Lando Norris", 25),
            ("driver-top5-boost", "George Russell", 8),
            ("driver-top10-boost", "Fernando Alonso", 5),
            ("driver-competitiveness", "Lando Norris", 20),
            ("driver-competitiveness", "Oscar Piastri", 12),
            ("driver-bottom5", "Oliver Bearman", 2),
            ("driver-bottom5", "Lando Norris", 18),
        ],
    )
    def test_conditional_bonuses(
        self, race_result: RaceResult, card_id: str, main_driver: str, expected: float
    ) -> None:
        selection = make_selection(main_driver=main_driver, reserve_driver="Lance Stroll")

        scored = score(selection, race_result, _activation(card_id))

        assert scored.final.main_driver == expected

    def test_bonus_goes_to_reserve_after_dns(self) -> None:
        """After a main-driver DNS, driver cards act on the reserve."""
        result = make_result(_with_status("Lando Norris", DriverStatus.DNS))

        scored = score(make_selection(), result, _activation("driver-plus-three"))

        assert scored.final.main_driver == 0
        assert scored.final.reserve_driver == 5

    def test_mirror_copies_opponent_drivers(self, race_result: RaceResult) -> None:
        opponents = {"bob": PointsBreakdown(main_driver=25, reserve_driver=0, team=31)}
        activation = _activation("driver-mirror", target_player="bob")

        scored = score(make_selection(), race_result, activation, opponents=opponents)

        assert scored.final.main_driver == 25
        assert scored.final.team == 30

    def test_mirror_opponent_without_selection(self, race_result: RaceResult) -> None:
        activation = _activation("driver-mirror", target_player="carol")

        scored = score(make_selection(), race_result, activation, opponents={})

        assert scored.final.main_driver == 0
        assert scored.driver_card is not None
        assert not scored.driver_card.applied


class TestTeamCards:
    """Tests for team card effects."""

    @pytest.mark.parametrize(
        ("card_id", "team", "expected"),
        [
            ("team-podium", "McLaren", 38),
            ("team-podium", "Haas", 0),
            ("team-top5", "McLaren", 40),
            ("team-top5", "Red Bull", 31),
            ("team-top10", "Mercedes", 17),
            ("team-sponsors", "Alpine", 5),
            ("team-sponsors", "Aston Martin", 3),
            ("team-bottom5", "Haas", 3),
            ("team-bottom5", "Aston Martin", 3),
            ("team-last-place", "Haas", 3),
            ("team-last-place", "Alpine", 0),
        ],
    )
    def test_team_bonuses(self, race_result: RaceResult, card_id: str, team: str, expected: float) -> None:
        scored = score(make_selection(team=team), race_result, _activation(team_card_id=card_id))

        assert scored.final.team == expected
        assert scored.final.main_driver == 18

    def test_podium_capped(self) -> None:
        """Two podium cars at 10 each are capped at 16."""
        result = _reordered((1, 2), (2, 4))
        catalog = build_catalog(
            [
                Card(
                    id="team-big-podium",
                    name="Big Podium",
                    type=CardType.TEAM,
                    tier=Tier.GOLD,
                    slot_cost=4,
                    effect=Podium(points_per_podium=10, max_points=16),
                )
            ]
        )

        scored = score(make_selection(), result, _activation(team_card_id="team-big-podium"), catalog)

        assert scored.base.team == 43
        assert scored.final.team == 59

    @pytest.mark.parametrize(
        ("team", "retired", "applies"),
        [
            ("Alpine", None, True),
            ("Haas", None, True),
            ("Alpine", "Pierre Gasly", True),
            ("Aston Martin", None, False),
            ("Mercedes", "George Russell", False),
        ],
    )
    def test_both_outside_points(self, team: str, retired: str | None, applies: bool) -> None:
        """Both cars outside the top 10 or unclassified earn the bonus."""
        rows = _with_status(retired, DriverStatus.DNF) if retired else classified_grid()
        catalog = build_catalog(
            [
                Card(
                    id="team-backmarkers",
                    name="Backmarkers",
                    type=CardType.TEAM,
                    tier=Tier.SILVER,
                    slot_cost=2,
                    effect=ConditionalBonus(condition=Condition.BOTH_OUTSIDE_POINTS, bonus=4),
                )
            ]
        )
        activation = _activation(team_card_id="team-backmarkers")

        scored = score(make_selection(team=team), make_result(rows), activation, catalog)

        assert scored.team_card is not None
        assert scored.team_card.applied is applies
        assert scored.final.team == scored.base.team + (4 if applies else 0)

    def test_sponsors_one_point(self) -> None:
        """Stroll P10 and Alonso P11 make one team point."""
        result = _reordered((9, 11))

        scored = score(make_selection(team="Aston Martin"), result, _activation(team_card_id="team-sponsors"))

        assert scored.base.team == 1
        assert scored.final.team == 2

    def test_espionage(self, race_result: RaceResult) -> None:
        activation = _activation(team_card_id="team-espionage", target_team="Red Bull")

        scored = score(make_selection(), race_result, activation)

        assert scored.final.team == 31

    def test_espionage_target_missing(self, race_result: RaceResult) -> None:
        activation = _activation(team_card_id="team-espionage", target_team="Williams")

        with pytest.raises(IncompleteRaceResult):
            score(make_selection(), race_result, activation)

    def test_undercut(self, race_result: RaceResult) -> None:
        """Piastri P4 (12) is rescored at P3 (15), right behind Norris."""
        scored = score(make_selection(), race_result, _activation(team_card_id="team-undercut"))

        assert scored.final.team == 33

    def test_undercut_needs_two_classified_cars(self) -> None:
        result = make_result(_with_status("Oscar Piastri", DriverStatus.DNF))

        scored = score(make_selection(), result, _activation(team_card_id="team-undercut"))

        assert scored.final.team == scored.base.team
        assert scored.team_card is not None
        assert not scored.team_card.applied


class TestTransformedCards:
    """Tests for scoring Mystery and Random cards."""

    def test_mystery_scores_drawn_card(self, race_result: RaceResult) -> None:
        activation = _activation("driver-mystery", mystery_transformed_card_id="driver-plus-three")

        scored = score(make_selection(), race_result, activation)

        outcome = scored.driver_card
        assert outcome is not None
        assert outcome.card_id == "driver-mystery"
        assert outcome.resolved_card_id == "driver-plus-three"
        assert outcome.description.startswith("Mystery Card became +3 Points:")
        assert scored.final.main_driver == 21

    def test_random_scores_drawn_card(self, race_result: RaceResult) -> None:
        activation = _activation(team_card_id="team-mystery", random_transformed_card_id="team-top10")

        scored = score(make_selection(), race_result, activation)

        assert scored.final.team == 35

    def test_untransformed_mystery_has_no_effect(self, race_result: RaceResult) -> None:
        scored = score(make_selection(), race_result, _activation("driver-mystery"))

        assert scored.final == scored.base
        assert scored.driver_card is not None
        assert not scored.driver_card.applied


class TestEffectOrder:
    """The driver card applies first; the team card reads its result."""

    CATALOG = build_catalog(
        [
            Card("drv-flat", "Flat Five", CardType.DRIVER, Tier.BRONZE, 1, FlatBonus(5, EffectScope.DRIVER)),
            Card("drv-double", "Double Weekend", CardType.DRIVER, Tier.GOLD, 3, Multiply(2, EffectScope.WEEKEND)),
            Card("team-double", "Double Weekend", CardType.TEAM, Tier.GOLD, 4, Multiply(2, EffectScope.WEEKEND)),
            Card("team-flat", "Flat Five", CardType.TEAM, Tier.BRONZE, 1, FlatBonus(5, EffectScope.TEAM)),
        ]
    )

    # Hamilton P5 scores 10; Haas scores nothing
    SELECTION = make_selection(main_driver="Lewis Hamilton", reserve_driver="Lance Stroll", team="Haas")

    def test_bonus_then_multiplier(self, race_result: RaceResult) -> None:
        scored = score(self.SELECTION, race_result, _activation("drv-flat", "team-double"), self.CATALOG)

        assert scored.base_points == 10
        assert scored.final_points == 30

    def test_multiplier_then_bonus(self, race_result: RaceResult) -> None:
        scored = score(self.SELECTION, race_result, _activation("drv-double", "team-flat"), self.CATALOG)

        assert scored.final_points == 25
        assert scored.final == PointsBreakdown(main_driver=20, reserve_driver=0, team=5)

    def test_outcomes_chain(self, race_result: RaceResult) -> None:
        scored = score(self.SELECTION, race_result, _activation("drv-flat", "team-double"), self.CATALOG)

        assert scored.driver_card is not None and scored.team_card is not None
        assert scored.driver_card.points_after == scored.team_card.points_before == 15
