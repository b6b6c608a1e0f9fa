"""Tests for card activation."""

import random
from datetime import datetime, timedelta, timezone

import pytest
from builders import GRID, make_race, make_selection

from powercards.models.activation import (
    Activation,
    ActivationSide,
    ActivationTargets,
    UsedCardLedger,
)
from powercards.models.card import CardType
from powercards.models.deck import Deck
from powercards.models.failure import FailureKind, ReferentialError, StateError
from powercards.services.activation import (
    ActivationContext,
    ActivationErrorCode,
    ActivationReferenceError,
    ActivationResolver,
    ActivationStateError,
)
from powercards.services.card_catalog import get_default_catalog

NOW = datetime(2026, 4, 1, 12, 0, tzinfo=timezone.utc)
LOCK = datetime(2026, 4, 11, 14, 55, tzinfo=timezone.utc)

DECK = Deck(
    driver_card_ids=(
        "driver-mirror",
        "driver-switcheroo",
        "driver-mystery",
        "driver-plus-three",
        "driver-top10-boost",
    ),
    team_card_ids=("team-espionage", "team-mystery", "team-sponsors", "team-podium"),
)


class ScriptedPicker:
    """Picks the given card IDs in order and records every pool offered."""

    def __init__(self, *card_ids: str):
        self.card_ids = list(card_ids)
        self.pools: list[list[str]] = []

    def choice(self, seq):
        self.pools.append([card.id for card in seq])
        wanted = self.card_ids.pop(0)
        return next(card for card in seq if card.id == wanted)


def make_context(**overrides) -> ActivationContext:
    values = {
        "player_id": "alice",
        "league_id": "league-1",
        "league_season": 2026,
        "race": make_race(),
        "now": NOW,
        "deck": DECK,
        "catalog": get_default_catalog(),
        "league_members": frozenset({"alice", "bob", "carol"}),
        "player_selection": make_selection(),
        "eligible_drivers": frozenset(driver for driver, _ in GRID),
        "eligible_teams": frozenset(team for _, team in GRID),
    }
    values.update(overrides)
    return ActivationContext(**values)


def _code(exc_info: pytest.ExceptionInfo) -> ActivationErrorCode:
    return exc_info.value.code


class TestActivate:
    """Tests for valid activations."""

    def test_driver_card_only(self) -> None:
        activation = ActivationResolver().activate(make_context(), driver_card_id="driver-plus-three")

        assert activation == Activation(
            player_id="alice",
            league_id="league-1",
            race_id="2026-03",
            season=2026,
            driver_card_id="driver-plus-three",
        )

    def test_both_sides(self) -> None:
        activation = ActivationResolver().activate(
            make_context(),
            driver_card_id="driver-top10-boost",
            team_card_id="team-podium",
        )

        assert activation.card_ids() == ("driver-top10-boost", "team-podium")

    def test_targets_ignored_for_untargeted_cards(self) -> None:
        """Targets are only recorded for cards that need them."""
        activation = ActivationResolver().activate(
            make_context(),
            driver_card_id="driver-plus-three",
            targets=ActivationTargets(player="bob", driver="Max Verstappen"),
        )

        assert activation.target_player is None
        assert activation.target_driver is None

    def test_lock_time_from_race(self) -> None:
        assert make_context().lock_time == LOCK


class TestCardChecks:
    """Tests for card ownership, type and availability."""

    def test_no_card_chosen(self) -> None:
        with pytest.raises(ActivationReferenceError) as exc_info:
            ActivationResolver().activate(make_context())

        assert _code(exc_info) == ActivationErrorCode.INVALID_CARD

    def test_card_not_in_deck(self) -> None:
        with pytest.raises(ActivationReferenceError) as exc_info:
            ActivationResolver().activate(make_context(), driver_card_id="driver-double-points")

        assert _code(exc_info) == ActivationErrorCode.INVALID_CARD
        assert exc_info.value.status_code == 404

    def test_card_on_wrong_side(self) -> None:
        with pytest.raises(ActivationReferenceError) as exc_info:
            ActivationResolver().activate(make_context(), driver_card_id="team-sponsors")

        assert _code(exc_info) == ActivationErrorCode.INVALID_CARD

    def test_inactive_card(self) -> None:
        catalog = get_default_catalog().with_active("team-podium", False)

        with pytest.raises(ActivationReferenceError) as exc_info:
            ActivationResolver().activate(make_context(catalog=catalog), team_card_id="team-podium")

        assert "no longer available" in exc_info.value.message

    def test_used_card(self) -> None:
        context = make_context(used_card_ids=frozenset({"driver-plus-three"}))

        with pytest.raises(ActivationStateError) as exc_info:
            ActivationResolver().activate(context, driver_card_id="driver-plus-three")

        assert _code(exc_info) == ActivationErrorCode.CARD_ALREADY_USED
        assert isinstance(exc_info.value, StateError)
        assert exc_info.value.status_code == 409

    def test_card_reserved_for_another_race(self) -> None:
        """A card held by another race's activation cannot be played twice."""
        context = make_context(reserved_card_ids=frozenset({"team-sponsors"}))

        with pytest.raises(ActivationStateError) as exc_info:
            ActivationResolver().activate(context, team_card_id="team-sponsors")

        assert _code(exc_info) == ActivationErrorCode.CARD_ALREADY_USED

    def test_used_team_card_blocks_whole_activation(self) -> None:
        context = make_context(used_card_ids=frozenset({"team-podium"}))

        with pytest.raises(ActivationStateError):
            ActivationResolver().activate(
                context, driver_card_id="driver-plus-three", team_card_id="team-podium"
            )


class TestTimeline:
    """Tests for sprint, season and lock checks."""

    def test_sprint_weekend_forbidden(self) -> None:
        context = make_context(race=make_race(is_sprint=True))

        with pytest.raises(ActivationStateError) as exc_info:
            ActivationResolver().activate(context, driver_card_id="driver-plus-three")

        assert _code(exc_info) == ActivationErrorCode.SPRINT_WEEKEND_FORBIDDEN
        assert exc_info.value.kind == FailureKind.SPRINT_WEEKEND_FORBIDDEN

    def test_season_before_cards(self) -> None:
        context = make_context(league_season=2025)

        with pytest.raises(ActivationStateError) as exc_info:
            ActivationResolver().activate(context, driver_card_id="driver-plus-three")

        assert _code(exc_info) == ActivationErrorCode.SEASON_NOT_ELIGIBLE

    def test_lock_passed(self) -> None:
        context = make_context(now=LOCK)

        with pytest.raises(ActivationStateError) as exc_info:
            ActivationResolver().activate(context, driver_card_id="driver-plus-three")

        assert _code(exc_info) == ActivationErrorCode.LOCK_PASSED

    def test_just_before_lock(self) -> None:
        context = make_context(now=LOCK - timedelta(seconds=1))

        activation = ActivationResolver().activate(context, driver_card_id="driver-plus-three")

        assert activation.driver_card_id == "driver-plus-three"

    def test_sprint_checked_before_lock_and_cards(self) -> None:
        """A sprint weekend refusal wins over every later check."""
        context = make_context(
            race=make_race(is_sprint=True),
            now=LOCK + timedelta(days=1),
            used_card_ids=frozenset({"driver-plus-three"}),
        )

        with pytest.raises(ActivationStateError) as exc_info:
            ActivationResolver().activate(context, driver_card_id="driver-plus-three")

        assert _code(exc_info) == ActivationErrorCode.SPRINT_WEEKEND_FORBIDDEN

    def test_lock_checked_before_cards(self) -> None:
        context = make_context(now=LOCK, used_card_ids=frozenset({"driver-plus-three"}))

        with pytest.raises(ActivationStateError) as exc_info:
            ActivationResolver().activate(context, driver_card_id="driver-plus-three")

        assert _code(exc_info) == ActivationErrorCode.LOCK_PASSED


class TestTargets:
    """Tests for Mirror, Switcheroo and Espionage targets."""

    def test_mirror_target(self) -> None:
        activation = ActivationResolver().activate(
            make_context(),
            driver_card_id="driver-mirror",
            targets=ActivationTargets(player="bob"),
        )

        assert activation.target_player == "bob"

    def test_mirror_without_target(self) -> None:
        with pytest.raises(ActivationReferenceError) as exc_info:
            ActivationResolver().activate(make_context(), driver_card_id="driver-mirror")

        assert _code(exc_info) == ActivationErrorCode.MISSING_TARGET
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("target", ["alice", "dave"])
    def test_mirror_invalid_target(self, target: str) -> None:
        """Self and non-members cannot be mirrored."""
        with pytest.raises(ActivationReferenceError) as exc_info:
            ActivationResolver().activate(
                make_context(),
                driver_card_id="driver-mirror",
                targets=ActivationTargets(player=target),
            )

        assert _code(exc_info) == ActivationErrorCode.INVALID_TARGET
        assert isinstance(exc_info.value, ReferentialError)

    def test_switcheroo_target(self) -> None:
        activation = ActivationResolver().activate(
            make_context(),
            driver_card_id="driver-switcheroo",
            targets=ActivationTargets(driver="Max Verstappen"),
        )

        assert activation.target_driver == "Max Verstappen"

    def test_switcheroo_driver_not_racing(self) -> None:
        with pytest.raises(ActivationReferenceError) as exc_info:
            ActivationResolver().activate(
                make_context(),
                driver_card_id="driver-switcheroo",
                targets=ActivationTargets(driver="Juan Manuel Fangio"),
            )

        assert _code(exc_info) == ActivationErrorCode.INVALID_TARGET

    def test_switcheroo_own_driver(self) -> None:
        """The player's own main or reserve driver is not a target, in any case."""
        with pytest.raises(ActivationReferenceError) as exc_info:
            ActivationResolver().activate(
                make_context(),
                driver_card_id="driver-switcheroo",
                targets=ActivationTargets(driver="fernando alonso"),
            )

        assert _code(exc_info) == ActivationErrorCode.INVALID_TARGET

    def test_switcheroo_without_grid(self) -> None:
        """With no grid given, any other driver is accepted."""
        context = make_context(eligible_drivers=None)

        activation = ActivationResolver().activate(
            context,
            driver_card_id="driver-switcheroo",
            targets=ActivationTargets(driver="Juan Manuel Fangio"),
        )

        assert activation.target_driver == "Juan Manuel Fangio"

    def test_switcheroo_with_empty_grid(self) -> None:
        """An unpublished entry list leaves no driver to target."""
        with pytest.raises(ActivationReferenceError) as exc_info:
            ActivationResolver().activate(
                make_context(eligible_drivers=frozenset()),
                driver_card_id="driver-switcheroo",
                targets=ActivationTargets(driver="Max Verstappen"),
            )

        assert _code(exc_info) == ActivationErrorCode.INVALID_TARGET


    def test_espionage_target(self) -> None:
        activation = ActivationResolver().activate(
            make_context(),
            team_card_id="team-espionage",
            targets=ActivationTargets(team="Ferrari"),
        )

        assert activation.target_team == "Ferrari"

    def test_espionage_own_team(self) -> None:
        with pytest.raises(ActivationReferenceError) as exc_info:
            ActivationResolver().activate(
                make_context(),
                team_card_id="team-espionage",
                targets=ActivationTargets(team="McLaren"),
            )

        assert _code(exc_info) == ActivationErrorCode.INVALID_TARGET

    def test_espionage_without_target(self) -> None:
        with pytest.raises(ActivationReferenceError) as exc_info:
            ActivationResolver().activate(make_context(), team_card_id="team-espionage")

        assert _code(exc_info) == ActivationErrorCode.MISSING_TARGET


class TestTransformations:
    """Tests for Mystery and Random draws."""

    def test_mystery_draw_recorded(self) -> None:
        picker = ScriptedPicker("driver-the-lift")

        activation = ActivationResolver(picker).activate(make_context(), driver_card_id="driver-mystery")

        assert activation.driver_card_id == "driver-mystery"
        assert activation.mystery_transformed_card_id == "driver-the-lift"

    def test_pool_excludes_transforms_used_and_reserved(self) -> None:
        """The pool is every active driver card still available, not just the deck."""
        catalog = get_default_catalog().with_active("driver-bottom5", False)
        context = make_context(
            catalog=catalog,
            used_card_ids=frozenset({"driver-double-points"}),
            reserved_card_ids=frozenset({"driver-teamwork"}),
        )
        picker = ScriptedPicker("driver-top5-boost")

        ActivationResolver(picker).activate(context, driver_card_id="driver-mystery")

        pool = picker.pools[0]
        assert "driver-mystery" not in pool
        assert "driver-double-points" not in pool
        assert "driver-teamwork" not in pool
        assert "driver-bottom5" not in pool
        assert "driver-top5-boost" in pool
        assert len(pool) == 8

    def test_random_team_draw(self) -> None:
        picker = ScriptedPicker("team-top10")

        activation = ActivationResolver(picker).activate(make_context(), team_card_id="team-mystery")

        assert activation.random_transformed_card_id == "team-top10"
        assert all(card_id.startswith("team-") for card_id in picker.pools[0])

    def test_each_activation_rerolls(self) -> None:
        picker = ScriptedPicker("driver-the-lift", "driver-plus-three")
        resolver = ActivationResolver(picker)

        first = resolver.activate(make_context(), driver_card_id="driver-mystery")
        second = resolver.activate(make_context(existing=first), driver_card_id="driver-mystery")

        assert first.mystery_transformed_card_id == "driver-the-lift"
        assert second.mystery_transformed_card_id == "driver-plus-three"
        assert len(picker.pools) == 2

    def test_seeded_draw_is_reproducible(self) -> None:
        first = ActivationResolver(random.Random(42)).activate(make_context(), team_card_id="team-mystery")
        second = ActivationResolver(random.Random(42)).activate(make_context(), team_card_id="team-mystery")

        assert first.random_transformed_card_id == second.random_transformed_card_id
        assert get_default_catalog().require(first.random_transformed_card_id).type == CardType.TEAM

    def test_empty_pool(self) -> None:
        catalog = get_default_catalog()
        used = frozenset(card.id for card in catalog.by_type(CardType.DRIVER) if not card.is_transform)

        with pytest.raises(ActivationReferenceError) as exc_info:
            ActivationResolver(ScriptedPicker()).activate(
                make_context(used_card_ids=used), driver_card_id="driver-mystery"
            )

        assert _code(exc_info) == ActivationErrorCode.INVALID_CARD


class TestClear:
    """Tests for clearing activations."""

    EXISTING = Activation(
        player_id="alice",
        league_id="league-1",
        race_id="2026-03",
        season=2026,
        driver_card_id="driver-mirror",
        team_card_id="team-sponsors",
        target_player="bob",
    )

    def test_clear_one_side_keeps_other(self) -> None:
        remaining = ActivationResolver().clear(make_context(existing=self.EXISTING), ActivationSide.DRIVER)

        assert remaining is not None
        assert remaining.driver_card_id is None
        assert remaining.target_player is None
        assert remaining.team_card_id == "team-sponsors"

    def test_clear_last_side_removes_activation(self) -> None:
        only_team = self.EXISTING.without(ActivationSide.DRIVER)

        assert ActivationResolver().clear(make_context(existing=only_team), ActivationSide.TEAM) is None

    def test_clear_everything(self) -> None:
        assert ActivationResolver().clear(make_context(existing=self.EXISTING)) is None

    def test_clear_nothing(self) -> None:
        assert ActivationResolver().clear(make_context(), ActivationSide.TEAM) is None

    def test_clear_after_lock(self) -> None:
        with pytest.raises(ActivationStateError) as exc_info:
            ActivationResolver().clear(make_context(existing=self.EXISTING, now=LOCK))

        assert _code(exc_info) == ActivationErrorCode.LOCK_PASSED


class TestCommit:
    """Tests for committing activations to the ledger."""

    ACTIVATION = Activation(
        player_id="alice",
        league_id="league-1",
        race_id="2026-03",
        season=2026,
        driver_card_id="driver-mystery",
        team_card_id="team-podium",
        mystery_transformed_card_id="driver-the-lift",
    )

    def test_commit_marks_chosen_cards(self) -> None:
        """The Mystery card itself is spent, not the card it became."""
        ledger = ActivationResolver().commit(self.ACTIVATION, UsedCardLedger(season=2026), LOCK, LOCK)

        assert ledger.card_ids == frozenset({"driver-mystery", "team-podium"})

    def test_commit_is_idempotent(self) -> None:
        resolver = ActivationResolver()
        once = resolver.commit(self.ACTIVATION, UsedCardLedger(season=2026), LOCK, LOCK)

        twice = resolver.commit(self.ACTIVATION, once, LOCK + timedelta(days=1), LOCK)

        assert twice == once

    def test_commit_before_lock(self) -> None:
        with pytest.raises(StateError) as exc_info:
            ActivationResolver().commit(
                self.ACTIVATION, UsedCardLedger(season=2026), LOCK - timedelta(minutes=1), LOCK
            )

        assert exc_info.value.kind == FailureKind.LOCK_NOT_PASSED

    def test_commit_to_other_season(self) -> None:
        with pytest.raises(ValueError, match="season"):
            ActivationResolver().commit(self.ACTIVATION, UsedCardLedger(season=2027), LOCK, LOCK)
