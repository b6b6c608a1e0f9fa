"""
Card activation.

Turns a player's per-race card choice into an Activation. This is the only
place the engine draws randomly: Mystery (driver) and Random (team) cards
are replaced by a card drawn from the player's still-available pool.

All time- and season-dependent state arrives in an ActivationContext, so
any point of the season timeline can be simulated.
"""

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Protocol, TypeVar

from powercards.config import settings
from powercards.models.activation import (
    Activation,
    ActivationSide,
    ActivationTargets,
    UsedCardLedger,
)
from powercards.models.card import Card, CardType, TargetKind
from powercards.models.deck import Deck
from powercards.models.failure import (
    FailureKind,
    KnownError,
    ReferentialError,
    StateError,
)
from powercards.models.race import RaceSelection, RaceWeekend
from powercards.services.card_catalog import CardCatalog
from powercards.services.lock_schedule import is_locked, race_lock_time

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Picker(Protocol):
    """Source of uniform random choice. `random.Random` satisfies it."""

    def choice(self, seq: Sequence[T]) -> T: ...


# =============================================================================
# ERRORS
# =============================================================================


class ActivationErrorCode(str, Enum):
    """Why an activation was refused."""

    INVALID_CARD = "invalid_card"
    CARD_ALREADY_USED = "card_already_used"
    SPRINT_WEEKEND_FORBIDDEN = "sprint_weekend_forbidden"
    SEASON_NOT_ELIGIBLE = "season_not_eligible"
    LOCK_PASSED = "lock_passed"
    MISSING_TARGET = "missing_target"
    INVALID_TARGET = "invalid_target"


class ActivationError(KnownError):
    """Base class for refused activations. `code` says which rule refused it."""

    def __init__(
        self,
        code: ActivationErrorCode,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.code = code
        KnownError.__init__(
            self,
            kind=FailureKind(code.value),
            message=message,
            detail=detail,
            suggestion=suggestion,
            status_code=status_code,
        )


class ActivationStateError(ActivationError, StateError):
    """The season timeline or ledger forbids the activation."""

    def __init__(self, code: ActivationErrorCode, message: str, detail: str | None = None):
        ActivationError.__init__(
            self,
            code,
            message,
            detail=detail,
            suggestion="Choose different cards or wait for the next eligible race.",
            status_code=409,
        )


class ActivationReferenceError(ActivationError, ReferentialError):
    """A chosen card or target does not resolve to something playable."""

    def __init__(self, code: ActivationErrorCode, message: str, detail: str | None = None):
        ActivationError.__init__(
            self,
            code,
            message,
            detail=detail,
            suggestion="Refresh and try again; your data may be out of date.",
            status_code=404 if code == ActivationErrorCode.INVALID_CARD else 400,
        )


# =============================================================================
# CONTEXT
# =============================================================================


@dataclass
class ActivationContext:
    """
    Everything an activation decision depends on.

    Attributes:
        player_id: Activating player
        league_id: League the activation belongs to
        league_season: Season the league plays
        race: Race weekend the cards are played on
        now: Current time (UTC)
        deck: The player's season deck
        catalog: Card catalog
        used_card_ids: Season ledger snapshot for the player
        reserved_card_ids: Cards held by the player's uncommitted activations for other races
        league_members: Players in the league (Mirror targets)
        player_selection: The player's driver/team picks for this race, if made
        eligible_drivers: Drivers entered this race (None: not restricted)
        eligible_teams: Teams entered this race (None: not restricted)
        existing: The player's current activation for this race, if any
        lock_lead: Lock lead time (defaults to the configured lead)
    """

    player_id: str
    league_id: str
    league_season: int
    race: RaceWeekend
    now: datetime
    deck: Deck
    catalog: CardCatalog
    used_card_ids: frozenset[str] = field(default_factory=frozenset)
    reserved_card_ids: frozenset[str] = field(default_factory=frozenset)
    league_members: frozenset[str] = field(default_factory=frozenset)
    player_selection: RaceSelection | None = None
    eligible_drivers: frozenset[str] | None = None
    eligible_teams: frozenset[str] | None = None
    existing: Activation | None = None
    lock_lead: timedelta | None = None

    @property
    def lock_time(self) -> datetime:
        return race_lock_time(self.race, self.lock_lead)

    def is_unavailable(self, card_id: str) -> bool:
        return card_id in self.used_card_ids or card_id in self.reserved_card_ids


# =============================================================================
# RESOLVER
# =============================================================================


class ActivationResolver:
    """
    Creates, clears and commits activations.

    Args:
        picker: Random choice source; pass a seeded or scripted picker in tests
    """

    def __init__(self, picker: Picker | None = None):
        self.picker: Picker = picker if picker is not None else random.Random()

    def activate(
        self,
        context: ActivationContext,
        driver_card_id: str | None = None,
        team_card_id: str | None = None,
        targets: ActivationTargets | None = None,
    ) -> Activation:
        """
        Validate a card choice and resolve transformations.

        Calling this again before the lock replaces the previous activation
        and re-rolls any Mystery/Random draw.

        Raises:
            ActivationStateError: Sprint weekend, ineligible season, lock passed, card used
            ActivationReferenceError: Card not in deck, missing or invalid target
        """
        targets = targets or ActivationTargets()

        self._check_timeline(context)

        if driver_card_id is None and team_card_id is None:
            raise ActivationReferenceError(
                ActivationErrorCode.INVALID_CARD,
                "Choose at least one card to activate.",
            )

        driver_card = self._resolve_card(context, driver_card_id, CardType.DRIVER)
        team_card = self._resolve_card(context, team_card_id, CardType.TEAM)

        for card in (driver_card, team_card):
            if card is not None and context.is_unavailable(card.id):
                raise ActivationStateError(
                    ActivationErrorCode.CARD_ALREADY_USED,
                    f"'{card.name}' has already been used this season.",
                    detail=f"card_id={card.id}",
                )

        target_player = target_driver = target_team = None
        if driver_card is not None:
            target_player = self._check_player_target(context, driver_card, targets.player)
            target_driver = self._check_driver_target(context, driver_card, targets.driver)
        if team_card is not None:
            target_team = self._check_team_target(context, team_card, targets.team)

        mystery_id = None
        if driver_card is not None and driver_card.is_transform:
            mystery_id = self._draw(context, driver_card).id
        random_id = None
        if team_card is not None and team_card.is_transform:
            random_id = self._draw(context, team_card).id

        return Activation(
            player_id=context.player_id,
            league_id=context.league_id,
            race_id=context.race.race_id,
            season=context.league_season,
            driver_card_id=driver_card.id if driver_card else None,
            team_card_id=team_card.id if team_card else None,
            target_player=target_player,
            target_driver=target_driver,
            target_team=target_team,
            mystery_transformed_card_id=mystery_id,
            random_transformed_card_id=random_id,
        )

    def clear(
        self,
        context: ActivationContext,
        side: ActivationSide | None = None,
    ) -> Activation | None:
        """
        Clear one side of the current activation, or all of it.

        Returns:
            The remaining activation, or None when nothing is left

        Raises:
            ActivationStateError: If the race lock has passed
        """
        if is_locked(context.now, context.lock_time):
            raise ActivationStateError(
                ActivationErrorCode.LOCK_PASSED,
                "Card choices for this race are locked.",
                detail=f"Race lock passed at {context.lock_time.isoformat()}",
            )

        existing = context.existing
        if existing is None or side is None:
            return None

        remaining = existing.without(side)
        if remaining.is_empty():
            return None
        return remaining

    def commit(
        self,
        activation: Activation,
        ledger: UsedCardLedger,
        now: datetime,
        lock: datetime,
    ) -> UsedCardLedger:
        """
        Mark an activation's chosen cards used once its race has locked.

        Committing the same activation again leaves the ledger unchanged.

        Raises:
            StateError: If the race lock has not passed yet
        """
        if not is_locked(now, lock):
            raise StateError(
                kind=FailureKind.LOCK_NOT_PASSED,
                message="Activations can only be committed after the race lock.",
                detail=f"Race lock at {lock.isoformat()}",
            )
        if ledger.season != activation.season:
            raise ValueError(
                f"Ledger season {ledger.season} does not match activation season {activation.season}"
            )
        return ledger.mark(*activation.card_ids())

    # -------------------------------------------------------------------------

    def _check_timeline(self, context: ActivationContext) -> None:
        if context.race.is_sprint:
            raise ActivationStateError(
                ActivationErrorCode.SPRINT_WEEKEND_FORBIDDEN,
                "Power Cards cannot be played on sprint weekends.",
            )
        if context.league_season < settings.first_card_season:
            raise ActivationStateError(
                ActivationErrorCode.SEASON_NOT_ELIGIBLE,
                f"Power Cards are available from the {settings.first_card_season} season.",
            )
        if is_locked(context.now, context.lock_time):
            raise ActivationStateError(
                ActivationErrorCode.LOCK_PASSED,
                "Card choices for this race are locked.",
                detail=f"Race lock passed at {context.lock_time.isoformat()}",
            )

    def _resolve_card(
        self,
        context: ActivationContext,
        card_id: str | None,
        card_type: CardType,
    ) -> Card | None:
        if card_id is None:
            return None
        card = context.catalog.get(card_id)
        if card is None or card.type != card_type or not context.deck.contains(card_id, card_type):
            raise ActivationReferenceError(
                ActivationErrorCode.INVALID_CARD,
                f"'{card_id}' is not a {card_type.value} card in your deck.",
            )
        if not card.is_active:
            raise ActivationReferenceError(
                ActivationErrorCode.INVALID_CARD,
                f"'{card.name}' is no longer available.",
            )
        return card

    def _check_player_target(
        self, context: ActivationContext, card: Card, target: str | None
    ) -> str | None:
        if card.requires_target != TargetKind.PLAYER:
            return None
        if not target:
            raise ActivationReferenceError(
                ActivationErrorCode.MISSING_TARGET,
                f"'{card.name}' needs a target player.",
            )
        if target == context.player_id or target not in context.league_members:
            raise ActivationReferenceError(
                ActivationErrorCode.INVALID_TARGET,
                "Target player must be another member of this league.",
                detail=f"target_player={target}",
            )
        return target

    def _check_driver_target(
        self, context: ActivationContext, card: Card, target: str | None
    ) -> str | None:
        if card.requires_target != TargetKind.DRIVER:
            return None
        if not target:
            raise ActivationReferenceError(
                ActivationErrorCode.MISSING_TARGET,
                f"'{card.name}' needs a target driver.",
            )
        wanted = target.strip().casefold()
        if context.eligible_drivers is not None and wanted not in _folded(context.eligible_drivers):
            raise ActivationReferenceError(
                ActivationErrorCode.INVALID_TARGET,
                f"{target} is not entered this weekend.",
                detail=f"target_driver={target}",
            )
        selection = context.player_selection
        if selection is not None and wanted in _folded(
            (selection.main_driver, selection.reserve_driver)
        ):
            raise ActivationReferenceError(
                ActivationErrorCode.INVALID_TARGET,
                f"{target} is already one of your drivers this race.",
                detail=f"target_driver={target}",
            )
        return target

    def _check_team_target(
        self, context: ActivationContext, card: Card, target: str | None
    ) -> str | None:
        if card.requires_target != TargetKind.TEAM:
            return None
        if not target:
            raise ActivationReferenceError(
                ActivationErrorCode.MISSING_TARGET,
                f"'{card.name}' needs a target team.",
            )
        wanted = target.strip().casefold()
        if context.eligible_teams is not None and wanted not in _folded(context.eligible_teams):
            raise ActivationReferenceError(
                ActivationErrorCode.INVALID_TARGET,
                f"{target} is not entered this weekend.",
                detail=f"target_team={target}",
            )
        selection = context.player_selection
        if selection is not None and wanted == selection.team.strip().casefold():
            raise ActivationReferenceError(
                ActivationErrorCode.INVALID_TARGET,
                f"{target} is already your team this race.",
                detail=f"target_team={target}",
            )
        return target

    def _draw(self, context: ActivationContext, card: Card) -> Card:
        """Draw the card a Mystery/Random card becomes."""
        pool = [
            candidate
            for candidate in context.catalog.by_type(card.type)
            if not candidate.is_transform and not context.is_unavailable(candidate.id)
        ]
        if not pool:
            raise ActivationReferenceError(
                ActivationErrorCode.INVALID_CARD,
                f"No {card.type.value} cards are left for '{card.name}' to become.",
            )
        drawn = self.picker.choice(pool)
        logger.info(
            "%s for player %s in race %s became %s (pool of %d)",
            card.id,
            context.player_id,
            context.race.race_id,
            drawn.id,
            len(pool),
        )
        return drawn


def _folded(names) -> set[str]:
    return {name.strip().casefold() for name in names}
