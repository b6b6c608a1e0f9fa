from dataclasses import dataclass, field, replace
from enum import Enum

from powercards.models.card import CardType


class ActivationSide(str, Enum):
    """The two independent halves of an activation."""

    DRIVER = "driver"
    TEAM = "team"

    @property
    def card_type(self) -> CardType:
        return CardType.DRIVER if self is ActivationSide.DRIVER else CardType.TEAM


@dataclass(frozen=True)
class ActivationTargets:
    """Targets named by the player for cards that require one."""

    player: str | None = None
    driver: str | None = None
    team: str | None = None


@dataclass(frozen=True)
class Activation:
    """
    A player's committed card choice for one race.

    Attributes:
        player_id: Activating player
        league_id: League the activation belongs to
        race_id: Race the cards are played on
        season: Season of the league
        driver_card_id: Chosen driver card, if any
        team_card_id: Chosen team card, if any
        target_player: Opponent named for a Mirror card
        target_driver: Driver named for a Switcheroo card
        target_team: Team named for an Espionage card
        mystery_transformed_card_id: Driver card a Mystery card became
        random_transformed_card_id: Team card a Random card became
    """

    player_id: str
    league_id: str
    race_id: str
    season: int
    driver_card_id: str | None = None
    team_card_id: str | None = None
    target_player: str | None = None
    target_driver: str | None = None
    target_team: str | None = None
    mystery_transformed_card_id: str | None = None
    random_transformed_card_id: str | None = None

    def card_ids(self) -> tuple[str, ...]:
        """Chosen card IDs, driver first."""
        return tuple(c for c in (self.driver_card_id, self.team_card_id) if c is not None)

    def is_empty(self) -> bool:
        return self.driver_card_id is None and self.team_card_id is None

    def without(self, side: ActivationSide) -> "Activation":
        """Return a copy with one side (and its target/transformation) cleared."""
        if side is ActivationSide.DRIVER:
            return replace(
                self,
                driver_card_id=None,
                target_player=None,
                target_driver=None,
                mystery_transformed_card_id=None,
            )
        return replace(
            self,
            team_card_id=None,
            target_team=None,
            random_transformed_card_id=None,
        )

    def effective_card_id(self, side: ActivationSide) -> str | None:
        """The card whose effect is scored: the transformation if there is one."""
        if side is ActivationSide.DRIVER:
            return self.mystery_transformed_card_id or self.driver_card_id
        return self.random_transformed_card_id or self.team_card_id


@dataclass(frozen=True)
class UsedCardLedger:
    """
    Cards a player has already spent in a league season.

    Marking is idempotent: a card marked twice stays marked once.
    """

    season: int
    card_ids: frozenset[str] = field(default_factory=frozenset)

    def __contains__(self, card_id: str) -> bool:
        return card_id in self.card_ids

    def __len__(self) -> int:
        return len(self.card_ids)

    def mark(self, *card_ids: str) -> "UsedCardLedger":
        """Return a ledger with the given cards marked used."""
        return replace(self, card_ids=self.card_ids | frozenset(card_ids))
