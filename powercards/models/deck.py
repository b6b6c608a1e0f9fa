from dataclasses import dataclass, field
from enum import Enum

from powercards.models.card import CardType


class DeckRule(str, Enum):
    """Deck rules, in the order they are evaluated."""

    UNKNOWN_CARD = "unknown_card"
    DUPLICATE_CARD = "duplicate_card"
    SLOT_SUM = "slot_sum"
    CARD_COUNT = "card_count"
    GOLD_COUNT = "gold_count"


@dataclass(frozen=True)
class Deck:
    """
    A player's season deck for one league.

    Replaced wholesale on every save; immutable once the season lock passes.

    Attributes:
        driver_card_ids: Selected driver cards, in selection order
        team_card_ids: Selected team cards, in selection order
    """

    driver_card_ids: tuple[str, ...] = ()
    team_card_ids: tuple[str, ...] = ()

    def __contains__(self, card_id: str) -> bool:
        return card_id in self.driver_card_ids or card_id in self.team_card_ids

    def card_ids(self, card_type: CardType) -> tuple[str, ...]:
        if card_type == CardType.DRIVER:
            return self.driver_card_ids
        return self.team_card_ids

    def contains(self, card_id: str, card_type: CardType) -> bool:
        """Check that a card is in the deck on the given side."""
        return card_id in self.card_ids(card_type)

    def is_empty(self) -> bool:
        return not self.driver_card_ids and not self.team_card_ids


@dataclass(frozen=True)
class DeckRuleViolation:
    """A single broken deck rule."""

    rule: DeckRule
    side: CardType
    message: str
    card_id: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass
class DeckValidationResult:
    """
    Outcome of validating a candidate deck.

    `deck` is set only when there are no violations; there is no partial
    success.
    """

    violations: list[DeckRuleViolation] = field(default_factory=list)
    deck: Deck | None = None

    @property
    def ok(self) -> bool:
        return not self.violations

    def messages(self) -> list[str]:
        return [v.message for v in self.violations]

    def rules_broken(self) -> set[DeckRule]:
        return {v.rule for v in self.violations}


@dataclass
class DeckSideSummary:
    """Slot and card usage on one side of a deck, with the limits."""

    slots_used: int
    slots_max: int
    cards_count: int
    cards_max: int
    gold_count: int
    gold_max: int


@dataclass
class DeckSummary:
    """Usage overview for the deck read endpoint."""

    driver: DeckSideSummary
    team: DeckSideSummary
