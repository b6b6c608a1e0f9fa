"""
Card catalog service.

Holds the Power Card reference data. The catalog is read-only for the
duration of a season; only the admin-controlled `is_active` flag changes,
and it does so by building a new catalog.
"""

from collections.abc import Iterable, Iterator
from functools import lru_cache

from powercards.models.card import (
    Card,
    CardType,
    Condition,
    ConditionalBonus,
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
    TargetKind,
    TeammateSum,
    TeammateSwap,
    Tier,
    Undercut,
)
from powercards.models.failure import FailureKind, ReferentialError


class CardCatalog:
    """
    Immutable, indexed view over a list of card definitions.

    Lookup is by card ID. Iteration preserves the order the cards were
    given in.
    """

    def __init__(self, cards: Iterable[Card]):
        self._cards: tuple[Card, ...] = tuple(cards)
        self._by_id: dict[str, Card] = {}
        seen_names: set[tuple[str, CardType]] = set()

        for card in self._cards:
            if card.id in self._by_id:
                raise ValueError(f"Duplicate card id in catalog: {card.id}")
            key = (card.name.casefold(), card.type)
            if key in seen_names:
                raise ValueError(f"Duplicate {card.type.value} card name in catalog: {card.name}")
            seen_names.add(key)
            self._by_id[card.id] = card

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._by_id

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards)

    def get(self, card_id: str) -> Card | None:
        """Get a card by ID, or None if unknown."""
        return self._by_id.get(card_id)

    def require(self, card_id: str) -> Card:
        """
        Get a card by ID.

        Raises:
            ReferentialError: If the card is not in the catalog
        """
        card = self._by_id.get(card_id)
        if card is None:
            raise ReferentialError(
                kind=FailureKind.INVALID_CARD,
                message=f"Unknown card '{card_id}'",
            )
        return card

    def by_type(self, card_type: CardType, active_only: bool = True) -> list[Card]:
        """All cards of one type, optionally restricted to active cards."""
        return [
            card
            for card in self._cards
            if card.type == card_type and (card.is_active or not active_only)
        ]

    def with_active(self, card_id: str, is_active: bool) -> "CardCatalog":
        """Return a catalog with one card's active flag toggled."""
        self.require(card_id)
        return CardCatalog(
            card.with_active(is_active) if card.id == card_id else card for card in self._cards
        )


def build_catalog(cards: Iterable[Card]) -> CardCatalog:
    """Build a catalog, rejecting duplicate IDs and duplicate names per type."""
    return CardCatalog(cards)


# =============================================================================
# STANDARD CATALOG
# =============================================================================

DRIVER_CARDS: tuple[Card, ...] = (
    Card(
        id="driver-double-points",
        name="2× Points",
        type=CardType.DRIVER,
        tier=Tier.GOLD,
        slot_cost=3,
        effect=Multiply(factor=2, scope=EffectScope.DRIVER),
        description="Double your Main Driver's race points.",
    ),
    Card(
        id="driver-mirror",
        name="Mirror",
        type=CardType.DRIVER,
        tier=Tier.GOLD,
        slot_cost=3,
        effect=Mirror(),
        requires_target=TargetKind.PLAYER,
        description="Copy another player's driver score for the weekend.",
    ),
    Card(
        id="driver-switcheroo",
        name="Switcheroo",
        type=CardType.DRIVER,
        tier=Tier.GOLD,
        slot_cost=3,
        effect=Switcheroo(),
        requires_target=TargetKind.DRIVER,
        description="Your Main Driver scores the race points of any driver you choose.",
    ),
    Card(
        id="driver-teamwork",
        name="Teamwork",
        type=CardType.DRIVER,
        tier=Tier.GOLD,
        slot_cost=3,
        effect=TeammateSum(),
        description="Score Main Driver points + teammate points.",
    ),
    Card(
        id="driver-team-orders",
        name="Team Orders",
        type=CardType.DRIVER,
        tier=Tier.SILVER,
        slot_cost=2,
        effect=TeammateSwap(),
        description="Score the teammate's race points instead of your Main Driver.",
    ),
    Card(
        id="driver-the-lift",
        name="The Lift",
        type=CardType.DRIVER,
        tier=Tier.SILVER,
        slot_cost=2,
        effect=RankShift(positions=1),
        description="Main Driver is classified one position higher.",
    ),
    Card(
        id="driver-mystery",
        name="Mystery Card",
        type=CardType.DRIVER,
        tier=Tier.SILVER,
        slot_cost=2,
        effect=Mystery(),
        description="Becomes a random Driver card when activated.",
    ),
    Card(
        id="driver-top5-boost",
        name="Top 5 Boost",
        type=CardType.DRIVER,
        tier=Tier.SILVER,
        slot_cost=2,
        effect=ConditionalBonus(condition=Condition.TOP5, bonus=7),
        description="If Main Driver finishes Top 5 → +7 points.",
    ),
    Card(
        id="driver-top10-boost",
        name="Top 10 Boost",
        type=CardType.DRIVER,
        tier=Tier.BRONZE,
        slot_cost=1,
        effect=ConditionalBonus(condition=Condition.TOP10, bonus=3),
        description="If Main Driver finishes Top 10 → +3 points.",
    ),
    Card(
        id="driver-plus-three",
        name="+3 Points",
        type=CardType.DRIVER,
        tier=Tier.BRONZE,
        slot_cost=1,
        effect=FlatBonus(value=3, scope=EffectScope.DRIVER),
        description="Gain a flat +3 points.",
    ),
    Card(
        id="driver-competitiveness",
        name="Competitiveness",
        type=CardType.DRIVER,
        tier=Tier.BRONZE,
        slot_cost=1,
        effect=ConditionalBonus(condition=Condition.AHEAD_OF_TEAMMATE, bonus=2),
        description="If Main Driver finishes ahead of teammate → +2 points.",
    ),
    Card(
        id="driver-bottom5",
        name="Bottom 5",
        type=CardType.DRIVER,
        tier=Tier.BRONZE,
        slot_cost=1,
        effect=ConditionalBonus(condition=Condition.BOTTOM5, bonus=2),
        description="If Main Driver finishes bottom 5 → +2 points.",
    ),
)

TEAM_CARDS: tuple[Card, ...] = (
    Card(
        id="team-espionage",
        name="Espionage",
        type=CardType.TEAM,
        tier=Tier.GOLD,
        slot_cost=4,
        effect=Espionage(),
        requires_target=TargetKind.TEAM,
        description="Copy another team's total weekend points.",
    ),
    Card(
        id="team-podium",
        name="Podium",
        type=CardType.TEAM,
        tier=Tier.GOLD,
        slot_cost=4,
        effect=Podium(points_per_podium=8, max_points=16),
        description="Gain +8 points for each podium car (max +16).",
    ),
    Card(
        id="team-top5",
        name="Top 5",
        type=CardType.TEAM,
        tier=Tier.GOLD,
        slot_cost=4,
        effect=ConditionalBonus(condition=Condition.BOTH_TOP5, bonus=10),
        description="If both cars finish Top 5 → +10 points.",
    ),
    Card(
        id="team-undercut",
        name="Undercut",
        type=CardType.TEAM,
        tier=Tier.SILVER,
        slot_cost=2,
        effect=Undercut(),
        description="Second car is reclassified one position behind the better-placed teammate.",
    ),
    Card(
        id="team-top10",
        name="Top 10",
        type=CardType.TEAM,
        tier=Tier.SILVER,
        slot_cost=2,
        effect=ConditionalBonus(condition=Condition.BOTH_TOP10, bonus=5),
        description="If both cars finish Top 10 → +5 points.",
    ),
    Card(
        id="team-mystery",
        name="Mystery Card",
        type=CardType.TEAM,
        tier=Tier.SILVER,
        slot_cost=2,
        effect=RandomTeamCard(),
        description="Becomes a random Team card when activated.",
    ),
    Card(
        id="team-sponsors",
        name="Sponsors",
        type=CardType.TEAM,
        tier=Tier.BRONZE,
        slot_cost=1,
        effect=Sponsors(zero_bonus=5, one_bonus=1),
        description="If team scores 0 → +5 points; if team scores 1 → +1 point.",
    ),
    Card(
        id="team-bottom5",
        name="Bottom 5",
        type=CardType.TEAM,
        tier=Tier.BRONZE,
        slot_cost=1,
        effect=ConditionalBonus(condition=Condition.BOTH_BOTTOM5, bonus=3),
        description="If both cars finish in the bottom 5 → +3 points.",
    ),
    Card(
        id="team-last-place",
        name="Last Place Bonus",
        type=CardType.TEAM,
        tier=Tier.BRONZE,
        slot_cost=1,
        effect=ConditionalBonus(condition=Condition.ONE_LAST_PLACE, bonus=3),
        description="If one classified car finishes last → +3 points.",
    ),
)

DEFAULT_CARDS: tuple[Card, ...] = DRIVER_CARDS + TEAM_CARDS


@lru_cache(maxsize=1)
def get_default_catalog() -> CardCatalog:
    """Get the cached standard catalog."""
    return CardCatalog(DEFAULT_CARDS)
