"""
Deck validation.

Checks a candidate deck against the five deck rules and reports every
violation at once. Validation is pure: it never touches storage.

Rules, in evaluation order:
1. Every ID resolves to an active catalog card of the matching type
2. No duplicate IDs within a side
3. Slot sum is exactly the side's budget (12 driver, 10 team)
4. Card count is at most the side's limit (8 driver, 6 team)
5. Gold card count is at most the side's limit (2 driver, 1 team)
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from powercards.config import (
    DRIVER_SLOT_BUDGET,
    MAX_DRIVER_CARDS,
    MAX_GOLD_DRIVER_CARDS,
    MAX_GOLD_TEAM_CARDS,
    MAX_TEAM_CARDS,
    TEAM_SLOT_BUDGET,
)
from powercards.models.card import Card, CardType, Tier
from powercards.models.deck import (
    Deck,
    DeckRule,
    DeckRuleViolation,
    DeckSideSummary,
    DeckSummary,
    DeckValidationResult,
)
from powercards.models.failure import FailureKind, StateError, ValidationError
from powercards.services.card_catalog import CardCatalog
from powercards.services.lock_schedule import is_locked


@dataclass(frozen=True)
class SideLimits:
    """Deck limits for one side."""

    slot_budget: int
    max_cards: int
    max_gold: int


SIDE_LIMITS: dict[CardType, SideLimits] = {
    CardType.DRIVER: SideLimits(DRIVER_SLOT_BUDGET, MAX_DRIVER_CARDS, MAX_GOLD_DRIVER_CARDS),
    CardType.TEAM: SideLimits(TEAM_SLOT_BUDGET, MAX_TEAM_CARDS, MAX_GOLD_TEAM_CARDS),
}


def validate_deck(
    driver_card_ids: Sequence[str],
    team_card_ids: Sequence[str],
    catalog: CardCatalog,
) -> DeckValidationResult:
    """
    Validate a candidate deck.

    Every rule is evaluated on both sides, so the result lists all
    violations rather than stopping at the first one.

    Args:
        driver_card_ids: Candidate driver card IDs, in selection order
        team_card_ids: Candidate team card IDs, in selection order
        catalog: Card catalog to resolve IDs against

    Returns:
        DeckValidationResult carrying the Deck when no rule is broken
    """
    violations: list[DeckRuleViolation] = []
    violations.extend(_validate_side(CardType.DRIVER, driver_card_ids, catalog))
    violations.extend(_validate_side(CardType.TEAM, team_card_ids, catalog))

    if violations:
        return DeckValidationResult(violations=violations)

    deck = Deck(driver_card_ids=tuple(driver_card_ids), team_card_ids=tuple(team_card_ids))
    return DeckValidationResult(violations=[], deck=deck)


def require_valid_deck(
    driver_card_ids: Sequence[str],
    team_card_ids: Sequence[str],
    catalog: CardCatalog,
) -> Deck:
    """
    Validate a candidate deck and return it.

    Raises:
        ValidationError: Listing every violated rule
    """
    result = validate_deck(driver_card_ids, team_card_ids, catalog)
    if result.deck is None:
        raise ValidationError(result.messages())
    return result.deck


def ensure_deck_editable(now: datetime, season_lock: datetime | None) -> None:
    """
    Reject deck edits once the season lock has passed.

    A season without a scheduled first qualifying session has no lock yet.

    Raises:
        StateError: If the lock has passed
    """
    if season_lock is not None and is_locked(now, season_lock):
        raise StateError(
            kind=FailureKind.LOCK_PASSED,
            message="Decks are locked for this season.",
            detail=f"Season lock passed at {season_lock.isoformat()}",
            suggestion="Your deck can be changed again next season.",
        )


def summarize_deck(deck: Deck, catalog: CardCatalog) -> DeckSummary:
    """Slot, card and gold usage per side, against the limits."""
    return DeckSummary(
        driver=_summarize_side(CardType.DRIVER, deck.driver_card_ids, catalog),
        team=_summarize_side(CardType.TEAM, deck.team_card_ids, catalog),
    )


def _validate_side(
    side: CardType,
    card_ids: Sequence[str],
    catalog: CardCatalog,
) -> list[DeckRuleViolation]:
    limits = SIDE_LIMITS[side]
    label = side.value.capitalize()
    violations: list[DeckRuleViolation] = []

    # Rule 1: resolvable, active, matching type
    resolved: list[Card] = []
    for card_id in card_ids:
        card = catalog.get(card_id)
        if card is None:
            violations.append(
                DeckRuleViolation(
                    DeckRule.UNKNOWN_CARD, side, f"Unknown card '{card_id}'", card_id
                )
            )
        elif not card.is_active:
            violations.append(
                DeckRuleViolation(
                    DeckRule.UNKNOWN_CARD, side, f"Card '{card.name}' is not available", card_id
                )
            )
        elif card.type != side:
            violations.append(
                DeckRuleViolation(
                    DeckRule.UNKNOWN_CARD,
                    side,
                    f"'{card.name}' is a {card.type.value} card, not a {side.value} card",
                    card_id,
                )
            )
        else:
            resolved.append(card)

    # Rule 2: no duplicates
    seen: set[str] = set()
    reported: set[str] = set()
    for card_id in card_ids:
        if card_id in seen and card_id not in reported:
            violations.append(
                DeckRuleViolation(
                    DeckRule.DUPLICATE_CARD,
                    side,
                    f"{label} card '{card_id}' is selected more than once",
                    card_id,
                )
            )
            reported.add(card_id)
        seen.add(card_id)

    # Rule 3: exact slot sum
    slots = sum(card.slot_cost for card in resolved)
    if slots != limits.slot_budget:
        violations.append(
            DeckRuleViolation(
                DeckRule.SLOT_SUM,
                side,
                f"{label} cards must use exactly {limits.slot_budget} slots (currently {slots})",
            )
        )

    # Rule 4: card count
    if len(card_ids) > limits.max_cards:
        violations.append(
            DeckRuleViolation(
                DeckRule.CARD_COUNT,
                side,
                f"Maximum {limits.max_cards} {side.value} cards allowed (currently {len(card_ids)})",
            )
        )

    # Rule 5: gold count
    gold = sum(1 for card in resolved if card.tier == Tier.GOLD)
    if gold > limits.max_gold:
        violations.append(
            DeckRuleViolation(
                DeckRule.GOLD_COUNT,
                side,
                f"Maximum {limits.max_gold} gold {side.value} card(s) allowed (currently {gold})",
            )
        )

    return violations


def _summarize_side(side: CardType, card_ids: Sequence[str], catalog: CardCatalog) -> DeckSideSummary:
    limits = SIDE_LIMITS[side]
    cards = [card for card in (catalog.get(card_id) for card_id in card_ids) if card is not None]
    return DeckSideSummary(
        slots_used=sum(card.slot_cost for card in cards),
        slots_max=limits.slot_budget,
        cards_count=len(card_ids),
        cards_max=limits.max_cards,
        gold_count=sum(1 for card in cards if card.tier == Tier.GOLD),
        gold_max=limits.max_gold,
    )
