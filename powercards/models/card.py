"""
Power Card definitions.

A Card is immutable reference data. Its effect is one variant of a closed
tagged union; the scoring engine matches every variant explicitly, so a new
effect kind must be handled there before it can be put in a catalog.
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any


class CardType(str, Enum):
    """Which side of a deck a card belongs to."""

    DRIVER = "driver"
    TEAM = "team"


class Tier(str, Enum):
    """Card rarity class."""

    GOLD = "gold"
    SILVER = "silver"
    BRONZE = "bronze"


class TargetKind(str, Enum):
    """What an activation must name for the card to work."""

    NONE = "none"
    PLAYER = "player"
    DRIVER = "driver"
    TEAM = "team"


class EffectScope(str, Enum):
    """
    Which part of the running point total an effect reads and writes.

    DRIVER is the active driver (main, or reserve after a main-driver DNS),
    TEAM is the team score, WEEKEND is the whole running total.
    """

    DRIVER = "driver"
    TEAM = "team"
    WEEKEND = "weekend"


class Condition(str, Enum):
    """Finishing conditions checked by ConditionalBonus."""

    # Driver side
    TOP5 = "top5"
    TOP10 = "top10"
    AHEAD_OF_TEAMMATE = "ahead_of_teammate"
    BOTTOM5 = "bottom5"

    # Team side
    BOTH_TOP5 = "both_top5"
    BOTH_TOP10 = "both_top10"
    BOTH_OUTSIDE_POINTS = "both_outside_points"
    BOTH_BOTTOM5 = "both_bottom5"
    ONE_LAST_PLACE = "one_last_place"


# =============================================================================
# EFFECTS
# =============================================================================


@dataclass(frozen=True, slots=True)
class Multiply:
    """Scale the current points by a factor."""

    factor: float = 2
    scope: EffectScope = EffectScope.DRIVER


@dataclass(frozen=True, slots=True)
class FlatBonus:
    """Add a flat value to the current points."""

    value: float = 3
    scope: EffectScope = EffectScope.DRIVER


@dataclass(frozen=True, slots=True)
class RankShift:
    """Rescore the active driver as if classified `positions` places better (negative: worse)."""

    positions: int = 1


@dataclass(frozen=True, slots=True)
class Mirror:
    """Copy a targeted opponent's driver points for the same race."""


@dataclass(frozen=True, slots=True)
class Switcheroo:
    """The active driver scores the points of a targeted driver."""


@dataclass(frozen=True, slots=True)
class TeammateSwap:
    """The active driver scores their teammate's points instead."""


@dataclass(frozen=True, slots=True)
class TeammateSum:
    """The active driver scores their own points plus their teammate's."""


@dataclass(frozen=True, slots=True)
class ConditionalBonus:
    """Add `bonus` when the finishing condition holds."""

    condition: Condition
    bonus: float


@dataclass(frozen=True, slots=True)
class Sponsors:
    """Consolation bonus for a team that scored zero or one point."""

    zero_bonus: float = 5
    one_bonus: float = 1


@dataclass(frozen=True, slots=True)
class Podium:
    """Bonus per team car on the podium, capped."""

    points_per_podium: float = 8
    max_points: float = 16


@dataclass(frozen=True, slots=True)
class Espionage:
    """The team scores a targeted team's points instead."""


@dataclass(frozen=True, slots=True)
class Undercut:
    """The worse-placed team car is reclassified one place behind its teammate."""


@dataclass(frozen=True, slots=True)
class Mystery:
    """Becomes a random driver card when activated."""


@dataclass(frozen=True, slots=True)
class RandomTeamCard:
    """Becomes a random team card when activated."""


Effect = (
    Multiply
    | FlatBonus
    | RankShift
    | Mirror
    | Switcheroo
    | TeammateSwap
    | TeammateSum
    | ConditionalBonus
    | Sponsors
    | Podium
    | Espionage
    | Undercut
    | Mystery
    | RandomTeamCard
)


def is_transform(effect: Effect) -> bool:
    """True for effects that are replaced by a random draw at activation."""
    return isinstance(effect, Mystery | RandomTeamCard)


# =============================================================================
# CARD
# =============================================================================


@dataclass(frozen=True, slots=True)
class Card:
    """
    A Power Card definition.

    Attributes:
        id: Stable catalog identifier
        name: Display name (unique per card type)
        type: Driver or team card
        tier: Gold, silver or bronze
        slot_cost: Deck slots the card consumes
        effect: What the card does when scored
        requires_target: What the player must name when activating
        description: Player-facing rules text
        is_active: Inactive cards cannot enter decks or be drawn
    """

    id: str
    name: str
    type: CardType
    tier: Tier
    slot_cost: int
    effect: Effect
    requires_target: TargetKind = TargetKind.NONE
    description: str = ""
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.slot_cost < 1:
            raise ValueError(f"Card '{self.id}' slot cost must be positive, got {self.slot_cost}")

    def with_active(self, is_active: bool) -> "Card":
        """Return a copy with the admin-controlled active flag changed."""
        return replace(self, is_active=is_active)

    @property
    def is_transform(self) -> bool:
        return is_transform(self.effect)


# =============================================================================
# SERIALIZATION
# =============================================================================

EFFECT_KINDS: dict[str, type] = {
    "multiply": Multiply,
    "flat_bonus": FlatBonus,
    "rank_shift": RankShift,
    "mirror": Mirror,
    "switcheroo": Switcheroo,
    "teammate_swap": TeammateSwap,
    "teammate_sum": TeammateSum,
    "conditional_bonus": ConditionalBonus,
    "sponsors": Sponsors,
    "podium": Podium,
    "espionage": Espionage,
    "undercut": Undercut,
    "mystery": Mystery,
    "random": RandomTeamCard,
}

_KIND_BY_TYPE: dict[type, str] = {cls: kind for kind, cls in EFFECT_KINDS.items()}


def effect_kind(effect: Effect) -> str:
    """Stable name of an effect variant."""
    return _KIND_BY_TYPE[type(effect)]


def effect_to_dict(effect: Effect) -> dict[str, Any]:
    """Serialize an effect as {"kind": ..., **parameters}."""
    data: dict[str, Any] = {"kind": effect_kind(effect)}
    for item in fields(effect):
        value = getattr(effect, item.name)
        data[item.name] = value.value if isinstance(value, Enum) else value
    return data


def effect_from_dict(data: dict[str, Any]) -> Effect:
    """
    Rebuild an effect from `effect_to_dict` output.

    Raises:
        ValueError: If the kind is unknown
    """
    params = dict(data)
    kind = params.pop("kind", None)
    cls = EFFECT_KINDS.get(kind) if isinstance(kind, str) else None
    if cls is None:
        raise ValueError(f"Unknown effect kind: {kind!r}")
    if "scope" in params:
        params["scope"] = EffectScope(params["scope"])
    if "condition" in params:
        params["condition"] = Condition(params["condition"])
    effect: Effect = cls(**params)
    return effect
