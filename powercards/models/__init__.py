from powercards.models.activation import (
    Activation,
    ActivationSide,
    ActivationTargets,
    UsedCardLedger,
)
from powercards.models.card import (
    Card,
    CardType,
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
    TargetKind,
    TeammateSum,
    TeammateSwap,
    Tier,
    Undercut,
    effect_from_dict,
    effect_kind,
    effect_to_dict,
    is_transform,
)
from powercards.models.deck import (
    Deck,
    DeckRule,
    DeckRuleViolation,
    DeckSideSummary,
    DeckSummary,
    DeckValidationResult,
)
from powercards.models.failure import (
    STANDARD_MESSAGES,
    STANDARD_SUGGESTIONS,
    ApiResponse,
    DataIntegrityError,
    FailureDetail,
    FailureKind,
    KnownError,
    OutcomeType,
    ReferentialError,
    StateError,
    ValidationError,
    create_unknown_failure,
    finalize_response,
    is_finalized,
)
from powercards.models.race import (
    DriverResult,
    DriverStatus,
    RaceEntry,
    RaceResult,
    RaceSelection,
    RaceWeekend,
    TeamResult,
)
from powercards.models.scoring import (
    CardEffectOutcome,
    PointsBreakdown,
    RaceScoringReport,
    ScoredSelection,
)
from powercards.models.statistics import HeadToHeadRecord, LeagueStatistics, RecoveryStats

__all__ = [
    "Activation",
    "ActivationSide",
    "ActivationTargets",
    "ApiResponse",
    "Card",
    "CardEffectOutcome",
    "CardType",
    "Condition",
    "ConditionalBonus",
    "DataIntegrityError",
    "Deck",
    "DeckRule",
    "DeckRuleViolation",
    "DeckSideSummary",
    "DeckSummary",
    "DeckValidationResult",
    "DriverResult",
    "DriverStatus",
    "Effect",
    "EffectScope",
    "Espionage",
    "FailureDetail",
    "FailureKind",
    "FlatBonus",
    "HeadToHeadRecord",
    "KnownError",
    "LeagueStatistics",
    "Mirror",
    "Multiply",
    "Mystery",
    "OutcomeType",
    "Podium",
    "PointsBreakdown",
    "RaceEntry",
    "RaceResult",
    "RaceScoringReport",
    "RaceSelection",
    "RaceWeekend",
    "RandomTeamCard",
    "RankShift",
    "RecoveryStats",
    "ReferentialError",
    "STANDARD_MESSAGES",
    "STANDARD_SUGGESTIONS",
    "ScoredSelection",
    "Sponsors",
    "StateError",
    "Switcheroo",
    "TargetKind",
    "TeamResult",
    "TeammateSum",
    "TeammateSwap",
    "Tier",
    "Undercut",
    "UsedCardLedger",
    "ValidationError",
    "create_unknown_failure",
    "effect_from_dict",
    "effect_kind",
    "effect_to_dict",
    "finalize_response",
    "is_finalized",
    "is_transform",
]
