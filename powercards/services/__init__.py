"""
PowerCards services.

Deck validation, lock deadlines and card activation.
"""

from powercards.services.activation import (
    ActivationContext,
    ActivationError,
    ActivationErrorCode,
    ActivationReferenceError,
    ActivationResolver,
    ActivationStateError,
    Picker,
)
from powercards.services.card_catalog import (
    DEFAULT_CARDS,
    DRIVER_CARDS,
    TEAM_CARDS,
    CardCatalog,
    build_catalog,
    get_default_catalog,
)
from powercards.services.deck_validator import (
    ensure_deck_editable,
    require_valid_deck,
    summarize_deck,
    validate_deck,
)
from powercards.services.lock_schedule import is_locked, race_lock_time, season_lock_time

__all__ = [
    # Catalog
    "CardCatalog",
    "DEFAULT_CARDS",
    "DRIVER_CARDS",
    "TEAM_CARDS",
    "build_catalog",
    "get_default_catalog",
    # Deck validation
    "validate_deck",
    "require_valid_deck",
    "ensure_deck_editable",
    "summarize_deck",
    # Locks
    "race_lock_time",
    "season_lock_time",
    "is_locked",
    # Activation
    "ActivationContext",
    "ActivationError",
    "ActivationErrorCode",
    "ActivationReferenceError",
    "ActivationResolver",
    "ActivationStateError",
    "Picker",
]
