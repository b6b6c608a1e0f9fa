from powercards.db.database import get_session, init_db, session_scope
from powercards.db.operations import (
    activation_to_model,
    add_league_member,
    card_to_model,
    create_league,
    delete_activation,
    delete_race_scores,
    get_activation,
    get_card,
    get_deck,
    get_league,
    get_league_members,
    get_race,
    get_race_activations,
    get_race_entries,
    get_race_result,
    get_race_selection,
    get_race_selections,
    get_reserved_card_ids,
    get_scored_selections,
    get_season_races,
    get_used_ledger,
    load_catalog,
    mark_cards_used,
    race_result_to_model,
    race_to_model,
    replace_deck,
    save_activation,
    save_scored_selection,
    scored_selection_to_model,
    selection_to_model,
    set_card_active,
    sync_cards,
    upsert_race,
    upsert_race_result,
    upsert_race_selection,
)

__all__ = [
    "activation_to_model",
    "add_league_member",
    "card_to_model",
    "create_league",
    "delete_activation",
    "delete_race_scores",
    "get_activation",
    "get_card",
    "get_deck",
    "get_league",
    "get_league_members",
    "get_race",
    "get_race_activations",
    "get_race_entries",
    "get_race_result",
    "get_race_selection",
    "get_race_selections",
    "get_reserved_card_ids",
    "get_scored_selections",
    "get_season_races",
    "get_session",
    "get_used_ledger",
    "init_db",
    "load_catalog",
    "mark_cards_used",
    "race_result_to_model",
    "race_to_model",
    "replace_deck",
    "save_activation",
    "save_scored_selection",
    "scored_selection_to_model",
    "selection_to_model",
    "session_scope",
    "set_card_active",
    "sync_cards",
    "upsert_race",
    "upsert_race_result",
    "upsert_race_selection",
]
