from powercards.api.activations import router as activations_router
from powercards.api.cards import router as cards_router
from powercards.api.decks import router as decks_router
from powercards.api.health import router as health_router
from powercards.api.statistics import router as statistics_router

__all__ = [
    "activations_router",
    "cards_router",
    "decks_router",
    "health_router",
    "statistics_router",
]
