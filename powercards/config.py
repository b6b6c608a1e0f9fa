from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "PowerCards"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/powercards"

    # Decks and activations lock this many minutes before qualifying
    lock_lead_minutes: int = 5

    # Power Cards do not exist for seasons before this one
    first_card_season: int = 2026


settings = Settings()


# =============================================================================
# DECK LIMITS
# =============================================================================

# Slot budgets must be filled exactly, no partial decks
DRIVER_SLOT_BUDGET = 12
TEAM_SLOT_BUDGET = 10

MAX_DRIVER_CARDS = 8
MAX_TEAM_CARDS = 6

MAX_GOLD_DRIVER_CARDS = 2
MAX_GOLD_TEAM_CARDS = 1


# =============================================================================
# STATISTICS RATING SCALES
# =============================================================================

RATING_MAX = 10.0

# consistency = RATING_MAX * (1 - CONSISTENCY_SPREAD_WEIGHT * std / average)
CONSISTENCY_SPREAD_WEIGHT = 1.0

# comeback = RATE_WEIGHT * recovery_rate + MAGNITUDE_WEIGHT * min(1, recovery / average)
COMEBACK_RATE_WEIGHT = 5.0
COMEBACK_MAGNITUDE_WEIGHT = 5.0
