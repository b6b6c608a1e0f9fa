"""
Lock deadlines.

Decks lock for the whole season shortly before the season's first
qualifying session. Activations lock per race shortly before qualifying,
or before sprint qualifying on sprint weekends.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

from powercards.config import settings
from powercards.models.race import RaceWeekend


def default_lead() -> timedelta:
    return timedelta(minutes=settings.lock_lead_minutes)


def race_lock_time(race: RaceWeekend, lead: timedelta | None = None) -> datetime:
    """Lock deadline for activations on one race weekend."""
    if lead is None:
        lead = default_lead()
    session_start = race.qualifying_start
    if race.is_sprint and race.sprint_qualifying_start is not None:
        session_start = race.sprint_qualifying_start
    return session_start - lead


def season_lock_time(
    races: Iterable[RaceWeekend],
    season: int,
    lead: timedelta | None = None,
) -> datetime | None:
    """
    Deck lock deadline for a season.

    Returns:
        The earliest race lock of the season, or None if no race is scheduled
    """
    locks = [race_lock_time(race, lead) for race in races if race.season == season]
    if not locks:
        return None
    return min(locks)


def is_locked(now: datetime, lock: datetime) -> bool:
    """A lock takes effect at its deadline, inclusive."""
    return now >= lock
