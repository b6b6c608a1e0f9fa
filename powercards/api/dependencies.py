"""
Shared request dependencies.

Time and randomness come in through dependencies so tests can pin them.
"""

import random
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from powercards.db import get_league, get_league_members
from powercards.models.db import LeagueDB
from powercards.models.failure import FailureKind, ReferentialError
from powercards.services.activation import ActivationResolver


def get_now() -> datetime:
    """Current time, UTC."""
    return datetime.now(timezone.utc)


def get_resolver() -> ActivationResolver:
    return ActivationResolver(random.Random())


async def require_league_member(session: AsyncSession, league_id: str, user_id: str) -> LeagueDB:
    """
    Load a league and check the user plays in it.

    Raises:
        ReferentialError: If the league does not exist or the user is not a member
    """
    league = await get_league(session, league_id)
    if league is None:
        raise ReferentialError(kind=FailureKind.NOT_FOUND, message=f"League '{league_id}' not found")
    if user_id not in await get_league_members(session, league_id):
        raise ReferentialError(
            kind=FailureKind.NOT_FOUND,
            message=f"User '{user_id}' is not a member of league '{league_id}'",
        )
    return league
