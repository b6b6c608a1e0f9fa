"""
Seed the Power Card catalog.

Upserts the standard card set. Safe to run repeatedly; cards an admin
has deactivated stay deactivated.
"""

import asyncio
import logging

from powercards.db.database import init_db, session_scope
from powercards.db.operations import sync_cards
from powercards.services.card_catalog import DEFAULT_CARDS

logger = logging.getLogger(__name__)


async def run_seed() -> int:
    """Create tables if needed and sync the standard cards. Returns cards synced."""
    await init_db()
    async with session_scope() as session:
        count = await sync_cards(session, DEFAULT_CARDS)
    logger.info("Synced %d cards", count)
    return count


def main() -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_seed())


if __name__ == "__main__":
    main()
