"""
Score one race for one league.

Run once the race result has been ingested:

1. Commit every activation of the race to its player's used-card ledger
   (the race lock has passed, so activations are final)
2. Score every race selection and store the scored selections

A race whose result is missing a row a selection needs is excluded: the
failure is logged, any earlier scores of that race are removed, and
nothing is stored until the result is corrected and the job re-run.

Usage:
    python -m powercards.jobs.score_race --league LEAGUE_ID --race RACE_ID
"""

import argparse
import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from powercards.analysis.scoring import IncompleteRaceResult, score
from powercards.db.database import session_scope
from powercards.db.operations import (
    delete_race_scores,
    get_league,
    get_race,
    get_race_activations,
    get_race_result,
    get_race_selections,
    get_used_ledger,
    load_catalog,
    mark_cards_used,
    save_scored_selection,
)
from powercards.models.failure import FailureKind, ReferentialError
from powercards.models.scoring import PointsBreakdown, RaceScoringReport
from powercards.services.activation import ActivationResolver
from powercards.services.lock_schedule import race_lock_time

logger = logging.getLogger(__name__)


async def commit_race_activations(
    session: AsyncSession,
    league_id: str,
    race_id: str,
    now: datetime,
    lock: datetime,
) -> int:
    """
    Mark every activated card of a race used.

    Re-running is a no-op. Returns the number of cards newly marked.
    """
    resolver = ActivationResolver()
    marked = 0
    for activation in await get_race_activations(session, league_id, race_id):
        ledger = await get_used_ledger(session, activation.player_id, league_id, activation.season)
        committed = resolver.commit(activation, ledger, now, lock)
        new_cards = committed.card_ids - ledger.card_ids
        if new_cards:
            marked += await mark_cards_used(
                session,
                activation.player_id,
                league_id,
                activation.season,
                sorted(new_cards),
                race_id=race_id,
            )
    return marked


async def score_league_race(
    session: AsyncSession,
    league_id: str,
    race_id: str,
    now: datetime | None = None,
) -> RaceScoringReport:
    """
    Commit activations and score every selection of a race.

    Raises:
        ReferentialError: If the league does not exist or the race is not in its season
        StateError: If the race lock has not passed yet
    """
    now = now or datetime.now(timezone.utc)

    league = await get_league(session, league_id)
    if league is None:
        raise ReferentialError(kind=FailureKind.NOT_FOUND, message=f"League '{league_id}' not found")
    race = await get_race(session, race_id)
    if race is None or race.season != league.season:
        raise ReferentialError(
            kind=FailureKind.NOT_FOUND,
            message=f"Race '{race_id}' not found in the {league.season} season",
        )

    marked = await commit_race_activations(session, league_id, race_id, now, race_lock_time(race))
    logger.info("Marked %d card(s) used for %s in league %s", marked, race_id, league_id)

    report = RaceScoringReport(league_id=league_id, race_id=race_id)

    result = await get_race_result(session, race_id)
    if result is None:
        report.excluded_reason = f"No result ingested for race {race_id}"
        logger.warning(report.excluded_reason)
        return report

    catalog = await load_catalog(session)
    activations = {a.player_id: a for a in await get_race_activations(session, league_id, race_id)}
    selections = await get_race_selections(session, league_id, race_id)

    try:
        # Mirror cards copy opponents' base driver points
        opponents: dict[str, PointsBreakdown] = {
            selection.player_id: score(selection, result).base for selection in selections
        }
        report.scored = [
            score(
                selection,
                result,
                activation=activations.get(selection.player_id),
                catalog=catalog,
                opponents=opponents,
            )
            for selection in selections
        ]
    except IncompleteRaceResult as e:
        removed = await delete_race_scores(session, league_id, race_id)
        report.excluded_reason = e.message
        logger.warning(
            "Excluding %s from league %s: %s (%d earlier score(s) removed)",
            race_id,
            league_id,
            e.message,
            removed,
        )
        return report

    for scored in report.scored:
        await save_scored_selection(session, scored)

    logger.info("Scored %d selection(s) for %s in league %s", len(report.scored), race_id, league_id)
    return report


async def run_score_race(league_id: str, race_id: str) -> RaceScoringReport:
    """Score a race in its own transaction."""
    async with session_scope() as session:
        return await score_league_race(session, league_id, race_id)


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Score one race for one league")
    parser.add_argument("--league", required=True, help="League ID")
    parser.add_argument("--race", required=True, help="Race ID")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    report = asyncio.run(run_score_race(args.league, args.race))
    if report.excluded:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
