"""
Import a race result.

Loads a race result document from a URL or a local JSON file and stores
it. Team aggregates are derived from the driver rows when the document
does not carry them.

Document shape:
    {
        "race_id": "2026-01", "season": 2026, "round": 1, "is_sprint": false,
        "drivers": [{"driver": "...", "team": "...", "position": 1,
                     "points": 25, "status": "finished"}, ...],
        "sprint_drivers": [...],
        "teams": [{"team": "...", "race_points": 43, "sprint_points": 0}, ...]
    }

Usage:
    python -m powercards.jobs.import_results SOURCE
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import httpx

from powercards.analysis.points import derive_team_results
from powercards.db.database import session_scope
from powercards.db.operations import upsert_race_result
from powercards.models.race import DriverResult, DriverStatus, RaceResult, TeamResult

logger = logging.getLogger(__name__)


async def fetch_document(source: str) -> dict[str, Any]:
    """
    Read a result document from an http(s) URL or a file path.

    Raises:
        httpx.HTTPError: If the download fails
    """
    if source.startswith(("http://", "https://")):
        async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
            response = await client.get(source)
            response.raise_for_status()
            data: dict[str, Any] = response.json()
            return data

    data = json.loads(Path(source).read_text(encoding="utf-8"))
    return data


def _driver(data: dict[str, Any]) -> DriverResult:
    return DriverResult(
        driver=data["driver"],
        team=data["team"],
        position=data.get("position"),
        points=data.get("points", 0),
        status=DriverStatus(str(data.get("status", "finished")).lower()),
    )


def parse_result(document: dict[str, Any]) -> RaceResult:
    """
    Build a RaceResult from a result document.

    Raises:
        KeyError: If a required field is missing
        ValueError: If a driver status is not recognized
    """
    drivers = [_driver(row) for row in document.get("drivers", [])]
    sprint_drivers = [_driver(row) for row in document.get("sprint_drivers", [])]

    if document.get("teams"):
        teams = [
            TeamResult(
                team=row["team"],
                race_points=row.get("race_points", 0),
                sprint_points=row.get("sprint_points", 0),
            )
            for row in document["teams"]
        ]
    else:
        teams = derive_team_results(drivers, sprint_drivers)

    return RaceResult(
        race_id=document["race_id"],
        season=int(document["season"]),
        round=int(document["round"]),
        is_sprint=bool(document.get("is_sprint", False)),
        drivers=drivers,
        sprint_drivers=sprint_drivers,
        teams=teams,
    )


async def run_import(source: str) -> RaceResult:
    """Fetch, parse and store one race result."""
    logger.info("Importing race result from %s...", source)
    result = parse_result(await fetch_document(source))

    async with session_scope() as session:
        await upsert_race_result(session, result)

    logger.info(
        "Stored %s: %d drivers, %d sprint drivers, %d teams",
        result.race_id,
        len(result.drivers),
        len(result.sprint_drivers),
        len(result.teams),
    )
    return result


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Import a race result document")
    parser.add_argument("source", help="URL or path of the result JSON")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_import(args.source))


if __name__ == "__main__":
    main()
