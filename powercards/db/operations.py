"""
Database CRUD operations.

Provides async functions for reading and writing cards, leagues, the race
calendar, decks, activations, the used-card ledger, race selections, race
results and scored selections. Every read returns domain models; the ORM
rows stay inside this module.
"""

from collections.abc import Iterable
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from powercards.models.activation import Activation, UsedCardLedger
from powercards.models.card import (
    Card,
    CardType,
    TargetKind,
    Tier,
    effect_from_dict,
    effect_to_dict,
)
from powercards.models.db import (
    ActivationDB,
    CardDB,
    CardUsageDB,
    DeckCardDB,
    LeagueDB,
    LeagueMemberDB,
    RaceCalendarDB,
    RaceResultDB,
    RaceSelectionDB,
    ScoredSelectionDB,
)
from powercards.models.deck import Deck
from powercards.models.race import (
    DriverResult,
    DriverStatus,
    RaceEntry,
    RaceResult,
    RaceSelection,
    RaceWeekend,
    TeamResult,
)
from powercards.models.scoring import CardEffectOutcome, PointsBreakdown, ScoredSelection
from powercards.services.card_catalog import CardCatalog


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; every stored time is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# --- Card Operations ---


async def get_card(session: AsyncSession, card_id: str) -> CardDB | None:
    """Get a card row by ID."""
    return await session.get(CardDB, card_id)


async def sync_cards(session: AsyncSession, cards: Iterable[Card]) -> int:
    """
    Insert or update card definitions.

    Existing cards keep their admin-controlled active flag.
    Returns the number of cards synced.
    """
    count = 0
    for card in cards:
        existing = await get_card(session, card.id)
        if existing:
            existing.name = card.name
            existing.type = card.type.value
            existing.tier = card.tier.value
            existing.slot_cost = card.slot_cost
            existing.effect = effect_to_dict(card.effect)
            existing.requires_target = card.requires_target.value
            existing.description = card.description
        else:
            session.add(
                CardDB(
                    id=card.id,
                    name=card.name,
                    type=card.type.value,
                    tier=card.tier.value,
                    slot_cost=card.slot_cost,
                    effect=effect_to_dict(card.effect),
                    requires_target=card.requires_target.value,
                    description=card.description,
                    is_active=card.is_active,
                )
            )
        count += 1

    await session.flush()
    return count


async def set_card_active(session: AsyncSession, card_id: str, is_active: bool) -> bool:
    """
    Toggle a card's active flag.

    Returns True if the card exists.
    """
    card = await get_card(session, card_id)
    if not card:
        return False
    card.is_active = is_active
    await session.flush()
    return True


def card_to_model(db_card: CardDB) -> Card:
    """Convert a database card to a domain model."""
    return Card(
        id=db_card.id,
        name=db_card.name,
        type=CardType(db_card.type),
        tier=Tier(db_card.tier),
        slot_cost=db_card.slot_cost,
        effect=effect_from_dict(db_card.effect),
        requires_target=TargetKind(db_card.requires_target),
        description=db_card.description,
        is_active=db_card.is_active,
    )


async def load_catalog(session: AsyncSession) -> CardCatalog:
    """Load every stored card, driver cards first, most expensive first."""
    result = await session.execute(
        select(CardDB).order_by(CardDB.type, CardDB.slot_cost.desc(), CardDB.id)
    )
    return CardCatalog(card_to_model(row) for row in result.scalars().all())


# --- League Operations ---


async def create_league(
    session: AsyncSession, league_id: str, season: int, name: str = ""
) -> LeagueDB:
    """
    Create a league.

    Raises IntegrityError if the league already exists.
    """
    league = LeagueDB(id=league_id, season=season, name=name)
    session.add(league)
    await session.flush()
    return league


async def get_league(session: AsyncSession, league_id: str) -> LeagueDB | None:
    """Get a league by ID."""
    return await session.get(LeagueDB, league_id)


async def add_league_member(session: AsyncSession, league_id: str, user_id: str) -> bool:
    """
    Add a user to a league.

    Returns True if added, False if already a member.
    """
    result = await session.execute(
        select(LeagueMemberDB).where(
            LeagueMemberDB.league_id == league_id,
            LeagueMemberDB.user_id == user_id,
        )
    )
    if result.scalar_one_or_none():
        return False

    session.add(LeagueMemberDB(league_id=league_id, user_id=user_id))
    await session.flush()
    return True


async def get_league_members(session: AsyncSession, league_id: str) -> list[str]:
    """User IDs of a league's members, sorted."""
    result = await session.execute(
        select(LeagueMemberDB.user_id)
        .where(LeagueMemberDB.league_id == league_id)
        .order_by(LeagueMemberDB.user_id)
    )
    return list(result.scalars().all())


# --- Race Calendar Operations ---


async def upsert_race(session: AsyncSession, race: RaceWeekend) -> RaceCalendarDB:
    """Insert or update a calendar entry."""
    existing = await session.get(RaceCalendarDB, race.race_id)
    if existing:
        existing.season = race.season
        existing.round = race.round
        existing.name = race.name
        existing.is_sprint = race.is_sprint
        existing.qualifying_start = race.qualifying_start
        existing.sprint_qualifying_start = race.sprint_qualifying_start
        existing.race_start = race.race_start
        existing.entries = [asdict(entry) for entry in race.entries]
        await session.flush()
        return existing

    db_race = RaceCalendarDB(
        race_id=race.race_id,
        season=race.season,
        round=race.round,
        name=race.name,
        is_sprint=race.is_sprint,
        qualifying_start=race.qualifying_start,
        sprint_qualifying_start=race.sprint_qualifying_start,
        race_start=race.race_start,
        entries=[asdict(entry) for entry in race.entries],
    )
    session.add(db_race)
    await session.flush()
    return db_race


def race_to_model(db_race: RaceCalendarDB) -> RaceWeekend:
    """Convert a calendar row to a domain model."""
    qualifying_start = _as_utc(db_race.qualifying_start)
    assert qualifying_start is not None
    return RaceWeekend(
        race_id=db_race.race_id,
        season=db_race.season,
        round=db_race.round,
        name=db_race.name,
        is_sprint=db_race.is_sprint,
        qualifying_start=qualifying_start,
        sprint_qualifying_start=_as_utc(db_race.sprint_qualifying_start),
        race_start=_as_utc(db_race.race_start),
        entries=tuple(RaceEntry(**entry) for entry in db_race.entries or ()),
    )


async def get_race(session: AsyncSession, race_id: str) -> RaceWeekend | None:
    """Get a race weekend by ID."""
    db_race = await session.get(RaceCalendarDB, race_id)
    return race_to_model(db_race) if db_race else None


async def get_season_races(session: AsyncSession, season: int) -> list[RaceWeekend]:
    """All race weekends of a season, in round order."""
    result = await session.execute(
        select(RaceCalendarDB).where(RaceCalendarDB.season == season).order_by(RaceCalendarDB.round)
    )
    return [race_to_model(row) for row in result.scalars().all()]


# --- Deck Operations ---


async def replace_deck(
    session: AsyncSession,
    user_id: str,
    league_id: str,
    season: int,
    deck: Deck,
) -> None:
    """Replace a player's deck wholesale. The deck must already be validated."""
    await session.execute(
        delete(DeckCardDB).where(
            DeckCardDB.user_id == user_id,
            DeckCardDB.league_id == league_id,
            DeckCardDB.season == season,
        )
    )
    for card_type in (CardType.DRIVER, CardType.TEAM):
        for position, card_id in enumerate(deck.card_ids(card_type)):
            session.add(
                DeckCardDB(
                    user_id=user_id,
                    league_id=league_id,
                    season=season,
                    card_id=card_id,
                    card_type=card_type.value,
                    position=position,
                )
            )
    await session.flush()


async def get_deck(session: AsyncSession, user_id: str, league_id: str, season: int) -> Deck:
    """Get a player's deck; an empty deck if none was saved."""
    result = await session.execute(
        select(DeckCardDB)
        .where(
            DeckCardDB.user_id == user_id,
            DeckCardDB.league_id == league_id,
            DeckCardDB.season == season,
        )
        .order_by(DeckCardDB.card_type, DeckCardDB.position)
    )
    rows = result.scalars().all()
    return Deck(
        driver_card_ids=tuple(r.card_id for r in rows if r.card_type == CardType.DRIVER.value),
        team_card_ids=tuple(r.card_id for r in rows if r.card_type == CardType.TEAM.value),
    )


# --- Used-Card Ledger Operations ---


async def get_used_ledger(
    session: AsyncSession, user_id: str, league_id: str, season: int
) -> UsedCardLedger:
    """Cards a player has spent this season."""
    result = await session.execute(
        select(CardUsageDB.card_id).where(
            CardUsageDB.user_id == user_id,
            CardUsageDB.league_id == league_id,
            CardUsageDB.season == season,
        )
    )
    return UsedCardLedger(season=season, card_ids=frozenset(result.scalars().all()))


async def mark_cards_used(
    session: AsyncSession,
    user_id: str,
    league_id: str,
    season: int,
    card_ids: Iterable[str],
    race_id: str | None = None,
) -> int:
    """
    Mark cards used for the season.

    Already-marked cards are skipped. Returns the number newly marked.
    """
    ledger = await get_used_ledger(session, user_id, league_id, season)
    added = 0
    for card_id in dict.fromkeys(card_ids):
        if card_id in ledger:
            continue
        session.add(
            CardUsageDB(
                user_id=user_id,
                league_id=league_id,
                season=season,
                card_id=card_id,
                race_id=race_id,
            )
        )
        added += 1
    await session.flush()
    return added


# --- Activation Operations ---


async def _get_activation_row(
    session: AsyncSession, user_id: str, league_id: str, race_id: str
) -> ActivationDB | None:
    result = await session.execute(
        select(ActivationDB).where(
            ActivationDB.user_id == user_id,
            ActivationDB.league_id == league_id,
            ActivationDB.race_id == race_id,
        )
    )
    return result.scalar_one_or_none()


def activation_to_model(row: ActivationDB) -> Activation:
    """Convert a database activation to a domain model."""
    return Activation(
        player_id=row.user_id,
        league_id=row.league_id,
        race_id=row.race_id,
        season=row.season,
        driver_card_id=row.driver_card_id,
        team_card_id=row.team_card_id,
        target_player=row.target_player,
        target_driver=row.target_driver,
        target_team=row.target_team,
        mystery_transformed_card_id=row.mystery_transformed_card_id,
        random_transformed_card_id=row.random_transformed_card_id,
    )


async def get_activation(
    session: AsyncSession, user_id: str, league_id: str, race_id: str
) -> Activation | None:
    """Get a player's activation for a race."""
    row = await _get_activation_row(session, user_id, league_id, race_id)
    return activation_to_model(row) if row else None


async def save_activation(session: AsyncSession, activation: Activation) -> None:
    """Insert or replace the activation for its (player, league, race)."""
    row = await _get_activation_row(
        session, activation.player_id, activation.league_id, activation.race_id
    )
    if row is None:
        row = ActivationDB(
            user_id=activation.player_id,
            league_id=activation.league_id,
            race_id=activation.race_id,
        )
        session.add(row)

    row.season = activation.season
    row.driver_card_id = activation.driver_card_id
    row.team_card_id = activation.team_card_id
    row.target_player = activation.target_player
    row.target_driver = activation.target_driver
    row.target_team = activation.target_team
    row.mystery_transformed_card_id = activation.mystery_transformed_card_id
    row.random_transformed_card_id = activation.random_transformed_card_id
    await session.flush()


async def delete_activation(session: AsyncSession, user_id: str, league_id: str, race_id: str) -> bool:
    """
    Delete a player's activation for a race.

    Returns True if deleted, False if not found.
    """
    row = await _get_activation_row(session, user_id, league_id, race_id)
    if not row:
        return False
    await session.delete(row)
    await session.flush()
    return True


async def get_race_activations(
    session: AsyncSession, league_id: str, race_id: str
) -> list[Activation]:
    """Every activation in a league for one race."""
    result = await session.execute(
        select(ActivationDB)
        .where(ActivationDB.league_id == league_id, ActivationDB.race_id == race_id)
        .order_by(ActivationDB.user_id)
    )
    return [activation_to_model(row) for row in result.scalars().all()]


async def get_reserved_card_ids(
    session: AsyncSession,
    user_id: str,
    league_id: str,
    season: int,
    exclude_race_id: str,
) -> frozenset[str]:
    """Cards held by the player's activations for other races this season."""
    result = await session.execute(
        select(ActivationDB).where(
            ActivationDB.user_id == user_id,
            ActivationDB.league_id == league_id,
            ActivationDB.season == season,
            ActivationDB.race_id != exclude_race_id,
        )
    )
    reserved: set[str] = set()
    for row in result.scalars().all():
        reserved.update(activation_to_model(row).card_ids())
    return frozenset(reserved)


# --- Race Selection Operations ---


async def upsert_race_selection(session: AsyncSession, selection: RaceSelection) -> None:
    """Insert or update a player's picks for a race."""
    result = await session.execute(
        select(RaceSelectionDB).where(
            RaceSelectionDB.user_id == selection.player_id,
            RaceSelectionDB.league_id == selection.league_id,
            RaceSelectionDB.race_id == selection.race_id,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = RaceSelectionDB(
            user_id=selection.player_id,
            league_id=selection.league_id,
            race_id=selection.race_id,
        )
        session.add(row)

    row.round = selection.round
    row.main_driver = selection.main_driver
    row.reserve_driver = selection.reserve_driver
    row.team = selection.team
    await session.flush()


def selection_to_model(row: RaceSelectionDB) -> RaceSelection:
    """Convert a database race selection to a domain model."""
    return RaceSelection(
        player_id=row.user_id,
        league_id=row.league_id,
        race_id=row.race_id,
        round=row.round,
        main_driver=row.main_driver,
        reserve_driver=row.reserve_driver,
        team=row.team,
    )


async def get_race_selection(
    session: AsyncSession, user_id: str, league_id: str, race_id: str
) -> RaceSelection | None:
    """Get one player's picks for a race."""
    result = await session.execute(
        select(RaceSelectionDB).where(
            RaceSelectionDB.user_id == user_id,
            RaceSelectionDB.league_id == league_id,
            RaceSelectionDB.race_id == race_id,
        )
    )
    row = result.scalar_one_or_none()
    return selection_to_model(row) if row else None


async def get_race_selections(
    session: AsyncSession, league_id: str, race_id: str
) -> list[RaceSelection]:
    """Every player's picks in a league for one race."""
    result = await session.execute(
        select(RaceSelectionDB)
        .where(RaceSelectionDB.league_id == league_id, RaceSelectionDB.race_id == race_id)
        .order_by(RaceSelectionDB.user_id)
    )
    return [selection_to_model(row) for row in result.scalars().all()]


# --- Race Result Operations ---


def _driver_row(data: dict[str, Any]) -> DriverResult:
    return DriverResult(
        driver=data["driver"],
        team=data["team"],
        position=data.get("position"),
        points=data.get("points", 0),
        status=DriverStatus(data.get("status", DriverStatus.FINISHED.value)),
    )


def _driver_json(row: DriverResult) -> dict[str, Any]:
    data = asdict(row)
    data["status"] = row.status.value
    return data


async def upsert_race_result(session: AsyncSession, result: RaceResult) -> RaceResultDB:
    """Insert or replace the stored result for a race."""
    existing = await session.get(RaceResultDB, result.race_id)
    if existing is None:
        existing = RaceResultDB(race_id=result.race_id)
        session.add(existing)

    existing.season = result.season
    existing.round = result.round
    existing.is_sprint = result.is_sprint
    existing.drivers = [_driver_json(row) for row in result.drivers]
    existing.sprint_drivers = [_driver_json(row) for row in result.sprint_drivers]
    existing.teams = [asdict(row) for row in result.teams]
    await session.flush()
    return existing


def race_result_to_model(row: RaceResultDB) -> RaceResult:
    """Convert a stored race result to a domain model."""
    return RaceResult(
        race_id=row.race_id,
        season=row.season,
        round=row.round,
        is_sprint=row.is_sprint,
        drivers=[_driver_row(d) for d in row.drivers],
        sprint_drivers=[_driver_row(d) for d in row.sprint_drivers],
        teams=[
            TeamResult(
                team=t["team"],
                race_points=t.get("race_points", 0),
                sprint_points=t.get("sprint_points", 0),
            )
            for t in row.teams
        ],
    )


async def get_race_result(session: AsyncSession, race_id: str) -> RaceResult | None:
    """Get the stored result for a race."""
    row = await session.get(RaceResultDB, race_id)
    return race_result_to_model(row) if row else None


async def get_race_entries(session: AsyncSession, race: RaceWeekend) -> tuple[RaceEntry, ...]:
    """
    The entry list for a race weekend.

    Uses the calendar's entry list when it has one, otherwise the drivers
    of the latest earlier result of the same season. Empty when neither
    exists.
    """
    if race.entries:
        return race.entries
    result = await session.execute(
        select(RaceResultDB)
        .where(RaceResultDB.season == race.season, RaceResultDB.round < race.round)
        .order_by(RaceResultDB.round.desc())
        .limit(1)
    )
    row = result.scalar_one_or_none()
    if row is None:
        return ()
    return tuple(RaceEntry(driver=d["driver"], team=d["team"]) for d in row.drivers)



# --- Scored Selection Operations ---


def _outcome_json(outcome: CardEffectOutcome | None) -> dict[str, Any] | None:
    return asdict(outcome) if outcome else None


def _outcome_model(data: dict[str, Any] | None) -> CardEffectOutcome | None:
    return CardEffectOutcome(**data) if data else None


async def save_scored_selection(session: AsyncSession, scored: ScoredSelection) -> None:
    """Insert or replace a player's score for a race."""
    result = await session.execute(
        select(ScoredSelectionDB).where(
            ScoredSelectionDB.user_id == scored.player_id,
            ScoredSelectionDB.league_id == scored.league_id,
            ScoredSelectionDB.race_id == scored.race_id,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = ScoredSelectionDB(
            user_id=scored.player_id,
            league_id=scored.league_id,
            race_id=scored.race_id,
        )
        session.add(row)

    row.round = scored.round
    row.main_driver = scored.main_driver
    row.reserve_driver = scored.reserve_driver
    row.team = scored.team
    row.is_sprint = scored.is_sprint
    row.main_driver_dns = scored.main_driver_dns
    row.base_main_driver = scored.base.main_driver
    row.base_reserve_driver = scored.base.reserve_driver
    row.base_team = scored.base.team
    row.final_main_driver = scored.final.main_driver
    row.final_reserve_driver = scored.final.reserve_driver
    row.final_team = scored.final.team
    row.driver_card = _outcome_json(scored.driver_card)
    row.team_card = _outcome_json(scored.team_card)
    await session.flush()


def scored_selection_to_model(row: ScoredSelectionDB) -> ScoredSelection:
    """Convert a database scored selection to a domain model."""
    return ScoredSelection(
        player_id=row.user_id,
        league_id=row.league_id,
        race_id=row.race_id,
        round=row.round,
        main_driver=row.main_driver,
        reserve_driver=row.reserve_driver,
        team=row.team,
        base=PointsBreakdown(
            main_driver=row.base_main_driver,
            reserve_driver=row.base_reserve_driver,
            team=row.base_team,
        ),
        final=PointsBreakdown(
            main_driver=row.final_main_driver,
            reserve_driver=row.final_reserve_driver,
            team=row.final_team,
        ),
        is_sprint=row.is_sprint,
        main_driver_dns=row.main_driver_dns,
        driver_card=_outcome_model(row.driver_card),
        team_card=_outcome_model(row.team_card),
    )


async def get_scored_selections(session: AsyncSession, league_id: str) -> list[ScoredSelection]:
    """Every scored selection of a league, in round order."""
    result = await session.execute(
        select(ScoredSelectionDB)
        .where(ScoredSelectionDB.league_id == league_id)
        .order_by(ScoredSelectionDB.round, ScoredSelectionDB.user_id)
    )
    return [scored_selection_to_model(row) for row in result.scalars().all()]


async def delete_race_scores(session: AsyncSession, league_id: str, race_id: str) -> int:
    """
    Delete every stored score of a race in a league.

    Returns the number of deleted records.
    """
    result = await session.execute(
        delete(ScoredSelectionDB).where(
            ScoredSelectionDB.league_id == league_id,
            ScoredSelectionDB.race_id == race_id,
        )
    )
    # rowcount is available on DELETE results; type stubs incomplete for async
    return int(result.rowcount)  # type: ignore[attr-defined]
