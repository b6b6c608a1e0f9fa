"""
SQLAlchemy ORM models for persistent storage.

Models mirror the dataclass models but add database persistence. The
unique constraints are what give activations and the used-card ledger
their at-most-one-writer guarantee.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class CardDB(Base):
    """A Power Card definition in the catalog."""

    __tablename__ = "cards"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(String(16), index=True)
    tier: Mapped[str] = mapped_column(String(16))
    slot_cost: Mapped[int] = mapped_column(Integer)

    # Effect stored as {"kind": ..., **parameters}
    effect: Mapped[dict[str, Any]] = mapped_column(JSON)
    requires_target: Mapped[str] = mapped_column(String(16), default="none")
    description: Mapped[str] = mapped_column(Text, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<CardDB(id={self.id}, name={self.name})>"


class LeagueDB(Base):
    """A league playing one season."""

    __tablename__ = "leagues"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), default="")
    season: Mapped[int] = mapped_column(Integer, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    members: Mapped[list["LeagueMemberDB"]] = relationship(
        back_populates="league", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<LeagueDB(id={self.id}, season={self.season})>"


class LeagueMemberDB(Base):
    """Membership of a user in a league."""

    __tablename__ = "league_members"
    __table_args__ = (UniqueConstraint("league_id", "user_id", name="uq_league_member"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    league_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("leagues.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(255), index=True)

    league: Mapped["LeagueDB"] = relationship(back_populates="members")

    def __repr__(self) -> str:
        return f"<LeagueMemberDB(league={self.league_id}, user={self.user_id})>"


class RaceCalendarDB(Base):
    """A race weekend on the calendar."""

    __tablename__ = "race_calendar"
    __table_args__ = (UniqueConstraint("season", "round", name="uq_season_round"),)

    race_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    season: Mapped[int] = mapped_column(Integer, index=True)
    round: Mapped[int] = mapped_column(Integer)
    name: Mapped[str] = mapped_column(String(255), default="")
    is_sprint: Mapped[bool] = mapped_column(Boolean, default=False)
    qualifying_start: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    sprint_qualifying_start: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    race_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    entries: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    def __repr__(self) -> str:
        return f"<RaceCalendarDB(race_id={self.race_id}, round={self.round})>"


class DeckCardDB(Base):
    """One card in a player's season deck."""

    __tablename__ = "deck_cards"
    __table_args__ = (
        UniqueConstraint("user_id", "league_id", "season", "card_id", name="uq_deck_card"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    league_id: Mapped[str] = mapped_column(String(64), index=True)
    season: Mapped[int] = mapped_column(Integer)
    card_id: Mapped[str] = mapped_column(String(64), ForeignKey("cards.id"))
    card_type: Mapped[str] = mapped_column(String(16))
    position: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return f"<DeckCardDB(user={self.user_id}, card={self.card_id})>"


class ActivationDB(Base):
    """
    A player's card activation for one race.

    At most one per (user, league, race).
    """

    __tablename__ = "activations"
    __table_args__ = (
        UniqueConstraint("user_id", "league_id", "race_id", name="uq_activation_race"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    league_id: Mapped[str] = mapped_column(String(64), index=True)
    race_id: Mapped[str] = mapped_column(String(64), index=True)
    season: Mapped[int] = mapped_column(Integer)

    driver_card_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    team_card_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    target_player: Mapped[str | None] = mapped_column(String(255), nullable=True)
    target_driver: Mapped[str | None] = mapped_column(String(255), nullable=True)
    target_team: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mystery_transformed_card_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    random_transformed_card_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<ActivationDB(user={self.user_id}, race={self.race_id})>"


class CardUsageDB(Base):
    """
    Season used-card ledger entry.

    The unique constraint makes a second mark of the same card a no-op.
    """

    __tablename__ = "card_usage"
    __table_args__ = (
        UniqueConstraint("user_id", "league_id", "season", "card_id", name="uq_card_usage"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    league_id: Mapped[str] = mapped_column(String(64), index=True)
    season: Mapped[int] = mapped_column(Integer)
    card_id: Mapped[str] = mapped_column(String(64))
    race_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<CardUsageDB(user={self.user_id}, card={self.card_id})>"


class RaceSelectionDB(Base):
    """A player's driver and team picks for one race."""

    __tablename__ = "race_selections"
    __table_args__ = (
        UniqueConstraint("user_id", "league_id", "race_id", name="uq_selection_race"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    league_id: Mapped[str] = mapped_column(String(64), index=True)
    race_id: Mapped[str] = mapped_column(String(64), index=True)
    round: Mapped[int] = mapped_column(Integer)
    main_driver: Mapped[str] = mapped_column(String(255))
    reserve_driver: Mapped[str] = mapped_column(String(255))
    team: Mapped[str] = mapped_column(String(255))

    def __repr__(self) -> str:
        return f"<RaceSelectionDB(user={self.user_id}, race={self.race_id})>"


class RaceResultDB(Base):
    """
    Raw classification for one race.

    Driver and team rows stored as JSON, as ingested.
    """

    __tablename__ = "race_results"

    race_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    season: Mapped[int] = mapped_column(Integer, index=True)
    round: Mapped[int] = mapped_column(Integer)
    is_sprint: Mapped[bool] = mapped_column(Boolean, default=False)
    drivers: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    sprint_drivers: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    teams: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<RaceResultDB(race_id={self.race_id}, round={self.round})>"


class ScoredSelectionDB(Base):
    """A player's scored race in one league."""

    __tablename__ = "scored_selections"
    __table_args__ = (
        UniqueConstraint("user_id", "league_id", "race_id", name="uq_scored_race"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    league_id: Mapped[str] = mapped_column(String(64), index=True)
    race_id: Mapped[str] = mapped_column(String(64), index=True)
    round: Mapped[int] = mapped_column(Integer)
    main_driver: Mapped[str] = mapped_column(String(255))
    reserve_driver: Mapped[str] = mapped_column(String(255))
    team: Mapped[str] = mapped_column(String(255))
    is_sprint: Mapped[bool] = mapped_column(Boolean, default=False)
    main_driver_dns: Mapped[bool] = mapped_column(Boolean, default=False)

    # Points
    base_main_driver: Mapped[float] = mapped_column(Float, default=0)
    base_reserve_driver: Mapped[float] = mapped_column(Float, default=0)
    base_team: Mapped[float] = mapped_column(Float, default=0)
    final_main_driver: Mapped[float] = mapped_column(Float, default=0)
    final_reserve_driver: Mapped[float] = mapped_column(Float, default=0)
    final_team: Mapped[float] = mapped_column(Float, default=0)

    # Card outcomes
    driver_card: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    team_card: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    scored_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<ScoredSelectionDB(user={self.user_id}, race={self.race_id})>"
