"""Relational repository backed by SQLAlchemy 2.0 (SQLite by default).

Table names follow the deployed schema (``seasons``, ``football_teams``,
``football_games``, ``picks``).  Every public method opens its own session,
so one repository instance can be shared by the CLI and the scheduler thread.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Engine,
    ForeignKey,
    Index,
    Integer,
    String,
    TypeDecorator,
    UniqueConstraint,
    case,
    create_engine,
    func,
    select,
    update,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from nfl_pickem.ingest.repository import EASTERN, Repository
from nfl_pickem.ingest.schema import (
    GameUpdate,
    Pick,
    PickStats,
    ScheduledGame,
    Season,
    Team,
    compute_accuracy,
    utcnow,
)


class UtcDateTime(TypeDecorator[datetime.datetime]):
    """Stores aware datetimes as naive UTC and hands them back aware."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime.datetime | None, dialect: Any) -> datetime.datetime | None:
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc)
        return value.replace(tzinfo=None)

    def process_result_value(self, value: datetime.datetime | None, dialect: Any) -> datetime.datetime | None:
        if value is None:
            return None
        return value.replace(tzinfo=datetime.timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for the pick'em tables."""


class SeasonRow(Base):
    __tablename__ = "seasons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    year: Mapped[str] = mapped_column(String(10), nullable=False)
    is_current: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime.datetime | None] = mapped_column(UtcDateTime, default=utcnow)


class TeamRow(Base):
    __tablename__ = "football_teams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    team_code: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    team_name: Mapped[str] = mapped_column(String(100), default="")
    team_city: Mapped[str] = mapped_column(String(100), default="")
    team_conference: Mapped[str] = mapped_column(String(20), default="Unknown")
    team_division: Mapped[str] = mapped_column(String(20), default="Unknown")
    team_logo: Mapped[str | None] = mapped_column(String(255))
    team_primary_color: Mapped[str | None] = mapped_column(String(9))
    team_secondary_color: Mapped[str | None] = mapped_column(String(9))
    updated_at: Mapped[datetime.datetime | None] = mapped_column(UtcDateTime)


class GameRow(Base):
    __tablename__ = "football_games"
    __table_args__ = (
        UniqueConstraint("season_id", "week", "home_team_id", "away_team_id", name="uq_game_identity"),
        Index("ix_games_season_week", "season_id", "week"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    season_id: Mapped[str] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    season_phase: Mapped[int] = mapped_column(Integer, default=2, nullable=False)
    home_team_id: Mapped[str] = mapped_column(ForeignKey("football_teams.id"), nullable=False)
    away_team_id: Mapped[str] = mapped_column(ForeignKey("football_teams.id"), nullable=False)
    home_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    away_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    game_date: Mapped[datetime.datetime | None] = mapped_column(UtcDateTime)
    start_time: Mapped[datetime.datetime | None] = mapped_column(UtcDateTime)
    status: Mapped[str] = mapped_column(String(40), nullable=False)
    scores_updated_at: Mapped[datetime.datetime | None] = mapped_column(UtcDateTime)
    updated_at: Mapped[datetime.datetime | None] = mapped_column(UtcDateTime)


class PickRow(Base):
    __tablename__ = "picks"
    __table_args__ = (Index("ix_picks_game", "football_game_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    pool_id: Mapped[str] = mapped_column(String(36), nullable=False)
    season_id: Mapped[str] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    football_game_id: Mapped[str] = mapped_column(ForeignKey("football_games.id"), nullable=False)
    pick_team_id: Mapped[str] = mapped_column(ForeignKey("football_teams.id"), nullable=False)
    is_correct: Mapped[bool | None] = mapped_column(Boolean)
    tiebreaker: Mapped[int | None] = mapped_column(Integer)
    updated_at: Mapped[datetime.datetime | None] = mapped_column(UtcDateTime)


def _row_values(model: Season | Team | ScheduledGame | Pick) -> dict[str, Any]:
    values = model.model_dump()
    if "season_phase" in values:
        values["season_phase"] = int(values["season_phase"])
    return values


class SqlRepository(Repository):
    """Repository implementation over a SQLAlchemy engine.

    Args:
        engine: Engine to use; tables are created if missing.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)
        Base.metadata.create_all(engine)

    @classmethod
    def from_url(cls, url: str) -> SqlRepository:
        """Create a repository for *url*; in-memory SQLite shares one connection across threads."""
        if not url.startswith("sqlite"):
            return cls(create_engine(url))
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return cls(create_engine(url, **kwargs))

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self._sessions() as session, session.begin():
            yield session

    # -- seasons -------------------------------------------------------------

    def add_season(self, season: Season) -> Season:
        with self._session() as session:
            if season.is_current:
                session.execute(update(SeasonRow).values(is_current=False))
            session.add(SeasonRow(**_row_values(season)))
        return season

    def get_season(self, season_id: str) -> Season | None:
        with self._session() as session:
            row = session.get(SeasonRow, season_id)
            return Season.model_validate(row) if row is not None else None

    def list_seasons(self) -> list[Season]:
        with self._session() as session:
            rows = session.scalars(select(SeasonRow).order_by(SeasonRow.year)).all()
            return [Season.model_validate(r) for r in rows]

    def set_current_season(self, season_id: str) -> None:
        with self._session() as session:
            session.execute(update(SeasonRow).values(is_current=SeasonRow.id == season_id))

    def get_current_season(self) -> Season | None:
        with self._session() as session:
            row = session.scalars(
                select(SeasonRow)
                .where(SeasonRow.is_current.is_(True))
                .order_by(SeasonRow.year.desc())
                .limit(1),
            ).first()
            return Season.model_validate(row) if row is not None else None

    # -- teams ---------------------------------------------------------------

    def add_team(self, team: Team) -> Team:
        with self._session() as session:
            session.add(TeamRow(**_row_values(team)))
        return team

    def get_team_by_code(self, team_code: str) -> Team | None:
        with self._session() as session:
            row = session.scalars(select(TeamRow).where(TeamRow.team_code == team_code)).first()
            return Team.model_validate(row) if row is not None else None

    def list_teams(self) -> list[Team]:
        with self._session() as session:
            rows = session.scalars(select(TeamRow).order_by(TeamRow.team_code)).all()
            return [Team.model_validate(r) for r in rows]

    def backfill_team_colors(
        self,
        team_id: str,
        primary_color: str | None,
        secondary_color: str | None,
    ) -> Team:
        with self._session() as session:
            row = session.get(TeamRow, team_id)
            if row is None:
                msg = f"No team with id {team_id!r}"
                raise KeyError(msg)
            changed = False
            if primary_color and not row.team_primary_color:
                row.team_primary_color = primary_color
                changed = True
            if secondary_color and not row.team_secondary_color:
                row.team_secondary_color = secondary_color
                changed = True
            if changed:
                row.updated_at = utcnow()
            session.flush()
            return Team.model_validate(row)

    # -- games ---------------------------------------------------------------

    def add_game(self, game: ScheduledGame) -> ScheduledGame:
        with self._session() as session:
            session.add(GameRow(**_row_values(game)))
        return game

    def get_game(self, game_id: str) -> ScheduledGame | None:
        with self._session() as session:
            row = session.get(GameRow, game_id)
            return ScheduledGame.model_validate(row) if row is not None else None

    def find_game(
        self,
        season_id: str,
        week: int,
        home_team_id: str,
        away_team_id: str,
    ) -> ScheduledGame | None:
        stmt = select(GameRow).where(
            GameRow.season_id == season_id,
            GameRow.week == week,
            GameRow.home_team_id == home_team_id,
            GameRow.away_team_id == away_team_id,
        )
        with self._session() as session:
            row = session.scalars(stmt).first()
            return ScheduledGame.model_validate(row) if row is not None else None

    def update_game(self, game_id: str, changes: GameUpdate) -> None:
        values: dict[str, Any] = changes.changed_fields()
        if "season_phase" in values:
            values["season_phase"] = int(values["season_phase"])
        now = utcnow()
        with self._session() as session:
            session.execute(
                update(GameRow)
                .where(GameRow.id == game_id)
                .values(**values, scores_updated_at=now, updated_at=now),
            )

    def get_games(self, season_id: str, week: int | None = None) -> list[ScheduledGame]:
        stmt = select(GameRow).where(GameRow.season_id == season_id)
        if week is not None:
            stmt = stmt.where(GameRow.week == week)
        stmt = stmt.order_by(GameRow.week, GameRow.start_time)
        with self._session() as session:
            return [ScheduledGame.model_validate(r) for r in session.scalars(stmt).all()]

    def has_games_on_date(
        self,
        season_id: str,
        day: datetime.date,
        tz: datetime.tzinfo = EASTERN,
    ) -> bool:
        start = datetime.datetime.combine(day, datetime.time.min, tzinfo=tz)
        end = start + datetime.timedelta(days=1)
        kickoff = func.coalesce(GameRow.start_time, GameRow.game_date)
        stmt = (
            select(func.count())
            .select_from(GameRow)
            .where(
                GameRow.season_id == season_id,
                kickoff >= start.astimezone(datetime.timezone.utc).replace(tzinfo=None),
                kickoff < end.astimezone(datetime.timezone.utc).replace(tzinfo=None),
            )
        )
        with self._session() as session:
            return bool(session.scalar(stmt))

    # -- picks ---------------------------------------------------------------

    def add_pick(self, pick: Pick) -> Pick:
        with self._session() as session:
            session.add(PickRow(**_row_values(pick)))
        return pick

    def get_picks_for_game(self, football_game_id: str) -> list[Pick]:
        stmt = select(PickRow).where(PickRow.football_game_id == football_game_id)
        with self._session() as session:
            return [Pick.model_validate(r) for r in session.scalars(stmt).all()]

    def update_picks_for_game(self, football_game_id: str, winning_team_id: str | None) -> int:
        if winning_team_id is None:
            outcome: Any = False
        else:
            outcome = case((PickRow.pick_team_id == winning_team_id, True), else_=False)
        stmt = (
            update(PickRow)
            .where(PickRow.football_game_id == football_game_id)
            .values(is_correct=outcome, updated_at=utcnow())
        )
        with self._session() as session:
            result = session.execute(stmt)
            return int(result.rowcount or 0)  # type: ignore[attr-defined]

    def get_pick_stats(self, season_id: str, week: int | None = None) -> PickStats:
        stmt = select(
            func.count(),
            func.count(case((PickRow.is_correct.is_(True), 1))),
            func.count(case((PickRow.is_correct.is_(False), 1))),
            func.count(case((PickRow.is_correct.is_(None), 1))),
        ).where(PickRow.season_id == season_id)
        if week is not None:
            stmt = stmt.where(PickRow.week == week)
        with self._session() as session:
            total, correct, incorrect, pending = session.execute(stmt).one()
        return PickStats(
            total_picks=total,
            correct_picks=correct,
            incorrect_picks=incorrect,
            pending_picks=pending,
            accuracy_percentage=compute_accuracy(correct, correct + incorrect),
        )
