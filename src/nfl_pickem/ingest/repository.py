"""Repository pattern for pick'em data storage.

Defines the abstract ``Repository`` port the sync, scoring and refresh code
depend on, plus a ``ParquetRepository`` implementation: a key-value style
table store with one Parquet file per table and ``scan``/``put``/``update``/
``delete`` primitives.  The relational implementation lives in
:mod:`nfl_pickem.ingest.sql`; :func:`create_repository` picks one at startup.
"""

from __future__ import annotations

import abc
import datetime
import enum
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

import pandas as pd  # type: ignore[import-untyped]
import pyarrow as pa  # type: ignore[import-untyped]
import pyarrow.parquet as pq  # type: ignore[import-untyped]
from pydantic import BaseModel

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
from nfl_pickem.utils.assertions import assert_columns, assert_no_nulls

if TYPE_CHECKING:
    from nfl_pickem.config import Settings

EASTERN = ZoneInfo("America/New_York")

# ---------------------------------------------------------------------------
# Abstract Repository
# ---------------------------------------------------------------------------


class Repository(abc.ABC):
    """Abstract persistence port for seasons, teams, games and picks."""

    # -- seasons -------------------------------------------------------------

    @abc.abstractmethod
    def add_season(self, season: Season) -> Season:
        """Insert *season*; when it is current, clear the flag on all others."""

    @abc.abstractmethod
    def get_season(self, season_id: str) -> Season | None: ...

    @abc.abstractmethod
    def list_seasons(self) -> list[Season]: ...

    @abc.abstractmethod
    def set_current_season(self, season_id: str) -> None:
        """Mark *season_id* current and every other season not current."""

    def get_current_season(self) -> Season | None:
        """Return the current season (the newest one if several are flagged)."""
        current = [s for s in self.list_seasons() if s.is_current]
        if not current:
            return None
        return max(current, key=lambda s: s.year)

    # -- teams ---------------------------------------------------------------

    @abc.abstractmethod
    def add_team(self, team: Team) -> Team: ...

    @abc.abstractmethod
    def get_team_by_code(self, team_code: str) -> Team | None: ...

    @abc.abstractmethod
    def list_teams(self) -> list[Team]: ...

    @abc.abstractmethod
    def backfill_team_colors(
        self,
        team_id: str,
        primary_color: str | None,
        secondary_color: str | None,
    ) -> Team:
        """Fill in colors that are currently null; stored colors are never overwritten."""

    # -- games ---------------------------------------------------------------

    @abc.abstractmethod
    def add_game(self, game: ScheduledGame) -> ScheduledGame: ...

    @abc.abstractmethod
    def get_game(self, game_id: str) -> ScheduledGame | None: ...

    @abc.abstractmethod
    def find_game(
        self,
        season_id: str,
        week: int,
        home_team_id: str,
        away_team_id: str,
    ) -> ScheduledGame | None:
        """Look a game up by its natural identity."""

    @abc.abstractmethod
    def update_game(self, game_id: str, changes: GameUpdate) -> None:
        """Apply *changes* and stamp ``scores_updated_at``/``updated_at``."""

    @abc.abstractmethod
    def get_games(self, season_id: str, week: int | None = None) -> list[ScheduledGame]: ...

    def has_games_on_date(
        self,
        season_id: str,
        day: datetime.date,
        tz: datetime.tzinfo = EASTERN,
    ) -> bool:
        """Whether any game of the season starts on *day* in timezone *tz*."""
        for game in self.get_games(season_id):
            kickoff = game.start_time or game.game_date
            if kickoff is not None and kickoff.astimezone(tz).date() == day:
                return True
        return False

    # -- picks ---------------------------------------------------------------

    @abc.abstractmethod
    def add_pick(self, pick: Pick) -> Pick: ...

    @abc.abstractmethod
    def get_picks_for_game(self, football_game_id: str) -> list[Pick]: ...

    @abc.abstractmethod
    def update_picks_for_game(self, football_game_id: str, winning_team_id: str | None) -> int:
        """Mark every pick on the game correct iff it chose *winning_team_id*.

        ``None`` (a tie) marks every pick incorrect.  Returns the number of
        picks written.
        """

    @abc.abstractmethod
    def get_pick_stats(self, season_id: str, week: int | None = None) -> PickStats: ...


# ---------------------------------------------------------------------------
# Parquet Repository
# ---------------------------------------------------------------------------

_TS = pa.timestamp("us", tz="UTC")

_SCHEMAS: dict[str, pa.Schema] = {
    "seasons": pa.schema([
        ("id", pa.string()),
        ("year", pa.string()),
        ("is_current", pa.bool_()),
        ("created_at", _TS),
    ]),
    "teams": pa.schema([
        ("id", pa.string()),
        ("team_code", pa.string()),
        ("team_name", pa.string()),
        ("team_city", pa.string()),
        ("team_conference", pa.string()),
        ("team_division", pa.string()),
        ("team_logo", pa.string()),
        ("team_primary_color", pa.string()),
        ("team_secondary_color", pa.string()),
        ("updated_at", _TS),
    ]),
    "games": pa.schema([
        ("id", pa.string()),
        ("season_id", pa.string()),
        ("week", pa.int64()),
        ("season_phase", pa.int64()),
        ("home_team_id", pa.string()),
        ("away_team_id", pa.string()),
        ("home_score", pa.int64()),
        ("away_score", pa.int64()),
        ("game_date", _TS),
        ("start_time", _TS),
        ("status", pa.string()),
        ("scores_updated_at", _TS),
        ("updated_at", _TS),
    ]),
    "picks": pa.schema([
        ("id", pa.string()),
        ("user_id", pa.string()),
        ("pool_id", pa.string()),
        ("season_id", pa.string()),
        ("week", pa.int64()),
        ("football_game_id", pa.string()),
        ("pick_team_id", pa.string()),
        ("is_correct", pa.bool_()),
        ("tiebreaker", pa.int64()),
        ("updated_at", _TS),
    ]),
}


_MODELS: dict[str, type[BaseModel]] = {
    "seasons": Season,
    "teams": Team,
    "games": ScheduledGame,
    "picks": Pick,
}


def _to_row(model: BaseModel) -> dict[str, Any]:
    return {k: int(v) if isinstance(v, enum.IntEnum) else v for k, v in model.model_dump().items()}


def _py_value(value: Any) -> Any:
    return value.to_pydatetime() if isinstance(value, pd.Timestamp) else value


def _frame_records(df: pd.DataFrame) -> list[dict[str, Any]]:
    """Convert a frame to records with ``None`` in place of NaN/NaT."""
    if df.empty:
        return []
    records = df.astype(object).where(df.notna(), None).to_dict(orient="records")
    return [{k: _py_value(v) for k, v in row.items()} for row in records]


class ParquetRepository(Repository):
    """Repository implementation backed by one Parquet file per table.

    Directory layout::

        {base_path}/
            seasons.parquet
            teams.parquet
            games.parquet
            picks.parquet

    Every write rewrites the table file; a lock serializes read-modify-write
    cycles within the process.  Rows always pass through the table's Pydantic
    model on the way in and out.
    """

    def __init__(self, base_path: Path) -> None:
        self._base_path = base_path
        self._lock = threading.RLock()

    # -- key-value primitives -------------------------------------------------

    def _path(self, table: str) -> Path:
        return self._base_path / f"{table}.parquet"

    def _read_frame(self, table: str) -> pd.DataFrame:
        schema = _SCHEMAS[table]
        path = self._path(table)
        if not path.exists():
            return schema.empty_table().to_pandas()
        df = pd.read_parquet(path, engine="pyarrow")
        assert_columns(df, schema.names)
        assert_no_nulls(df, ["id"])
        return df

    def _load(self, table: str) -> list[Any]:
        model = _MODELS[table]
        return [model(**row) for row in _frame_records(self._read_frame(table))]

    def _store(self, table: str, items: list[Any]) -> None:
        self._base_path.mkdir(parents=True, exist_ok=True)
        rows = [_to_row(item) for item in items]
        pq.write_table(pa.Table.from_pylist(rows, schema=_SCHEMAS[table]), self._path(table))

    def scan(self, table: str, predicate: Callable[[Any], bool] | None = None) -> list[Any]:
        """Return every item of *table*, optionally filtered by *predicate*."""
        with self._lock:
            items = self._load(table)
        if predicate is None:
            return items
        return [item for item in items if predicate(item)]

    def put(self, table: str, item: BaseModel) -> None:
        """Insert or replace *item* by its ``id``."""
        with self._lock:
            items = [i for i in self._load(table) if i.id != item.id]  # type: ignore[attr-defined]
            items.append(item)
            self._store(table, items)

    def update(self, table: str, key: str, changes: dict[str, Any]) -> int:
        """Merge *changes* into the item with id *key*; returns 1 if found, else 0."""
        return self.update_where(table, lambda i: i.id == key, lambda _: changes)

    def update_where(
        self,
        table: str,
        predicate: Callable[[Any], bool],
        changes: Callable[[Any], dict[str, Any]],
    ) -> int:
        """Merge ``changes(item)`` into every item matching *predicate*.

        Returns the number of matching items.
        """
        model = _MODELS[table]
        with self._lock:
            items = self._load(table)
            touched = 0
            for idx, item in enumerate(items):
                if not predicate(item):
                    continue
                touched += 1
                update = changes(item)
                if update:
                    items[idx] = model(**{**item.model_dump(), **update})
            if touched:
                self._store(table, items)
        return touched

    def delete(self, table: str, key: str) -> None:
        with self._lock:
            items = self._load(table)
            remaining = [i for i in items if i.id != key]
            if len(remaining) != len(items):
                self._store(table, remaining)

    # -- seasons -------------------------------------------------------------

    def add_season(self, season: Season) -> Season:
        with self._lock:
            if season.is_current:
                self.update_where("seasons", lambda s: s.is_current, lambda _: {"is_current": False})
            self.put("seasons", season)
        return season

    def get_season(self, season_id: str) -> Season | None:
        return next(iter(self.scan("seasons", lambda s: s.id == season_id)), None)

    def list_seasons(self) -> list[Season]:
        return self.scan("seasons")

    def set_current_season(self, season_id: str) -> None:
        self.update_where("seasons", lambda _: True, lambda s: {"is_current": s.id == season_id})

    # -- teams ---------------------------------------------------------------

    def add_team(self, team: Team) -> Team:
        self.put("teams", team)
        return team

    def get_team_by_code(self, team_code: str) -> Team | None:
        return next(iter(self.scan("teams", lambda t: t.team_code == team_code)), None)

    def list_teams(self) -> list[Team]:
        return sorted(self.scan("teams"), key=lambda t: t.team_code)

    def backfill_team_colors(
        self,
        team_id: str,
        primary_color: str | None,
        secondary_color: str | None,
    ) -> Team:
        def fill(team: Team) -> dict[str, Any]:
            changes: dict[str, Any] = {}
            if primary_color and not team.team_primary_color:
                changes["team_primary_color"] = primary_color
            if secondary_color and not team.team_secondary_color:
                changes["team_secondary_color"] = secondary_color
            if changes:
                changes["updated_at"] = utcnow()
            return changes

        with self._lock:
            self.update_where("teams", lambda t: t.id == team_id, fill)
            team = next(iter(self.scan("teams", lambda t: t.id == team_id)), None)
        if team is None:
            msg = f"No team with id {team_id!r}"
            raise KeyError(msg)
        return team

    # -- games ---------------------------------------------------------------

    def add_game(self, game: ScheduledGame) -> ScheduledGame:
        self.put("games", game)
        return game

    def get_game(self, game_id: str) -> ScheduledGame | None:
        return next(iter(self.scan("games", lambda g: g.id == game_id)), None)

    def find_game(
        self,
        season_id: str,
        week: int,
        home_team_id: str,
        away_team_id: str,
    ) -> ScheduledGame | None:
        identity = (season_id, week, home_team_id, away_team_id)
        matches = self.scan(
            "games",
            lambda g: (g.season_id, g.week, g.home_team_id, g.away_team_id) == identity,
        )
        return matches[0] if matches else None

    def update_game(self, game_id: str, changes: GameUpdate) -> None:
        now = utcnow()
        fields = {**changes.changed_fields(), "scores_updated_at": now, "updated_at": now}
        self.update("games", game_id, fields)

    def get_games(self, season_id: str, week: int | None = None) -> list[ScheduledGame]:
        games: list[ScheduledGame] = self.scan(
            "games",
            lambda g: g.season_id == season_id and (week is None or g.week == week),
        )
        return sorted(games, key=lambda g: (g.week, g.start_time is None, g.start_time or utcnow()))

    def has_games_on_date(
        self,
        season_id: str,
        day: datetime.date,
        tz: datetime.tzinfo = EASTERN,
    ) -> bool:
        with self._lock:
            df = self._read_frame("games")
        df = df[df["season_id"] == season_id]
        if df.empty:
            return False
        kickoff = df["start_time"].fillna(df["game_date"]).dropna()
        if kickoff.empty:
            return False
        return bool((kickoff.dt.tz_convert(tz).dt.date == day).any())

    # -- picks ---------------------------------------------------------------

    def add_pick(self, pick: Pick) -> Pick:
        self.put("picks", pick)
        return pick

    def get_picks_for_game(self, football_game_id: str) -> list[Pick]:
        return self.scan("picks", lambda p: p.football_game_id == football_game_id)

    def update_picks_for_game(self, football_game_id: str, winning_team_id: str | None) -> int:
        now = utcnow()
        return self.update_where(
            "picks",
            lambda p: p.football_game_id == football_game_id,
            lambda p: {
                "is_correct": winning_team_id is not None and p.pick_team_id == winning_team_id,
                "updated_at": now,
            },
        )

    def get_pick_stats(self, season_id: str, week: int | None = None) -> PickStats:
        with self._lock:
            df = self._read_frame("picks")
        mask = df["season_id"] == season_id
        if week is not None:
            mask &= df["week"] == week
        outcomes = df.loc[mask, "is_correct"]
        correct = int(outcomes.eq(True).sum())
        incorrect = int(outcomes.eq(False).sum())
        return PickStats(
            total_picks=len(outcomes),
            correct_picks=correct,
            incorrect_picks=incorrect,
            pending_picks=int(outcomes.isna().sum()),
            accuracy_percentage=compute_accuracy(correct, correct + incorrect),
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_repository(settings: Settings) -> Repository:
    """Build the repository the deployment is configured for."""
    if settings.db_backend == "parquet":
        return ParquetRepository(settings.data_dir)

    from nfl_pickem.ingest.sql import SqlRepository

    return SqlRepository.from_url(settings.resolved_database_url)
