"""Pydantic v2 schema models for pick'em entities.

Two groups of models live here:

* Stored entities -- `Season`, `Team`, `ScheduledGame`, `Pick` -- which every
  repository implementation reads and writes regardless of backend.
* Normalized upstream records -- `ExternalGame` and friends -- which the
  score-source connectors produce and the sync engine consumes.

All datetimes are timezone-aware UTC.  Storage backends that hand back naive
values (SQLite does) are interpreted as UTC on the way in.
"""

from __future__ import annotations

import datetime
import enum
import uuid
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


UtcDatetime = Annotated[datetime.datetime, AfterValidator(_as_utc)]


def utcnow() -> datetime.datetime:
    """Current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def new_id() -> str:
    """Surrogate key for a new stored entity."""
    return str(uuid.uuid4())


class SeasonPhase(enum.IntEnum):
    """Season phase codes, matching ESPN's ``seasontype`` parameter."""

    PRESEASON = 1
    REGULAR = 2
    POSTSEASON = 3

    @property
    def label(self) -> str:
        return _PHASE_LABELS[self]


_PHASE_LABELS: dict[SeasonPhase, str] = {
    SeasonPhase.PRESEASON: "Preseason",
    SeasonPhase.REGULAR: "Regular Season",
    SeasonPhase.POSTSEASON: "Postseason",
}

# Status spellings that mean "this game is over".
TERMINAL_STATUSES: frozenset[str] = frozenset({
    "STATUS_FINAL",
    "STATUS_FINAL_OVERTIME",
    "STATUS_CLOSED",
    "Final",
})

SCHEDULED_STATUS = "STATUS_SCHEDULED"


def is_terminal_status(status: str | None) -> bool:
    return status in TERMINAL_STATUSES


# ---------------------------------------------------------------------------
# Stored entities
# ---------------------------------------------------------------------------


class Season(BaseModel):
    """A year-scoped container for games and picks."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., min_length=1)
    year: str = Field(..., min_length=4)
    is_current: bool = False
    created_at: UtcDatetime | None = None


class Team(BaseModel):
    """An NFL franchise, identified by its canonical team code."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., min_length=1)
    team_code: str = Field(..., min_length=1)
    team_name: str = ""
    team_city: str = ""
    team_conference: str = "Unknown"
    team_division: str = "Unknown"
    team_logo: str | None = None
    team_primary_color: str | None = None
    team_secondary_color: str | None = None
    updated_at: UtcDatetime | None = None


class ScheduledGame(BaseModel):
    """One game on the schedule, with its latest known score and status."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., min_length=1)
    season_id: str = Field(..., min_length=1)
    week: int = Field(..., ge=1)
    season_phase: SeasonPhase = SeasonPhase.REGULAR
    home_team_id: str = Field(..., min_length=1)
    away_team_id: str = Field(..., min_length=1)
    home_score: int = Field(default=0, ge=0)
    away_score: int = Field(default=0, ge=0)
    game_date: UtcDatetime | None = None
    start_time: UtcDatetime | None = None
    status: str = SCHEDULED_STATUS
    scores_updated_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None

    @model_validator(mode="after")
    def _check_distinct_teams(self) -> ScheduledGame:
        if self.home_team_id == self.away_team_id:
            msg = f"home_team_id and away_team_id must differ (both are {self.home_team_id})"
            raise ValueError(msg)
        return self

    @property
    def is_final(self) -> bool:
        return is_terminal_status(self.status)


class GameUpdate(BaseModel):
    """Changes applied to an existing game by a sync.

    Scores and status are always written.  The schedule fields are ``None``
    on scores-only refreshes, meaning "leave unchanged".
    """

    home_score: int = Field(..., ge=0)
    away_score: int = Field(..., ge=0)
    status: str
    game_date: UtcDatetime | None = None
    start_time: UtcDatetime | None = None
    season_phase: SeasonPhase | None = None

    def changed_fields(self) -> dict[str, object]:
        return {k: v for k, v in self.model_dump().items() if v is not None}


class Pick(BaseModel):
    """One user's selection for one scheduled game inside one pool."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    pool_id: str = Field(..., min_length=1)
    season_id: str = Field(..., min_length=1)
    week: int = Field(..., ge=1)
    football_game_id: str = Field(..., min_length=1)
    pick_team_id: str = Field(..., min_length=1)
    is_correct: bool | None = None
    tiebreaker: int | None = None
    updated_at: UtcDatetime | None = None


class PickStats(BaseModel):
    """Aggregate pick outcomes for a season (optionally one week)."""

    total_picks: int = 0
    correct_picks: int = 0
    incorrect_picks: int = 0
    pending_picks: int = 0
    accuracy_percentage: float = 0.0


def compute_accuracy(correct: int, scored: int) -> float:
    """Percentage of scored picks that were correct, rounded to 2 places."""
    if scored == 0:
        return 0.0
    return round(correct * 100.0 / scored, 2)


# ---------------------------------------------------------------------------
# Normalized upstream records
# ---------------------------------------------------------------------------


class ExternalTeam(BaseModel):
    """Team descriptor as reported by the score source."""

    abbreviation: str = Field(..., min_length=1)
    display_name: str = ""
    name: str = ""
    location: str = ""
    color: str | None = None
    alternate_color: str | None = None
    logo: str | None = None


class ExternalCompetitor(BaseModel):
    competitor_id: str | None = None
    home_away: str
    score: int = Field(default=0, ge=0)
    record: str | None = None
    team: ExternalTeam


class GameStatus(BaseModel):
    type: str
    detail: str = ""
    completed: bool = False


class ExternalGame(BaseModel):
    """A single scoreboard event, normalized."""

    external_id: str
    name: str = ""
    short_name: str = ""
    date: UtcDatetime | None = None
    status: GameStatus
    week: int = Field(..., ge=1)
    season: int
    season_phase: SeasonPhase
    competition_date: UtcDatetime | None = None
    competitors: list[ExternalCompetitor] = Field(default_factory=list)

    def competitor(self, side: str) -> ExternalCompetitor | None:
        """Return the ``"home"`` or ``"away"`` competitor, if present."""
        return next((c for c in self.competitors if c.home_away == side), None)


class SeasonInfo(BaseModel):
    """The score source's idea of the current season."""

    year: int
    phase: SeasonPhase = SeasonPhase.REGULAR


class SeasonStatus(BaseModel):
    """Current season plus the league week it is believed to be in."""

    year: int
    phase: SeasonPhase
    week: int = Field(..., ge=1)

    @property
    def phase_label(self) -> str:
        return self.phase.label

    @property
    def is_preseason(self) -> bool:
        return self.phase is SeasonPhase.PRESEASON

    @property
    def is_regular_season(self) -> bool:
        return self.phase is SeasonPhase.REGULAR

    @property
    def is_postseason(self) -> bool:
        return self.phase is SeasonPhase.POSTSEASON
