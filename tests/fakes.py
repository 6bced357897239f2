"""In-memory connector and record builders shared by the test suite."""

from __future__ import annotations

import datetime
from collections.abc import Iterable

from nfl_pickem.ingest.connectors.base import Connector, NetworkError
from nfl_pickem.ingest.schema import (
    ExternalCompetitor,
    ExternalGame,
    ExternalTeam,
    GameStatus,
    Pick,
    ScheduledGame,
    SeasonInfo,
    SeasonPhase,
    SeasonStatus,
    Team,
    new_id,
)

KICKOFF = datetime.datetime(2024, 10, 6, 17, 0, tzinfo=datetime.timezone.utc)

_TEAM_INFO: dict[str, tuple[str, str, str, str]] = {
    "KC": ("Chiefs", "Kansas City", "E31837", "FFB612"),
    "DEN": ("Broncos", "Denver", "FB4F14", "002244"),
    "WAS": ("Commanders", "Washington", "5A1414", "FFB612"),
    "DAL": ("Cowboys", "Dallas", "002244", "B0B7BC"),
    "BUF": ("Bills", "Buffalo", "00338D", "C60C30"),
    "MIA": ("Dolphins", "Miami", "008E97", "FC4C02"),
}


def external_team(code: str, *, with_colors: bool = True) -> ExternalTeam:
    name, city, color, alt = _TEAM_INFO.get(code, (code.title(), code.title(), "000000", "FFFFFF"))
    return ExternalTeam(
        abbreviation=code,
        display_name=f"{city} {name}",
        name=name,
        location=city,
        color=color if with_colors else None,
        alternate_color=alt if with_colors else None,
    )


def external_game(
    home: str = "KC",
    away: str = "DEN",
    *,
    home_score: int = 27,
    away_score: int = 20,
    week: int = 5,
    status: str = "STATUS_FINAL",
    phase: SeasonPhase = SeasonPhase.REGULAR,
    kickoff: datetime.datetime = KICKOFF,
    with_colors: bool = True,
) -> ExternalGame:
    return ExternalGame(
        external_id=new_id(),
        name=f"{away} at {home}",
        short_name=f"{away} @ {home}",
        date=kickoff,
        status=GameStatus(type=status, completed=status == "STATUS_FINAL"),
        week=week,
        season=2024,
        season_phase=phase,
        competition_date=kickoff,
        competitors=[
            ExternalCompetitor(home_away="home", score=home_score, team=external_team(home, with_colors=with_colors)),
            ExternalCompetitor(home_away="away", score=away_score, team=external_team(away, with_colors=with_colors)),
        ],
    )


def make_team(code: str, **overrides: object) -> Team:
    values: dict[str, object] = {"id": f"team-{code}", "team_code": code, "team_name": code}
    values.update(overrides)
    return Team.model_validate(values)


def make_game(
    season_id: str,
    home_team_id: str,
    away_team_id: str,
    **overrides: object,
) -> ScheduledGame:
    values: dict[str, object] = {
        "id": new_id(),
        "season_id": season_id,
        "week": 5,
        "home_team_id": home_team_id,
        "away_team_id": away_team_id,
        "home_score": 0,
        "away_score": 0,
        "game_date": KICKOFF,
        "start_time": KICKOFF,
        "status": "STATUS_SCHEDULED",
    }
    values.update(overrides)
    return ScheduledGame.model_validate(values)


def make_pick(game: ScheduledGame, pick_team_id: str, user_id: str = "user-1", **overrides: object) -> Pick:
    values: dict[str, object] = {
        "id": new_id(),
        "user_id": user_id,
        "pool_id": "pool-1",
        "season_id": game.season_id,
        "week": game.week,
        "football_game_id": game.id,
        "pick_team_id": pick_team_id,
    }
    values.update(overrides)
    return Pick.model_validate(values)


class FakeConnector(Connector):
    """Serves canned games per ``(phase, week)`` and records every call."""

    def __init__(
        self,
        games: Iterable[ExternalGame] = (),
        *,
        year: int = 2024,
        phase: SeasonPhase = SeasonPhase.REGULAR,
        current_week: int = 5,
    ) -> None:
        self.year = year
        self.phase = phase
        self.current_week = current_week
        self.games: dict[tuple[SeasonPhase, int], list[ExternalGame]] = {}
        self.failing_weeks: set[int] = set()
        self.calls: list[tuple[int, SeasonPhase, int | None]] = []
        self.set_games(games)

    def set_games(self, games: Iterable[ExternalGame]) -> None:
        self.games = {}
        for game in games:
            self.games.setdefault((game.season_phase, game.week), []).append(game)

    def fetch_current_season(self) -> SeasonInfo:
        return SeasonInfo(year=self.year, phase=self.phase)

    def fetch_season_status(self, today: datetime.date | None = None) -> SeasonStatus:
        return SeasonStatus(year=self.year, phase=self.phase, week=self.current_week)

    def fetch_weekly_games(
        self,
        week: int,
        season_phase: SeasonPhase = SeasonPhase.REGULAR,
        year: int | None = None,
    ) -> list[ExternalGame]:
        self.calls.append((week, season_phase, year))
        if week in self.failing_weeks:
            msg = f"week {week} unavailable"
            raise NetworkError(msg)
        return list(self.games.get((season_phase, week), []))

    def fetch_full_schedule(
        self,
        year: int | None = None,
        include_preseason: bool = False,
    ) -> list[ExternalGame]:
        return [
            game
            for (phase, _), games in sorted(self.games.items())
            if include_preseason or phase is not SeasonPhase.PRESEASON
            for game in games
        ]
