"""Sync engine reconciling score-source data with stored teams and games.

`GameSync` resolves external teams to stored `Team` rows (creating them on
full syncs), then creates or updates `ScheduledGame` rows keyed by
``(season, week, home team, away team)``.  Scores-only refreshes touch the
score/status fields of games that already exist and never create anything.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable

from nfl_pickem.ingest.connectors.base import Connector
from nfl_pickem.ingest.repository import Repository
from nfl_pickem.ingest.schema import (
    ExternalGame,
    ExternalTeam,
    GameUpdate,
    ScheduledGame,
    SeasonPhase,
    Team,
    new_id,
    utcnow,
)
from nfl_pickem.utils.logger import VERBOSE

logger = logging.getLogger(__name__)

# ESPN abbreviations that differ from the canonical codes stored in football_teams.
TEAM_CODE_MAP: dict[str, str] = {
    "WAS": "WSH",
}


def canonical_team_code(code: str) -> str:
    """Map a source team code onto the internal canonical code."""
    upper = code.strip().upper()
    return TEAM_CODE_MAP.get(upper, upper)


def _hex_color(value: str | None) -> str | None:
    """ESPN sends colors as bare hex (``'E31837'``); store them as ``'#E31837'``."""
    if not value:
        return None
    return value if value.startswith("#") else f"#{value}"


class NoCurrentSeasonError(RuntimeError):
    """No season is flagged as current."""


@dataclasses.dataclass
class SyncResult:
    """Counts from one sync call."""

    created: int = 0
    updated: int = 0
    skipped: int = 0


@dataclasses.dataclass
class WeekSyncResult:
    """Counts from syncing one week of the current season."""

    week: int
    season_phase: SeasonPhase
    created: int = 0
    updated: int = 0


class GameSync:
    """Creates and updates stored teams and games from a score source.

    Args:
        repository: Persistence port for teams, seasons and games.
        connector: Source of schedule and score data.
    """

    def __init__(self, repository: Repository, connector: Connector) -> None:
        self._repo = repository
        self._connector = connector

    # -- teams ---------------------------------------------------------------

    def resolve_team(self, team: ExternalTeam, *, create: bool = True) -> Team | None:
        """Find the stored team for *team*, creating it when allowed.

        Existing teams only get colors filled in where none are stored.
        Returns ``None`` when the team is unknown and *create* is false.
        """
        code = canonical_team_code(team.abbreviation)
        primary = _hex_color(team.color)
        secondary = _hex_color(team.alternate_color)

        existing = self._repo.get_team_by_code(code)
        if existing is not None:
            missing_primary = primary and not existing.team_primary_color
            missing_secondary = secondary and not existing.team_secondary_color
            if missing_primary or missing_secondary:
                return self._repo.backfill_team_colors(existing.id, primary, secondary)
            return existing

        if not create:
            return None

        created = self._repo.add_team(
            Team(
                id=new_id(),
                team_code=code,
                team_name=team.name,
                team_city=team.location,
                # The scoreboard endpoint does not report conference or division.
                team_conference="Unknown",
                team_division="Unknown",
                team_logo=None,
                team_primary_color=primary,
                team_secondary_color=secondary,
                updated_at=utcnow(),
            ),
        )
        logger.info("sync: created team %s (%s %s)", code, team.location, team.name)
        return created

    # -- games ---------------------------------------------------------------

    def sync_games(
        self,
        season_id: str,
        games: Iterable[ExternalGame],
        *,
        scores_only: bool = False,
    ) -> SyncResult:
        """Upsert *games* into *season_id*."""
        result = SyncResult()
        for game in games:
            home = game.competitor("home")
            away = game.competitor("away")
            if home is None or away is None:
                logger.debug("sync: skipping %s, missing home/away competitor", game.external_id)
                result.skipped += 1
                continue

            home_team = self.resolve_team(home.team, create=not scores_only)
            away_team = self.resolve_team(away.team, create=not scores_only)
            if home_team is None or away_team is None:
                logger.warning(
                    "sync: skipping %s, unresolved team code(s) %s/%s",
                    game.external_id,
                    home.team.abbreviation,
                    away.team.abbreviation,
                )
                result.skipped += 1
                continue

            existing = self._repo.find_game(season_id, game.week, home_team.id, away_team.id)
            start_time = game.competition_date or game.date

            if existing is not None:
                if scores_only:
                    changes = GameUpdate(
                        home_score=home.score,
                        away_score=away.score,
                        status=game.status.type,
                    )
                else:
                    changes = GameUpdate(
                        home_score=home.score,
                        away_score=away.score,
                        status=game.status.type,
                        game_date=game.date,
                        start_time=start_time,
                        season_phase=game.season_phase,
                    )
                self._repo.update_game(existing.id, changes)
                result.updated += 1
                continue

            if scores_only:
                logger.debug("sync: scores-only refresh ignores unknown game %s", game.external_id)
                result.skipped += 1
                continue

            now = utcnow()
            self._repo.add_game(
                ScheduledGame(
                    id=new_id(),
                    season_id=season_id,
                    week=game.week,
                    season_phase=game.season_phase,
                    home_team_id=home_team.id,
                    away_team_id=away_team.id,
                    home_score=home.score,
                    away_score=away.score,
                    game_date=game.date,
                    start_time=start_time,
                    status=game.status.type,
                    scores_updated_at=now,
                    updated_at=now,
                ),
            )
            result.created += 1
        return result

    def _season_year(self, season_id: str) -> int | None:
        season = self._repo.get_season(season_id)
        if season is None:
            return None
        try:
            return int(season.year)
        except ValueError:
            return None

    def update_nfl_games(
        self,
        season_id: str,
        week: int | None = None,
        season_phase: SeasonPhase | None = None,
        scores_only: bool = False,
    ) -> SyncResult:
        """Fetch one week (or the whole schedule) and upsert it into *season_id*.

        Without a *week* the full schedule, preseason included, is fetched.

        Raises:
            ConnectorError: The source failed after retries.
        """
        year = self._season_year(season_id)
        if week is not None:
            phase = season_phase or SeasonPhase.REGULAR
            games = self._connector.fetch_weekly_games(week, phase, year)
        else:
            games = self._connector.fetch_full_schedule(year, include_preseason=True)

        result = self.sync_games(season_id, games, scores_only=scores_only)
        logger.log(
            VERBOSE if scores_only else logging.INFO,
            "sync: %s complete for season %s%s: %d created, %d updated, %d skipped",
            "score refresh" if scores_only else "schedule sync",
            season_id,
            f" week {week}" if week is not None else "",
            result.created,
            result.updated,
            result.skipped,
        )
        return result

    def update_game_scores(self) -> list[WeekSyncResult]:
        """Sync the previous and current league week of the current season.

        Raises:
            NoCurrentSeasonError: No season is flagged current.
            ConnectorError: The source failed after retries.
        """
        season = self._repo.get_current_season()
        if season is None:
            msg = "No current season set"
            raise NoCurrentSeasonError(msg)

        status = self._connector.fetch_season_status()
        weeks = list(dict.fromkeys([max(1, status.week - 1), status.week]))

        results: list[WeekSyncResult] = []
        for week in weeks:
            outcome = self.update_nfl_games(season.id, week, status.phase)
            results.append(
                WeekSyncResult(
                    week=week,
                    season_phase=status.phase,
                    created=outcome.created,
                    updated=outcome.updated,
                ),
            )
        return results
