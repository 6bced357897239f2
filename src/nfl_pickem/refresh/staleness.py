"""Staleness-driven score refresh.

:class:`OnDemandUpdater` decides whether the stored scores for a
``(season, week)`` are fresh enough to serve.  When they are not, it refreshes
the requested week plus a small neighborhood of adjacent weeks (scores-only
sync followed by pick scoring) so late corrections to recently completed
games are picked up.

Two staleness policies are available:

``per_game`` (default)
    Stale when the week has no games; when it has games still in
    ``STATUS_SCHEDULED`` and no game has ever been updated; or when any
    terminal game has no ``scores_updated_at`` or one older than the
    threshold.

``elapsed``
    Stale when the week has no games, none has been updated, or the most
    recent update is older than the threshold.
"""

from __future__ import annotations

import dataclasses
import datetime
import logging
from collections.abc import Callable, Sequence
from typing import Literal

from nfl_pickem.ingest.connectors.base import Connector
from nfl_pickem.ingest.repository import Repository
from nfl_pickem.ingest.schema import SCHEDULED_STATUS, ScheduledGame, utcnow
from nfl_pickem.ingest.sync import GameSync, NoCurrentSeasonError
from nfl_pickem.scoring.calculator import PickScorer

logger = logging.getLogger(__name__)

StalenessPolicy = Literal["per_game", "elapsed"]

DEFAULT_STALE_MINUTES = 10.0

REASON_RECENT = "Scores are recent"
REASON_STALE = "Scores were stale"
REASON_FAILED = "Update failed"
REASON_NO_WEEK = "Failed to get current week"


@dataclasses.dataclass(frozen=True)
class RefreshResult:
    """Outcome of an on-demand refresh request."""

    updated: bool
    reason: str
    last_update: datetime.datetime | None = None
    games_updated: int = 0
    games_created: int = 0
    picks_updated: int = 0
    error: str | None = None


def weeks_to_refresh(week: int, current_week: int) -> list[int]:
    """Weeks refreshed together when *week* is requested.

    The current week brings the previous one along; the previous week brings
    the current one along; any other week is refreshed alone.
    """
    if week == current_week:
        candidates = [max(1, week - 1), week]
    elif week == current_week - 1:
        candidates = [week, current_week]
    else:
        candidates = [week]
    return list(dict.fromkeys(candidates))


def latest_update(games: Sequence[ScheduledGame]) -> datetime.datetime | None:
    stamps = [g.scores_updated_at for g in games if g.scores_updated_at is not None]
    return max(stamps) if stamps else None


def format_last_update(ts: datetime.datetime | None, now: datetime.datetime | None = None) -> str:
    """Human-readable age of *ts* (``"Just now"``, ``"5 minutes ago"``, ...)."""
    if ts is None:
        return "Never updated"
    now = now or utcnow()
    minutes = int((now - ts).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes == 1:
        return "1 minute ago"
    if minutes < 60:
        return f"{minutes} minutes ago"
    hours = minutes // 60
    if hours == 1:
        return "1 hour ago"
    if hours < 24:
        return f"{hours} hours ago"
    return ts.strftime("%Y-%m-%d %H:%M")


class OnDemandUpdater:
    """Refreshes a week's scores only when they have gone stale.

    Args:
        repository: Persistence port holding seasons and games.
        connector: Score source, used for the league's current week and phase.
        game_sync: Upsert engine used in scores-only mode.
        scorer: Pick scorer run after each refreshed week.
        stale_minutes: Age after which a score is considered stale.
        policy: ``"per_game"`` or ``"elapsed"``.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        repository: Repository,
        connector: Connector,
        game_sync: GameSync,
        scorer: PickScorer,
        *,
        stale_minutes: float = DEFAULT_STALE_MINUTES,
        policy: StalenessPolicy = "per_game",
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        if policy not in ("per_game", "elapsed"):
            msg = f"Unknown staleness policy: {policy!r}"
            raise ValueError(msg)
        self._repo = repository
        self._connector = connector
        self._sync = game_sync
        self._scorer = scorer
        self.stale_threshold = datetime.timedelta(minutes=stale_minutes)
        self.policy: StalenessPolicy = policy
        self._clock = clock

    # -- staleness -----------------------------------------------------------

    def _is_old(self, ts: datetime.datetime | None, now: datetime.datetime) -> bool:
        return ts is None or now - ts > self.stale_threshold

    def _per_game_stale(self, games: Sequence[ScheduledGame], now: datetime.datetime) -> bool:
        if not games:
            return True
        none_updated = all(g.scores_updated_at is None for g in games)
        if none_updated and any(g.status == SCHEDULED_STATUS for g in games):
            return True
        return any(self._is_old(g.scores_updated_at, now) for g in games if g.is_final)

    def _elapsed_stale(self, games: Sequence[ScheduledGame], now: datetime.datetime) -> bool:
        if not games:
            return True
        return self._is_old(latest_update(games), now)

    def are_scores_stale(self, season_id: str, week: int) -> bool:
        """True when *week* should be re-fetched; a storage error counts as stale."""
        try:
            games = self._repo.get_games(season_id, week)
        except Exception:  # noqa: BLE001
            logger.exception("refresh: could not check staleness for season %s week %d", season_id, week)
            return True
        now = self._clock()
        if self.policy == "elapsed":
            return self._elapsed_stale(games, now)
        return self._per_game_stale(games, now)

    def get_last_update_time(self, season_id: str, week: int) -> datetime.datetime | None:
        """Newest ``scores_updated_at`` in the week, or ``None``."""
        try:
            games = self._repo.get_games(season_id, week)
        except Exception:  # noqa: BLE001
            logger.exception("refresh: could not read last update for season %s week %d", season_id, week)
            return None
        return latest_update(games)

    # -- refresh -------------------------------------------------------------

    def update_scores_if_stale(self, season_id: str, week: int) -> RefreshResult:
        """Refresh *week* and its neighborhood when its scores are stale."""
        if not self.are_scores_stale(season_id, week):
            return RefreshResult(
                updated=False,
                reason=REASON_RECENT,
                last_update=self.get_last_update_time(season_id, week),
            )

        try:
            status = self._connector.fetch_season_status()
        except Exception as exc:  # noqa: BLE001
            logger.exception("refresh: on-demand update failed for season %s week %d", season_id, week)
            return RefreshResult(updated=False, reason=REASON_FAILED, error=str(exc))

        weeks = weeks_to_refresh(week, status.week)
        logger.info("refresh: updating stale scores for season %s, weeks %s", season_id, weeks)

        games_updated = games_created = picks_updated = 0
        for target in weeks:
            try:
                synced = self._sync.update_nfl_games(season_id, target, status.phase, scores_only=True)
            except Exception:  # noqa: BLE001
                logger.exception("refresh: failed to update week %d", target)
                continue
            games_updated += synced.updated
            games_created += synced.created

            try:
                scored = self._scorer.calculate_picks(season_id, target)
            except Exception:  # noqa: BLE001
                logger.exception("refresh: failed to calculate picks for week %d", target)
                continue
            picks_updated += scored.updated_picks

        return RefreshResult(
            updated=True,
            reason=REASON_STALE,
            last_update=self.get_last_update_time(season_id, week),
            games_updated=games_updated,
            games_created=games_created,
            picks_updated=picks_updated,
        )

    def update_current_week_if_stale(self) -> RefreshResult:
        """Run :meth:`update_scores_if_stale` for the current season and league week."""
        try:
            season = self._repo.get_current_season()
            if season is None:
                msg = "No current season set"
                raise NoCurrentSeasonError(msg)
            status = self._connector.fetch_season_status()
        except Exception as exc:  # noqa: BLE001
            logger.exception("refresh: could not resolve the current week")
            return RefreshResult(updated=False, reason=REASON_NO_WEEK, error=str(exc))
        return self.update_scores_if_stale(season.id, status.week)
