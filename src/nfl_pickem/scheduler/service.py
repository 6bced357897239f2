"""Game-day score scheduler.

:class:`ScoreScheduler` drives score refreshes and pick scoring on a
wall-clock cadence, gated by coarse heuristics about whether NFL games are
likely under way:

* every 15 minutes (at :00, :15, :30, :45) -- score update on game days with
  scheduled games; outside active hours only the staleness check runs;
* hourly at :00 -- pick scoring over the previous and current week;
* every 6 hours -- off-hours staleness catch-up.

All calendar checks use US Eastern time.
"""

from __future__ import annotations

import dataclasses
import datetime
import logging
import time
from collections.abc import Callable

import schedule

from nfl_pickem.ingest.connectors.base import Connector
from nfl_pickem.ingest.repository import EASTERN, Repository
from nfl_pickem.ingest.schema import Season, utcnow
from nfl_pickem.ingest.sync import GameSync
from nfl_pickem.refresh.staleness import OnDemandUpdater
from nfl_pickem.scheduler.runner import PeriodicRunner, Trigger
from nfl_pickem.scoring.calculator import PickScorer

logger = logging.getLogger(__name__)

# Sunday, Monday, Thursday, Saturday (datetime.weekday numbering).
GAME_WEEKDAYS: frozenset[int] = frozenset({6, 0, 3, 5})
SEASON_MONTHS: frozenset[int] = frozenset({9, 10, 11, 12, 1, 2})
ACTIVE_HOURS = range(13, 24)

GAMES_TODAY_TTL = datetime.timedelta(minutes=15)
DEFAULT_PAUSE_SECONDS = 2.0

REASON_NO_SEASON = "No current season"
REASON_SCORES_FAILED = "Score update failed"

SCORE_UPDATE_JOB = "score_update"
PICK_CALCULATION_JOB = "pick_calculation"
OFF_HOURS_CHECK_JOB = "off_hours_check"


@dataclasses.dataclass(frozen=True)
class CycleResult:
    """Outcome of one score-update or scoring cycle.

    Attributes:
        success: Whether the cycle completed.
        reason: Why the cycle was skipped, when it was.
        error: Error message, when the cycle raised.
        detail: The underlying sync or scoring result.
    """

    success: bool
    reason: str | None = None
    error: str | None = None
    detail: object | None = None


@dataclasses.dataclass(frozen=True)
class UpdateCycleResult:
    """Outcome of a manual score-then-picks cycle."""

    success: bool
    scores: CycleResult | None = None
    picks: CycleResult | None = None
    reason: str | None = None
    error: str | None = None


@dataclasses.dataclass(frozen=True)
class SchedulerStatus:
    is_running: bool
    is_game_day: bool
    has_games_today: bool
    is_active_game_time: bool
    active_tasks: list[str]
    next_update: str
    cache_size: int


def _every_quarter_hour() -> list[Trigger]:
    return [_hourly_at(f":{minute:02d}") for minute in (0, 15, 30, 45)]


def _hourly_at(mark: str) -> Trigger:
    def trigger(scheduler: schedule.Scheduler) -> schedule.Job:
        return scheduler.every().hour.at(mark)

    return trigger


def _every_six_hours(scheduler: schedule.Scheduler) -> schedule.Job:
    return scheduler.every(6).hours


class ScoreScheduler:
    """Periodic score refresh and pick scoring for the current season.

    Args:
        repository: Persistence port.
        connector: Score source, used for the league's current week.
        game_sync: Runs full score updates.
        scorer: Scores picks after updates.
        updater: Staleness-driven refresh used outside active hours.
        runner: Periodic runner; a fresh one is created when omitted.
        clock: Returns the current aware UTC time.
        sleep: Pause function used between scores and picks.
        pause_seconds: Pause between the score update and pick scoring of a
            manual cycle.
    """

    def __init__(
        self,
        repository: Repository,
        connector: Connector,
        game_sync: GameSync,
        scorer: PickScorer,
        updater: OnDemandUpdater,
        *,
        runner: PeriodicRunner | None = None,
        clock: Callable[[], datetime.datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
        pause_seconds: float = DEFAULT_PAUSE_SECONDS,
    ) -> None:
        self._repo = repository
        self._connector = connector
        self._sync = game_sync
        self._scorer = scorer
        self._updater = updater
        self._runner = runner or PeriodicRunner()
        self._clock = clock
        self._sleep = sleep
        self._pause_seconds = pause_seconds
        self._games_today_cache: dict[datetime.date, tuple[bool, datetime.datetime]] = {}

    # -- heuristics ----------------------------------------------------------

    def _eastern_now(self, now: datetime.datetime | None) -> datetime.datetime:
        return (now or self._clock()).astimezone(EASTERN)

    def is_game_day(self, now: datetime.datetime | None = None) -> bool:
        """Sunday, Monday, Thursday or Saturday between September and February."""
        local = self._eastern_now(now)
        return local.month in SEASON_MONTHS and local.weekday() in GAME_WEEKDAYS

    def is_active_game_time(self, now: datetime.datetime | None = None) -> bool:
        """Between 1 PM and midnight Eastern."""
        return self._eastern_now(now).hour in ACTIVE_HOURS

    def _current_season(self) -> Season | None:
        try:
            return self._repo.get_current_season()
        except Exception:  # noqa: BLE001
            logger.exception("scheduler: failed to get current season")
            return None

    def has_games_today(self) -> bool:
        """Whether the current season has a game today; errors count as yes.

        Answers are cached per Eastern calendar day for 15 minutes.
        """
        now = self._clock()
        today = self._eastern_now(now).date()
        cached = self._games_today_cache.get(today)
        if cached is not None and now - cached[1] < GAMES_TODAY_TTL:
            logger.debug("scheduler: using cached games-today check")
            return cached[0]

        try:
            season = self._repo.get_current_season()
            if season is None:
                logger.debug("scheduler: no current season set")
                return False
            has_games = self._repo.has_games_on_date(season.id, today)
        except Exception:  # noqa: BLE001
            logger.exception("scheduler: error checking for games today")
            return True

        self._games_today_cache[today] = (has_games, now)
        logger.debug("scheduler: games today: %s", "yes" if has_games else "no")
        return has_games

    def clear_cache(self) -> None:
        self._games_today_cache.clear()

    # -- cycles --------------------------------------------------------------

    def update_scores(self) -> CycleResult:
        """Sync the previous and current week of the current season."""
        if self._current_season() is None:
            logger.debug("scheduler: no current season set, skipping score update")
            return CycleResult(success=False, reason=REASON_NO_SEASON)
        try:
            results = self._sync.update_game_scores()
        except Exception as exc:  # noqa: BLE001
            logger.exception("scheduler: failed to update scores")
            return CycleResult(success=False, error=str(exc))
        logger.info(
            "scheduler: score update completed (%s)",
            ", ".join(f"week {r.week}: {r.created} created, {r.updated} updated" for r in results),
        )
        return CycleResult(success=True, detail=results)

    def calculate_picks(self) -> CycleResult:
        """Score picks over the previous and current league week."""
        season = self._current_season()
        if season is None:
            logger.debug("scheduler: no current season set, skipping pick calculations")
            return CycleResult(success=False, reason=REASON_NO_SEASON)
        try:
            status = self._connector.fetch_season_status()
            weeks = list(dict.fromkeys([max(1, status.week - 1), status.week]))
            batch = self._scorer.calculate_picks_for_weeks(season.id, weeks)
        except Exception as exc:  # noqa: BLE001
            logger.exception("scheduler: failed to calculate picks")
            return CycleResult(success=False, error=str(exc))

        logger.info(
            "scheduler: pick calculations completed: %d picks updated across %d weeks",
            batch.total_updated_picks,
            len(weeks),
        )
        for week_result in batch.week_results:
            if week_result.error:
                logger.error("scheduler: week %d: %s", week_result.week, week_result.error)
            else:
                logger.info(
                    "scheduler: week %d: %d picks updated for %d completed games",
                    week_result.week,
                    week_result.updated_picks,
                    week_result.completed_games,
                )
        return CycleResult(success=True, detail=batch)

    def _refresh_current_week(self) -> bool:
        season = self._current_season()
        if season is None:
            logger.info("scheduler: no current season, skipping staleness check")
            return False
        status = self._connector.fetch_season_status()
        result = self._updater.update_scores_if_stale(season.id, status.week)
        if result.updated:
            logger.info(
                "scheduler: stale scores refreshed (%d games updated, %d picks updated)",
                result.games_updated,
                result.picks_updated,
            )
        else:
            logger.debug("scheduler: %s", result.reason)
        return result.updated

    def _games_likely(self, task: str) -> bool:
        if not self.is_game_day():
            logger.debug("scheduler: not a game day, skipping %s", task)
            return False
        if not self.has_games_today():
            logger.debug("scheduler: no games scheduled today, skipping %s", task)
            return False
        return True

    def run_score_update(self) -> bool:
        """Quarter-hourly job; returns whether scores were refreshed."""
        if not self._games_likely("score updates"):
            return False
        if not self.is_active_game_time():
            logger.info("scheduler: outside active game hours, checking if scores are stale")
            return self._refresh_current_week()
        return self.update_scores().success

    def run_pick_calculations(self) -> bool:
        """Hourly job; returns whether scoring ran."""
        if not self._games_likely("pick calculations"):
            return False
        return self.calculate_picks().success

    def run_off_hours_check(self) -> bool:
        """Six-hourly job; staleness catch-up outside active hours."""
        if not self.is_game_day():
            logger.info("scheduler: off-hours check, not a game day, skipping")
            return False
        if self.is_active_game_time():
            return False
        if not self.has_games_today():
            logger.info("scheduler: off-hours check, no games today, skipping")
            return False
        logger.info("scheduler: off-hours check, looking for stale scores")
        return self._refresh_current_week()

    def run_update_cycle(self) -> UpdateCycleResult:
        """Score update, then (only on success) a short pause and pick scoring."""
        scores = self.update_scores()
        if not scores.success:
            logger.debug("scheduler: score update failed, skipping pick calculations")
            return UpdateCycleResult(success=False, scores=scores, reason=REASON_SCORES_FAILED)
        self._sleep(self._pause_seconds)
        picks = self.calculate_picks()
        logger.info(
            "scheduler: full update cycle completed (scores: %s, picks: %s)",
            scores.success,
            picks.success,
        )
        return UpdateCycleResult(success=True, scores=scores, picks=picks)

    def trigger_update(self) -> UpdateCycleResult:
        """Manually run one full update cycle."""
        logger.info("scheduler: manual update triggered")
        try:
            return self.run_update_cycle()
        except Exception as exc:  # noqa: BLE001
            logger.exception("scheduler: manual update failed")
            return UpdateCycleResult(success=False, error=str(exc))

    # -- lifecycle -----------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._runner.is_running

    def start(self) -> None:
        """Register the three jobs and start the runner; a no-op when running."""
        if self._runner.is_running:
            logger.debug("scheduler: already running")
            return
        self._runner.add_job(SCORE_UPDATE_JOB, self.run_score_update, _every_quarter_hour())
        self._runner.add_job(PICK_CALCULATION_JOB, self.run_pick_calculations, [_hourly_at(":00")])
        self._runner.add_job(OFF_HOURS_CHECK_JOB, self.run_off_hours_check, [_every_six_hours])
        self._runner.start()
        logger.info("scheduler: automatic updates started")
        logger.info("scheduler: score updates every 15 minutes during active game hours (1 PM - 11 PM ET)")
        logger.info("scheduler: pick calculations every hour on game days with scheduled games")
        logger.info("scheduler: off-hours staleness checks every 6 hours on game days with scheduled games")

    def stop(self) -> None:
        """Stop the runner and drop its jobs; a no-op when stopped."""
        if not self._runner.is_running:
            logger.debug("scheduler: not running")
            return
        self._runner.stop()
        logger.info("scheduler: automatic updates stopped")

    def wait(self, timeout: float | None = None) -> bool:
        return self._runner.wait(timeout)

    def get_status(self) -> SchedulerStatus:
        running = self._runner.is_running
        return SchedulerStatus(
            is_running=running,
            is_game_day=self.is_game_day(),
            has_games_today=self.has_games_today() if running else False,
            is_active_game_time=self.is_active_game_time(),
            active_tasks=self._runner.job_names,
            next_update="Scores: every 15 min (game hours), Picks: hourly" if running else "Not scheduled",
            cache_size=len(self._games_today_cache),
        )
