"""Pick scoring engine.

:class:`PickScorer` walks the completed games of a season (or one week),
works out each winner, and marks every pick on that game correct or
incorrect.  Ties have no winner, so every pick on a tied game is incorrect.
The outcome is a pure function of stored game state; rerunning it after no
score change rewrites the same values.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable

from nfl_pickem.ingest.repository import Repository
from nfl_pickem.ingest.schema import PickStats, ScheduledGame

logger = logging.getLogger(__name__)


def determine_winner(game: ScheduledGame) -> str | None:
    """Return the winning team id, or ``None`` for a tie."""
    if game.home_score > game.away_score:
        return game.home_team_id
    if game.away_score > game.home_score:
        return game.away_team_id
    return None


@dataclasses.dataclass(frozen=True)
class ScoringResult:
    """Outcome of one scoring pass.

    Attributes:
        updated_picks: Number of pick rows written.
        completed_games: Number of terminal-status games considered.
        week: The week scored, or ``None`` for the whole season.
    """

    updated_picks: int
    completed_games: int
    week: int | None = None


@dataclasses.dataclass(frozen=True)
class WeekScoringResult:
    """One week's entry in a batch; ``error`` is set when the week failed."""

    week: int
    updated_picks: int = 0
    completed_games: int = 0
    error: str | None = None


@dataclasses.dataclass(frozen=True)
class BatchScoringResult:
    total_updated_picks: int
    week_results: tuple[WeekScoringResult, ...]

    @property
    def failed_weeks(self) -> list[int]:
        return [r.week for r in self.week_results if r.error is not None]


class PickScorer:
    """Scores picks against final game results.

    Args:
        repository: Persistence port holding games and picks.
    """

    def __init__(self, repository: Repository) -> None:
        self._repo = repository

    def calculate_picks(self, season_id: str, week: int | None = None) -> ScoringResult:
        """Mark every pick on the completed games of *season_id* (optionally one week).

        Raises:
            ValueError: *season_id* is empty.
        """
        if not season_id:
            msg = "season_id is required"
            raise ValueError(msg)

        completed = [g for g in self._repo.get_games(season_id, week) if g.is_final]

        updated = 0
        for game in completed:
            updated += self._repo.update_picks_for_game(game.id, determine_winner(game))

        logger.info(
            "scoring: updated %d picks for %d completed games (%s)",
            updated,
            len(completed),
            f"week {week}" if week is not None else "all weeks",
        )
        return ScoringResult(updated_picks=updated, completed_games=len(completed), week=week)

    def calculate_picks_for_weeks(self, season_id: str, weeks: Iterable[int]) -> BatchScoringResult:
        """Score each of *weeks*; a failing week is recorded and the batch goes on."""
        results: list[WeekScoringResult] = []
        total = 0
        for week in weeks:
            try:
                outcome = self.calculate_picks(season_id, week)
            except Exception as exc:  # noqa: BLE001
                logger.exception("scoring: failed to calculate picks for week %d", week)
                results.append(WeekScoringResult(week=week, error=str(exc)))
                continue
            total += outcome.updated_picks
            results.append(
                WeekScoringResult(
                    week=week,
                    updated_picks=outcome.updated_picks,
                    completed_games=outcome.completed_games,
                ),
            )
        return BatchScoringResult(total_updated_picks=total, week_results=tuple(results))

    def get_pick_stats(self, season_id: str, week: int | None = None) -> PickStats:
        """Correct/incorrect/pending counts and accuracy for a season or week."""
        return self._repo.get_pick_stats(season_id, week)
