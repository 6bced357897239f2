"""Unit tests for nfl_pickem.refresh.staleness (OnDemandUpdater)."""

from __future__ import annotations

import datetime
from unittest.mock import MagicMock

import pytest

from nfl_pickem.ingest.connectors.base import Connector, NetworkError
from nfl_pickem.ingest.repository import Repository
from nfl_pickem.ingest.schema import ScheduledGame, Season
from nfl_pickem.ingest.sync import GameSync
from nfl_pickem.refresh import (
    REASON_FAILED,
    REASON_NO_WEEK,
    REASON_RECENT,
    REASON_STALE,
    OnDemandUpdater,
    format_last_update,
    weeks_to_refresh,
)
from nfl_pickem.scoring import PickScorer
from tests.fakes import FakeConnector, external_game, make_game, make_pick, make_team

NOW = datetime.datetime(2024, 10, 6, 21, 0, tzinfo=datetime.timezone.utc)


def _ago(minutes: float) -> datetime.datetime:
    return NOW - datetime.timedelta(minutes=minutes)


def _game(status: str = "STATUS_FINAL", updated: datetime.datetime | None = None) -> ScheduledGame:
    return make_game("s", "team-KC", "team-DEN", status=status, scores_updated_at=updated)


def _updater_over(games: list[ScheduledGame], policy: str = "per_game") -> OnDemandUpdater:
    repo = MagicMock(spec=Repository)
    repo.get_games.return_value = games
    return OnDemandUpdater(
        repo,
        MagicMock(spec=Connector),
        MagicMock(spec=GameSync),
        MagicMock(spec=PickScorer),
        policy=policy,  # type: ignore[arg-type]
        clock=lambda: NOW,
    )


@pytest.fixture
def updater(
    repository: Repository,
    connector: FakeConnector,
    game_sync: GameSync,
    scorer: PickScorer,
) -> OnDemandUpdater:
    return OnDemandUpdater(repository, connector, game_sync, scorer)


@pytest.fixture
def scheduled_week(repository: Repository, season: Season) -> ScheduledGame:
    """KC vs DEN in week 5 with one pick on KC, never refreshed."""
    repository.add_team(make_team("KC"))
    repository.add_team(make_team("DEN"))
    game = repository.add_game(make_game(season.id, "team-KC", "team-DEN"))
    repository.add_pick(make_pick(game, "team-KC"))
    return game


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("week", "current", "expected"),
    [
        (5, 5, [4, 5]),
        (4, 5, [4, 5]),
        (1, 1, [1]),
        (3, 5, [3]),
        (6, 5, [6]),
    ],
)
def test_weeks_to_refresh(week: int, current: int, expected: list[int]) -> None:
    assert weeks_to_refresh(week, current) == expected


@pytest.mark.parametrize(
    ("minutes", "expected"),
    [
        (0.5, "Just now"),
        (1, "1 minute ago"),
        (5, "5 minutes ago"),
        (59, "59 minutes ago"),
        (60, "1 hour ago"),
        (150, "2 hours ago"),
        (24 * 60 + 5, "2024-10-05 20:55"),
    ],
)
def test_format_last_update(minutes: float, expected: str) -> None:
    assert format_last_update(_ago(minutes), NOW) == expected


def test_format_last_update_never() -> None:
    assert format_last_update(None, NOW) == "Never updated"


# ---------------------------------------------------------------------------
# Staleness policies
# ---------------------------------------------------------------------------


class TestPerGamePolicy:
    @pytest.mark.smoke
    def test_empty_week_is_stale(self) -> None:
        assert _updater_over([]).are_scores_stale("s", 5)

    def test_never_updated_scheduled_week_is_stale(self) -> None:
        assert _updater_over([_game("STATUS_SCHEDULED")]).are_scores_stale("s", 5)

    def test_recently_updated_final_games_are_fresh(self) -> None:
        games = [_game(updated=_ago(2)), _game(updated=_ago(9))]
        assert not _updater_over(games).are_scores_stale("s", 5)

    def test_one_old_final_game_makes_the_week_stale(self) -> None:
        games = [_game(updated=_ago(2)), _game(updated=_ago(11))]
        assert _updater_over(games).are_scores_stale("s", 5)

    def test_final_game_without_stamp_is_stale(self) -> None:
        games = [_game(updated=_ago(2)), _game(updated=None)]
        assert _updater_over(games).are_scores_stale("s", 5)

    def test_old_scheduled_games_do_not_count(self) -> None:
        games = [_game("STATUS_SCHEDULED", updated=_ago(600)), _game(updated=_ago(1))]
        assert not _updater_over(games).are_scores_stale("s", 5)

    def test_repository_error_counts_as_stale(self) -> None:
        updater = _updater_over([])
        updater._repo.get_games.side_effect = OSError("disk gone")  # type: ignore[attr-defined]
        assert updater.are_scores_stale("s", 5)


class TestElapsedPolicy:
    def test_uses_latest_update(self) -> None:
        games = [_game(updated=_ago(30)), _game("STATUS_IN_PROGRESS", updated=_ago(3))]
        assert not _updater_over(games, "elapsed").are_scores_stale("s", 5)

    def test_old_latest_update_is_stale(self) -> None:
        games = [_game(updated=_ago(30)), _game(updated=_ago(12))]
        assert _updater_over(games, "elapsed").are_scores_stale("s", 5)

    def test_never_updated_is_stale(self) -> None:
        assert _updater_over([_game(updated=None)], "elapsed").are_scores_stale("s", 5)


def test_unknown_policy_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown staleness policy"):
        _updater_over([], "sometimes")


def test_last_update_time_is_newest_stamp() -> None:
    games = [_game(updated=_ago(30)), _game(updated=_ago(3)), _game(updated=None)]
    assert _updater_over(games).get_last_update_time("s", 5) == _ago(3)


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


class TestUpdateScoresIfStale:
    def test_stale_week_is_refreshed_and_scored(
        self,
        updater: OnDemandUpdater,
        repository: Repository,
        connector: FakeConnector,
        season: Season,
        scheduled_week: ScheduledGame,
    ) -> None:
        connector.set_games([external_game("KC", "DEN", week=5)])

        result = updater.update_scores_if_stale(season.id, 5)

        assert result.updated
        assert result.reason == REASON_STALE
        assert (result.games_updated, result.games_created, result.picks_updated) == (1, 0, 1)
        assert result.last_update is not None
        assert [call[0] for call in connector.calls] == [4, 5]
        assert repository.get_picks_for_game(scheduled_week.id)[0].is_correct is True

    def test_fresh_week_is_left_alone(
        self,
        updater: OnDemandUpdater,
        connector: FakeConnector,
        season: Season,
        scheduled_week: ScheduledGame,
    ) -> None:
        connector.set_games([external_game("KC", "DEN", week=5)])
        updater.update_scores_if_stale(season.id, 5)
        connector.calls.clear()

        result = updater.update_scores_if_stale(season.id, 5)

        assert not result.updated
        assert result.reason == REASON_RECENT
        assert result.last_update is not None
        assert connector.calls == []

    def test_refresh_never_creates_games(
        self,
        updater: OnDemandUpdater,
        repository: Repository,
        connector: FakeConnector,
        season: Season,
    ) -> None:
        connector.set_games([external_game("BUF", "MIA", week=5)])
        result = updater.update_scores_if_stale(season.id, 5)
        assert result.updated
        assert result.games_created == 0
        assert repository.get_games(season.id) == []

    def test_failed_week_does_not_stop_the_others(
        self,
        updater: OnDemandUpdater,
        connector: FakeConnector,
        season: Season,
        scheduled_week: ScheduledGame,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        connector.set_games([external_game("KC", "DEN", week=5)])
        connector.failing_weeks.add(4)

        result = updater.update_scores_if_stale(season.id, 5)

        assert result.updated
        assert result.games_updated == 1
        assert "failed to update week 4" in caplog.text

    def test_source_failure_reports_update_failed(
        self,
        repository: Repository,
        game_sync: GameSync,
        scorer: PickScorer,
        season: Season,
    ) -> None:
        connector = MagicMock(spec=Connector)
        connector.fetch_season_status.side_effect = NetworkError("espn unreachable")
        updater = OnDemandUpdater(repository, connector, game_sync, scorer)

        result = updater.update_scores_if_stale(season.id, 5)

        assert not result.updated
        assert result.reason == REASON_FAILED
        assert result.error == "espn unreachable"


class TestUpdateCurrentWeekIfStale:
    def test_uses_league_week(
        self,
        updater: OnDemandUpdater,
        connector: FakeConnector,
        season: Season,
        scheduled_week: ScheduledGame,
    ) -> None:
        connector.current_week = 6
        result = updater.update_current_week_if_stale()
        assert result.updated
        assert [call[0] for call in connector.calls] == [5, 6]

    def test_without_current_season(self, updater: OnDemandUpdater, repository: Repository) -> None:
        repository.add_season(Season(id="s23", year="2023"))
        result = updater.update_current_week_if_stale()
        assert not result.updated
        assert result.reason == REASON_NO_WEEK
        assert result.error == "No current season set"
