"""Unit tests for nfl_pickem.ingest.schema."""

from __future__ import annotations

import datetime

import pytest
from pydantic import ValidationError

from nfl_pickem.ingest.schema import (
    GameUpdate,
    ScheduledGame,
    Season,
    SeasonPhase,
    SeasonStatus,
    compute_accuracy,
    is_terminal_status,
)
from tests.fakes import external_game, make_game


@pytest.mark.smoke
class TestSeasonPhase:
    def test_codes_match_espn_seasontype(self) -> None:
        assert [int(p) for p in SeasonPhase] == [1, 2, 3]

    def test_labels(self) -> None:
        assert SeasonPhase.PRESEASON.label == "Preseason"
        assert SeasonPhase.REGULAR.label == "Regular Season"
        assert SeasonPhase.POSTSEASON.label == "Postseason"


@pytest.mark.parametrize("status", ["STATUS_FINAL", "STATUS_FINAL_OVERTIME", "STATUS_CLOSED", "Final"])
def test_terminal_status_spellings(status: str) -> None:
    assert is_terminal_status(status)


@pytest.mark.parametrize(
    "status",
    ["STATUS_SCHEDULED", "STATUS_IN_PROGRESS", "STATUS_HALFTIME", "final", None],
)
def test_non_terminal_statuses(status: str | None) -> None:
    assert not is_terminal_status(status)


class TestScheduledGame:
    def test_defaults(self) -> None:
        game = ScheduledGame(id="g1", season_id="s1", week=1, home_team_id="a", away_team_id="b")
        assert game.season_phase is SeasonPhase.REGULAR
        assert (game.home_score, game.away_score) == (0, 0)
        assert game.status == "STATUS_SCHEDULED"
        assert not game.is_final

    def test_same_team_on_both_sides_rejected(self) -> None:
        with pytest.raises(ValidationError, match="must differ"):
            make_game("s1", "team-KC", "team-KC")

    def test_week_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            make_game("s1", "a", "b", week=0)

    def test_negative_score_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_game("s1", "a", "b", home_score=-1)

    def test_naive_datetimes_are_read_as_utc(self) -> None:
        game = make_game("s1", "a", "b", start_time=datetime.datetime(2024, 9, 8, 17, 0))
        assert game.start_time == datetime.datetime(2024, 9, 8, 17, 0, tzinfo=datetime.timezone.utc)

    def test_aware_datetimes_are_normalized_to_utc(self) -> None:
        eastern = datetime.timezone(datetime.timedelta(hours=-4))
        game = make_game("s1", "a", "b", start_time=datetime.datetime(2024, 9, 8, 13, 0, tzinfo=eastern))
        assert game.start_time is not None
        assert game.start_time.utcoffset() == datetime.timedelta(0)
        assert game.start_time.hour == 17


def test_season_year_must_be_four_characters() -> None:
    with pytest.raises(ValidationError):
        Season(id="s", year="24")


def test_game_update_drops_unset_schedule_fields() -> None:
    update = GameUpdate(home_score=21, away_score=14, status="STATUS_IN_PROGRESS")
    assert update.changed_fields() == {"home_score": 21, "away_score": 14, "status": "STATUS_IN_PROGRESS"}


def test_game_update_keeps_zero_scores() -> None:
    update = GameUpdate(
        home_score=0,
        away_score=0,
        status="STATUS_SCHEDULED",
        season_phase=SeasonPhase.PRESEASON,
    )
    assert update.changed_fields()["home_score"] == 0
    assert update.changed_fields()["season_phase"] is SeasonPhase.PRESEASON


def test_external_game_competitor_lookup() -> None:
    game = external_game("KC", "DEN")
    home = game.competitor("home")
    away = game.competitor("away")
    assert home is not None and home.team.abbreviation == "KC"
    assert away is not None and away.team.abbreviation == "DEN"
    assert game.competitor("neutral") is None


def test_season_status_phase_flags() -> None:
    status = SeasonStatus(year=2024, phase=SeasonPhase.POSTSEASON, week=1)
    assert status.is_postseason
    assert not status.is_regular_season
    assert status.phase_label == "Postseason"


@pytest.mark.parametrize(
    ("correct", "scored", "expected"),
    [(0, 0, 0.0), (1, 2, 50.0), (2, 3, 66.67), (5, 5, 100.0)],
)
def test_compute_accuracy(correct: int, scored: int, expected: float) -> None:
    assert compute_accuracy(correct, scored) == expected
