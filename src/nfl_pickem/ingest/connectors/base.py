"""Abstract base class for score-source connectors and shared exception hierarchy.

Concrete connectors (ESPN today) inherit from :class:`Connector`.  The
exception hierarchy gives callers a uniform error contract so that the sync
engine and scheduler can handle failures without coupling to a specific
source.
"""

from __future__ import annotations

import abc
import datetime

from nfl_pickem.ingest.schema import ExternalGame, SeasonInfo, SeasonPhase, SeasonStatus

# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------


class ConnectorError(Exception):
    """Base exception for all connector errors."""


class DataFormatError(ConnectorError):
    """API response does not match the expected shape."""


class NetworkError(ConnectorError):
    """Connection failure, timeout, or HTTP error (after retries)."""


# ---------------------------------------------------------------------------
# Abstract Connector
# ---------------------------------------------------------------------------

REGULAR_SEASON_WEEKS = 18
PRESEASON_WEEKS = 4


class Connector(abc.ABC):
    """Abstract base class for NFL schedule/score sources."""

    @abc.abstractmethod
    def fetch_current_season(self) -> SeasonInfo:
        """Return the source's current season.  Must not raise."""

    @abc.abstractmethod
    def fetch_weekly_games(
        self,
        week: int,
        season_phase: SeasonPhase = SeasonPhase.REGULAR,
        year: int | None = None,
    ) -> list[ExternalGame]:
        """Fetch all games of one week.

        Raises:
            ConnectorError: If the source could not be reached after retries.
        """

    @abc.abstractmethod
    def fetch_full_schedule(
        self,
        year: int | None = None,
        include_preseason: bool = False,
    ) -> list[ExternalGame]:
        """Fetch every week of a season; individual week failures are skipped."""

    def fetch_season_status(self, today: datetime.date | None = None) -> SeasonStatus:
        """Return the current season and the league week *today* falls in."""
        info = self.fetch_current_season()
        today = today or datetime.date.today()
        return SeasonStatus(
            year=info.year,
            phase=info.phase,
            week=estimate_current_week(info.phase, info.year, today),
        )


def estimate_current_week(phase: SeasonPhase, year: int, today: datetime.date) -> int:
    """Estimate the league week from the calendar.

    Preseason weeks count from August 1 and regular-season weeks from
    September 5, both clamped to the phase's length.  The postseason is
    always reported as week 1.
    """
    if phase is SeasonPhase.PRESEASON:
        start, last = datetime.date(year, 8, 1), PRESEASON_WEEKS
    elif phase is SeasonPhase.REGULAR:
        start, last = datetime.date(year, 9, 5), REGULAR_SEASON_WEEKS
    else:
        return 1
    weeks_since_start = (today - start).days // 7
    return max(1, min(last, weeks_since_start + 1))
