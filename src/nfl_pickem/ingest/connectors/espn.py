"""ESPN scoreboard connector.

:class:`EspnConnector` talks to ESPN's public (unauthenticated) NFL scoreboard
endpoint and normalizes each event into an :class:`ExternalGame`.  Every HTTP
call goes through the shared retry helper and a per-instance TTL cache, so
repeated calls within a polling cycle do not hit the network twice.
"""

from __future__ import annotations

import datetime
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any, cast

import pandas as pd  # type: ignore[import-untyped]
import requests
from pydantic import ValidationError

from nfl_pickem.ingest.connectors.base import (
    PRESEASON_WEEKS,
    REGULAR_SEASON_WEEKS,
    Connector,
    ConnectorError,
    DataFormatError,
    NetworkError,
)
from nfl_pickem.ingest.schema import (
    ExternalCompetitor,
    ExternalGame,
    ExternalTeam,
    GameStatus,
    SeasonInfo,
    SeasonPhase,
    utcnow,
)
from nfl_pickem.utils.cache import TTLCache, make_cache_key
from nfl_pickem.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://site.api.espn.com/apis/site/v2/sports/football/nfl"
_USER_AGENT = "NFL-Pickem-App/1.0"


def _parse_timestamp(value: object) -> datetime.datetime | None:
    """Best-effort parsing of ESPN ISO timestamps such as ``'2024-09-06T00:20Z'``."""
    if value is None or value == "":
        return None
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError):
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return cast("datetime.datetime", ts.to_pydatetime())


def _parse_score(value: object) -> int:
    """ESPN sends scores as strings; missing or blank means 0."""
    if value is None or value == "":
        return 0
    try:
        return max(0, int(float(str(value))))
    except ValueError:
        return 0


def _parse_competitor(raw: Mapping[str, Any]) -> ExternalCompetitor:
    team = raw.get("team") or {}
    records = raw.get("records") or []
    return ExternalCompetitor(
        competitor_id=str(raw["id"]) if raw.get("id") is not None else None,
        home_away=str(raw.get("homeAway", "")),
        score=_parse_score(raw.get("score")),
        record=records[0].get("summary") if records else None,
        team=ExternalTeam(
            abbreviation=str(team.get("abbreviation", "")),
            display_name=str(team.get("displayName", "")),
            name=str(team.get("name", "")),
            location=str(team.get("location", "")),
            color=team.get("color"),
            alternate_color=team.get("alternateColor"),
            logo=team.get("logo"),
        ),
    )


def parse_event(
    event: Mapping[str, Any],
    week: int,
    season_phase: SeasonPhase,
    year: int,
) -> ExternalGame:
    """Normalize one scoreboard ``event`` object.

    Raises:
        DataFormatError: If the event lacks the fields every game must have.
    """
    try:
        status_type = event["status"]["type"]
        competitions = event.get("competitions") or []
        competition = competitions[0] if competitions else {}
        event_week = (event.get("week") or {}).get("number") or week
        return ExternalGame(
            external_id=str(event["id"]),
            name=str(event.get("name", "")),
            short_name=str(event.get("shortName", "")),
            date=_parse_timestamp(event.get("date")),
            status=GameStatus(
                type=str(status_type["name"]),
                detail=str(status_type.get("detail", "")),
                completed=bool(status_type.get("completed", False)),
            ),
            week=int(event_week),
            season=year,
            season_phase=season_phase,
            competition_date=_parse_timestamp(competition.get("date")),
            competitors=[_parse_competitor(c) for c in competition.get("competitors") or []],
        )
    except (KeyError, TypeError, ValueError, ValidationError) as exc:
        msg = f"espn: malformed event {event.get('id')!r}: {exc}"
        raise DataFormatError(msg) from exc


class EspnConnector(Connector):
    """Connector for ESPN's NFL scoreboard API.

    Args:
        base_url: Root of the scoreboard API.
        session: ``requests.Session`` to use (a new one by default).
        timeout: Per-request timeout in seconds.
        max_attempts: Attempts per HTTP call before giving up.
        base_delay: Backoff base delay in seconds.
        week_delay: Pause between consecutive week fetches in a full-schedule
            sync, to stay clear of rate limits.
        cache: Response cache; a fresh :class:`TTLCache` by default.
        sleep: Injected for tests.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        session: requests.Session | None = None,
        timeout: float = 10.0,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        week_delay: float = 0.15,
        cache: TTLCache | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._week_delay = week_delay
        self._cache = cache if cache is not None else TTLCache()
        self._sleep = sleep

        self.consecutive_failures = 0
        self.last_error: str | None = None
        self.last_success_at: datetime.datetime | None = None

    # -- HTTP ---------------------------------------------------------------

    def _get_json(self, endpoint: str, params: Mapping[str, Any] | None) -> dict[str, Any]:
        response = self._session.get(
            f"{self._base_url}{endpoint}",
            params=dict(params) if params else None,
            timeout=self._timeout,
            headers={"User-Agent": _USER_AGENT},
        )
        response.raise_for_status()
        try:
            data = response.json()
        except ValueError as exc:
            msg = f"espn: {endpoint} returned a non-JSON body"
            raise DataFormatError(msg) from exc
        if not isinstance(data, dict):
            msg = f"espn: {endpoint} returned {type(data).__name__}, expected an object"
            raise DataFormatError(msg)
        return data

    def _record_failure(self, attempt: int, exc: Exception) -> None:
        self.consecutive_failures += 1
        logger.warning("espn: attempt %d/%d failed: %s", attempt, self._max_attempts, exc)

    def _request(
        self,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        *,
        category: str = "scoreboard",
    ) -> dict[str, Any]:
        """GET *endpoint* with caching and retry.

        Raises:
            NetworkError: Every attempt failed.
            DataFormatError: The body was not a JSON object (not retried).
        """
        key = make_cache_key(endpoint, params)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("espn: cache hit for %s", key)
            return cast("dict[str, Any]", cached)

        outcome = retry_with_backoff(
            lambda: self._get_json(endpoint, params),
            max_attempts=self._max_attempts,
            base_delay=self._base_delay,
            retry_on=(requests.RequestException,),
            on_failure=self._record_failure,
            sleep=self._sleep,
        )
        if not outcome.ok:
            self.last_error = str(outcome.error)
            msg = (
                f"Failed to fetch data from ESPN ({endpoint}) "
                f"after {outcome.attempts} attempts: {outcome.error}"
            )
            raise NetworkError(msg) from outcome.error

        payload = outcome.unwrap()
        self.consecutive_failures = 0
        self.last_success_at = utcnow()
        self._cache.set(key, payload, category)
        return payload

    def clear_cache(self) -> None:
        self._cache.clear()

    # -- Seasons ------------------------------------------------------------

    def fetch_current_season(self) -> SeasonInfo:
        """Return ESPN's current season, or this calendar year's regular season on failure."""
        fallback = SeasonInfo(year=datetime.date.today().year, phase=SeasonPhase.REGULAR)
        try:
            data = self._request("/scoreboard", category="season")
            season = data.get("season") or {}
            if not season.get("year"):
                return fallback
            return SeasonInfo(
                year=int(season["year"]),
                phase=SeasonPhase(int(season.get("type") or SeasonPhase.REGULAR)),
            )
        except (ConnectorError, KeyError, TypeError, ValueError) as exc:
            logger.error(
                "espn: failed to fetch current season, assuming %d regular season: %s",
                fallback.year,
                exc,
            )
            return fallback

    # -- Games --------------------------------------------------------------

    def fetch_weekly_games(
        self,
        week: int,
        season_phase: SeasonPhase = SeasonPhase.REGULAR,
        year: int | None = None,
        *,
        category: str = "scoreboard",
    ) -> list[ExternalGame]:
        """Fetch one week of games.

        Returns an empty list when the response carries no ``events`` array.
        Individual malformed events are skipped with a warning.
        """
        season_year = year if year is not None else self.fetch_current_season().year
        data = self._request(
            "/scoreboard",
            {"dates": season_year, "week": week, "seasontype": int(season_phase)},
            category=category,
        )

        events = data.get("events")
        if not isinstance(events, list):
            logger.warning(
                "espn: no events in response for %d week %d (phase %d)",
                season_year,
                week,
                season_phase,
            )
            return []

        games: list[ExternalGame] = []
        for event in events:
            try:
                games.append(parse_event(event, week, season_phase, season_year))
            except DataFormatError as exc:
                logger.warning("%s", exc)
        return games

    def fetch_full_schedule(
        self,
        year: int | None = None,
        include_preseason: bool = False,
    ) -> list[ExternalGame]:
        """Fetch preseason weeks 1-4 (optional) then regular-season weeks 1-18.

        A week that fails is logged and skipped; the rest of the sync goes on.
        """
        season_year = year if year is not None else self.fetch_current_season().year
        plan: list[tuple[SeasonPhase, int]] = []
        if include_preseason:
            plan.extend((SeasonPhase.PRESEASON, w) for w in range(1, PRESEASON_WEEKS + 1))
        plan.extend((SeasonPhase.REGULAR, w) for w in range(1, REGULAR_SEASON_WEEKS + 1))

        all_games: list[ExternalGame] = []
        for phase, week in plan:
            logger.info("espn: fetching %s week %d of %d", phase.label.lower(), week, season_year)
            try:
                all_games.extend(self.fetch_weekly_games(week, phase, season_year, category="schedule"))
            except ConnectorError as exc:
                logger.error("espn: failed to fetch %s week %d: %s", phase.label.lower(), week, exc)
                continue
            self._sleep(self._week_delay)
        return all_games
