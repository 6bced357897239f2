"""Service wiring.

:func:`build_services` constructs every service once from a `Settings`
object.  Nothing is a module-level singleton, so tests build fresh
instances with their own caches.
"""

from __future__ import annotations

import dataclasses

from nfl_pickem.config import Settings
from nfl_pickem.ingest.connectors.base import Connector
from nfl_pickem.ingest.connectors.espn import EspnConnector
from nfl_pickem.ingest.repository import Repository, create_repository
from nfl_pickem.ingest.sync import GameSync
from nfl_pickem.refresh.staleness import OnDemandUpdater
from nfl_pickem.scheduler.service import ScoreScheduler
from nfl_pickem.scoring.calculator import PickScorer


@dataclasses.dataclass(frozen=True)
class Services:
    settings: Settings
    repository: Repository
    connector: Connector
    game_sync: GameSync
    scorer: PickScorer
    updater: OnDemandUpdater
    scheduler: ScoreScheduler


def build_services(settings: Settings | None = None) -> Services:
    """Build the repository, connector and services for *settings*.

    Settings are read from the environment when omitted.
    """
    settings = settings or Settings.from_env()
    repository = create_repository(settings)
    connector = EspnConnector(
        settings.espn_base_url,
        timeout=settings.request_timeout,
        max_attempts=settings.max_retries,
        base_delay=settings.retry_base_delay,
        week_delay=settings.week_delay,
    )
    game_sync = GameSync(repository, connector)
    scorer = PickScorer(repository)
    updater = OnDemandUpdater(
        repository,
        connector,
        game_sync,
        scorer,
        stale_minutes=settings.stale_minutes,
        policy=settings.staleness_policy,
    )
    scheduler = ScoreScheduler(repository, connector, game_sync, scorer, updater)
    return Services(
        settings=settings,
        repository=repository,
        connector=connector,
        game_sync=game_sync,
        scorer=scorer,
        updater=updater,
        scheduler=scheduler,
    )
