"""Data ingestion module."""

from __future__ import annotations

from nfl_pickem.ingest.connectors import (
    Connector,
    ConnectorError,
    DataFormatError,
    EspnConnector,
    NetworkError,
)
from nfl_pickem.ingest.repository import ParquetRepository, Repository, create_repository
from nfl_pickem.ingest.schema import (
    ExternalGame,
    GameUpdate,
    Pick,
    PickStats,
    ScheduledGame,
    Season,
    SeasonPhase,
    SeasonStatus,
    Team,
)
from nfl_pickem.ingest.sql import SqlRepository
from nfl_pickem.ingest.sync import GameSync, NoCurrentSeasonError, SyncResult, WeekSyncResult

__all__ = [
    "Connector",
    "ConnectorError",
    "DataFormatError",
    "EspnConnector",
    "ExternalGame",
    "GameSync",
    "GameUpdate",
    "NetworkError",
    "NoCurrentSeasonError",
    "ParquetRepository",
    "Pick",
    "PickStats",
    "Repository",
    "ScheduledGame",
    "Season",
    "SeasonPhase",
    "SeasonStatus",
    "SqlRepository",
    "SyncResult",
    "Team",
    "WeekSyncResult",
    "create_repository",
]
