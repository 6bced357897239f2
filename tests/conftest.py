"""Shared pytest fixtures for the nfl_pickem test suite.

Fixtures defined here are available to all tests without explicit imports.
Record builders and the in-memory connector live in ``tests/fakes.py``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from nfl_pickem.ingest.repository import ParquetRepository, Repository
from nfl_pickem.ingest.schema import Season
from nfl_pickem.ingest.sql import SqlRepository
from nfl_pickem.ingest.sync import GameSync
from nfl_pickem.scoring.calculator import PickScorer
from tests.fakes import FakeConnector


@pytest.fixture(autouse=True)
def _reset_nfl_pickem_logger() -> Iterator[None]:
    """Undo `configure_logging` so caplog sees records in every test."""
    yield
    root = logging.getLogger("nfl_pickem")
    root.handlers.clear()
    root.setLevel(logging.NOTSET)
    root.propagate = True


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Provide an isolated temporary directory for test data.

    Args:
        tmp_path: pytest built-in temporary directory fixture.

    Returns:
        Path: A temporary directory that exists for the duration of the test.
    """
    data_dir = tmp_path / "test_data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture(params=["parquet", "sql"])
def repository(request: pytest.FixtureRequest, temp_data_dir: Path) -> Repository:
    """Each repository implementation in turn, backed by fresh storage."""
    if request.param == "parquet":
        return ParquetRepository(temp_data_dir)
    return SqlRepository.from_url("sqlite://")


@pytest.fixture
def season(repository: Repository) -> Season:
    """The current 2024 season, stored in `repository`."""
    return repository.add_season(Season(id="season-2024", year="2024", is_current=True))


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def game_sync(repository: Repository, connector: FakeConnector) -> GameSync:
    return GameSync(repository, connector)


@pytest.fixture
def scorer(repository: Repository) -> PickScorer:
    return PickScorer(repository)
