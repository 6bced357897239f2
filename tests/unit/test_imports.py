"""Smoke tests for package imports.

These tests run in pre-commit hooks to catch import errors quickly.
"""

from __future__ import annotations

import importlib

import pytest


@pytest.mark.smoke
def test_can_import_nfl_pickem() -> None:
    """Verify package is importable without errors.

    This smoke test catches:
    - Import errors from syntax issues
    - Circular import problems
    - Missing dependencies
    """
    import nfl_pickem

    assert nfl_pickem is not None


@pytest.mark.smoke
@pytest.mark.parametrize(
    "module",
    [
        "nfl_pickem.app",
        "nfl_pickem.cli.main",
        "nfl_pickem.config",
        "nfl_pickem.ingest",
        "nfl_pickem.refresh",
        "nfl_pickem.scheduler",
        "nfl_pickem.scoring",
        "nfl_pickem.utils",
    ],
)
def test_subpackages_import(module: str) -> None:
    assert importlib.import_module(module) is not None
