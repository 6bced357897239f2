"""Command-line interface module."""

from __future__ import annotations

from nfl_pickem.cli.main import app

__all__ = ["app"]
