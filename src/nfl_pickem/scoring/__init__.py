"""Pick scoring module."""

from __future__ import annotations

from nfl_pickem.scoring.calculator import (
    BatchScoringResult,
    PickScorer,
    ScoringResult,
    WeekScoringResult,
    determine_winner,
)

__all__ = [
    "BatchScoringResult",
    "PickScorer",
    "ScoringResult",
    "WeekScoringResult",
    "determine_winner",
]
