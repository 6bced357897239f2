"""Periodic score update scheduling module."""

from __future__ import annotations

from nfl_pickem.scheduler.runner import PeriodicRunner, supervised
from nfl_pickem.scheduler.service import (
    CycleResult,
    SchedulerStatus,
    ScoreScheduler,
    UpdateCycleResult,
)

__all__ = [
    "CycleResult",
    "PeriodicRunner",
    "SchedulerStatus",
    "ScoreScheduler",
    "UpdateCycleResult",
    "supervised",
]
