"""On-demand score refresh module."""

from __future__ import annotations

from nfl_pickem.refresh.staleness import (
    REASON_FAILED,
    REASON_NO_WEEK,
    REASON_RECENT,
    REASON_STALE,
    OnDemandUpdater,
    RefreshResult,
    format_last_update,
    weeks_to_refresh,
)

__all__ = [
    "REASON_FAILED",
    "REASON_NO_WEEK",
    "REASON_RECENT",
    "REASON_STALE",
    "OnDemandUpdater",
    "RefreshResult",
    "format_last_update",
    "weeks_to_refresh",
]
