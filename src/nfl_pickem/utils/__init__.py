"""Shared utilities module."""

from __future__ import annotations

from nfl_pickem.utils.assertions import assert_columns, assert_no_nulls
from nfl_pickem.utils.cache import DEFAULT_TTLS, TTLCache, make_cache_key
from nfl_pickem.utils.logger import (
    DEBUG,
    NORMAL,
    QUIET,
    VERBOSE,
    configure_logging,
    get_logger,
)
from nfl_pickem.utils.retry import RetryOutcome, backoff_delay, retry_with_backoff

__all__ = [
    "DEBUG",
    "DEFAULT_TTLS",
    "NORMAL",
    "QUIET",
    "VERBOSE",
    "RetryOutcome",
    "TTLCache",
    "assert_columns",
    "assert_no_nulls",
    "backoff_delay",
    "configure_logging",
    "get_logger",
    "make_cache_key",
    "retry_with_backoff",
]
