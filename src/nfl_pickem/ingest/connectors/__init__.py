"""Schedule and score source connectors."""

from __future__ import annotations

from nfl_pickem.ingest.connectors.base import (
    Connector,
    ConnectorError,
    DataFormatError,
    NetworkError,
    estimate_current_week,
)
from nfl_pickem.ingest.connectors.espn import EspnConnector

__all__ = [
    "Connector",
    "ConnectorError",
    "DataFormatError",
    "EspnConnector",
    "NetworkError",
    "estimate_current_week",
]
