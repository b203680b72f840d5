"""Core primitives for st24-bridge."""

from .models import (
    TIMEOUT_MARKER,
    AttitudeReading,
    CollectedBlock,
    InclinometerReading,
    PollResult,
    PositionReading,
    SignalReading,
    StatusReading,
    TelemetryDomain,
    TelemetryReading,
)
from .protocols import LineChannel, LineListener, Unsubscribe

__all__ = [
    "TIMEOUT_MARKER",
    "AttitudeReading",
    "CollectedBlock",
    "InclinometerReading",
    "LineChannel",
    "LineListener",
    "PollResult",
    "PositionReading",
    "SignalReading",
    "StatusReading",
    "TelemetryDomain",
    "TelemetryReading",
    "Unsubscribe",
]
