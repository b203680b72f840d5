"""Merge per-domain readings into a poll result."""

from __future__ import annotations

from typing import Mapping, Optional

from ..core import PollResult, TelemetryDomain, TelemetryReading


def assemble_snapshot(
    readings: Mapping[TelemetryDomain, Optional[TelemetryReading]],
) -> PollResult:
    """Build a connected snapshot; domains absent from ``readings`` stay empty."""

    return PollResult(
        connected=True,
        busy=False,
        signal=readings.get(TelemetryDomain.SIGNAL),
        position=readings.get(TelemetryDomain.POSITION),
        inclinometer=readings.get(TelemetryDomain.INCLINOMETER),
        attitude=readings.get(TelemetryDomain.ATTITUDE),
        status=readings.get(TelemetryDomain.STATUS),
    )
