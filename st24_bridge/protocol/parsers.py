"""Decoders for the ST24 telemetry lines.

Each parser picks the first line carrying its marker and applies one fixed
pattern. A line that does not match yields ``None``; garbled telemetry is
expected on this link and must not fail a snapshot.

Examples of the lines handled here::

    >L2234t2033N055F@@R1:35              signal
    >E0372A1993p0015R0000                position (tenths of a degree)
    >XT:+00.0, YT:-01.1, RP:+014.7:+014.8  inclinometer
    >RL:+00.1, PT:-01.1, YA:199.5        attitude
    0007                                 status word
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, Mapping, Optional

from ..core import (
    AttitudeReading,
    CollectedBlock,
    InclinometerReading,
    PositionReading,
    SignalReading,
    StatusReading,
    TelemetryDomain,
    TelemetryReading,
)

_DECIMAL = r"[+-]?\d+\.\d+"

SIGNAL_PATTERN = re.compile(r"L(\d+)t(\d+)N(\d+).*:(\d+)")
POSITION_PATTERN = re.compile(r"E(\d+)A(\d+)p(\d+)R(\d+)", re.IGNORECASE)
INCLINOMETER_PATTERN = re.compile(
    rf"XT:({_DECIMAL}),\s*YT:({_DECIMAL}),\s*RP:({_DECIMAL}):({_DECIMAL})"
)
ATTITUDE_PATTERN = re.compile(rf"RL:({_DECIMAL}),\s*PT:({_DECIMAL}),\s*YA:(\d+\.\d+)")
STATUS_PATTERN = re.compile(r"[0-9A-Fa-f]{4}")

NID_OK = 0x0001
TRACK_FOUND = 0x0002
THRESHOLD_FLAG = 0x0004
SEARCH_FLAG = 0x0008

LinePredicate = Callable[[str], bool]


def _payload(line: str) -> str:
    # The device sometimes echoes one '>' prompt in front of the data.
    line = line.strip()
    if line.startswith(">"):
        line = line[1:].lstrip()
    return line


def select_line(
    lines: Iterable[str], predicate: LinePredicate, *, strip_prompt: bool = True
) -> str:
    """Return the first payload satisfying ``predicate``, or an empty string."""

    for line in lines:
        payload = _payload(line) if strip_prompt else line.strip()
        if predicate(payload):
            return payload
    return ""


def parse_signal(lines: Iterable[str]) -> Optional[SignalReading]:
    match = SIGNAL_PATTERN.search(select_line(lines, lambda line: "L" in line))
    if match is None:
        return None
    return SignalReading(
        level=int(match.group(1)),
        threshold=int(match.group(2)),
        nid=match.group(3),
        count=int(match.group(4)),
    )


def parse_position(lines: Iterable[str]) -> Optional[PositionReading]:
    match = POSITION_PATTERN.search(
        select_line(lines, lambda line: line.startswith("E"))
    )
    if match is None:
        return None
    return PositionReading(
        elevation=int(match.group(1)) / 10,
        azimuth=int(match.group(2)) / 10,
        polarization=int(match.group(3)) / 10,
        reserve=int(match.group(4)),
    )


def parse_inclinometer(lines: Iterable[str]) -> Optional[InclinometerReading]:
    match = INCLINOMETER_PATTERN.search(select_line(lines, lambda line: "XT" in line))
    if match is None:
        return None
    xt, yt, rp1, rp2 = (float(value) for value in match.groups())
    return InclinometerReading(xt=xt, yt=yt, rp1=rp1, rp2=rp2)


def parse_attitude(lines: Iterable[str]) -> Optional[AttitudeReading]:
    match = ATTITUDE_PATTERN.search(select_line(lines, lambda line: "RL:" in line))
    if match is None:
        return None
    roll, pitch, yaw = (float(value) for value in match.groups())
    return AttitudeReading(roll=roll, pitch=pitch, yaw=yaw)


def parse_status(lines: Iterable[str]) -> Optional[StatusReading]:
    raw = select_line(
        lines,
        lambda line: STATUS_PATTERN.fullmatch(line) is not None,
        strip_prompt=False,
    )
    if not raw:
        return None
    value = int(raw, 16)
    return StatusReading(
        raw=raw,
        nid_ok=bool(value & NID_OK),
        track_found=bool(value & TRACK_FOUND),
        threshold_flag=bool(value & THRESHOLD_FLAG),
        search_flag=bool(value & SEARCH_FLAG),
    )


PARSERS: Mapping[
    TelemetryDomain, Callable[[Iterable[str]], Optional[TelemetryReading]]
] = {
    TelemetryDomain.SIGNAL: parse_signal,
    TelemetryDomain.POSITION: parse_position,
    TelemetryDomain.INCLINOMETER: parse_inclinometer,
    TelemetryDomain.ATTITUDE: parse_attitude,
    TelemetryDomain.STATUS: parse_status,
}


def parse_block(
    domain: TelemetryDomain, block: CollectedBlock
) -> Optional[TelemetryReading]:
    """Decode a collected reply with the parser registered for ``domain``."""

    return PARSERS[domain](block.lines)
