"""Typed telemetry records and poll results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

TIMEOUT_MARKER = "(timeout)"


class TelemetryDomain(str, Enum):
    """Telemetry families decoded from a poll cycle."""

    SIGNAL = "signal"
    POSITION = "position"
    INCLINOMETER = "inclinometer"
    ATTITUDE = "attitude"
    STATUS = "status"


@dataclass(slots=True, frozen=True)
class SignalReading:
    level: int
    threshold: int
    nid: str
    count: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "threshold": self.threshold,
            "nid": self.nid,
            "count": self.count,
        }


@dataclass(slots=True, frozen=True)
class PositionReading:
    """Antenna position in degrees; the device reports tenths."""

    elevation: float
    azimuth: float
    polarization: float
    reserve: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "el": self.elevation,
            "az": self.azimuth,
            "pol": self.polarization,
            "rel": self.reserve,
        }


@dataclass(slots=True, frozen=True)
class InclinometerReading:
    xt: float
    yt: float
    rp1: float
    rp2: float

    def as_dict(self) -> Dict[str, Any]:
        return {"xt": self.xt, "yt": self.yt, "rp1": self.rp1, "rp2": self.rp2}


@dataclass(slots=True, frozen=True)
class AttitudeReading:
    roll: float
    pitch: float
    yaw: float

    def as_dict(self) -> Dict[str, Any]:
        return {"roll": self.roll, "pitch": self.pitch, "yaw": self.yaw}


@dataclass(slots=True, frozen=True)
class StatusReading:
    """Status word as reported (four hex digits) plus its flag bits."""

    raw: str
    nid_ok: bool
    track_found: bool
    threshold_flag: bool
    search_flag: bool

    def as_dict(self) -> Dict[str, Any]:
        return {
            "raw": self.raw,
            "NIDOK": self.nid_ok,
            "TRACKF": self.track_found,
            "THRSF": self.threshold_flag,
            "SRCHF": self.search_flag,
        }


TelemetryReading = Union[
    SignalReading, PositionReading, InclinometerReading, AttitudeReading, StatusReading
]


@dataclass(slots=True, frozen=True)
class CollectedBlock:
    """Lines gathered in response to a single command.

    Attributes:
        command: Command text as issued, without the line terminator.
        lines: Data lines in arrival order, sentinels excluded. Holds the single
               placeholder ``"(timeout)"`` when the deadline fired before any
               data arrived.
        timed_out: Whether the deadline fired before a terminal sentinel.
    """

    command: str
    lines: tuple[str, ...] = ()
    timed_out: bool = False

    @classmethod
    def empty(cls, command: str) -> "CollectedBlock":
        return cls(command=command)


@dataclass(slots=True, frozen=True)
class PollResult:
    """One telemetry snapshot. ``None`` for a domain means it did not match this cycle."""

    connected: bool
    busy: bool = False
    signal: Optional[SignalReading] = None
    position: Optional[PositionReading] = None
    inclinometer: Optional[InclinometerReading] = None
    attitude: Optional[AttitudeReading] = None
    status: Optional[StatusReading] = None

    @classmethod
    def disconnected(cls) -> "PollResult":
        return cls(connected=False)

    @classmethod
    def rejected_busy(cls) -> "PollResult":
        return cls(connected=True, busy=True)

    def reading(self, domain: TelemetryDomain) -> Optional[TelemetryReading]:
        return getattr(self, domain.value)

    def as_dict(self) -> Dict[str, Any]:
        if not self.connected:
            return {"connected": False}
        if self.busy:
            return {"connected": True, "busy": True}

        payload: Dict[str, Any] = {"connected": True, "busy": False}
        for domain in TelemetryDomain:
            reading = self.reading(domain)
            payload[domain.value] = reading.as_dict() if reading is not None else {}
        return payload
