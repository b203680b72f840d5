"""Adapter modules for external integrations."""

from .serial_link import (
    ChannelClosedError,
    ChannelError,
    ChannelWriteError,
    SerialFraming,
    SerialLineChannel,
    list_candidate_devices,
)

__all__ = [
    "ChannelClosedError",
    "ChannelError",
    "ChannelWriteError",
    "SerialFraming",
    "SerialLineChannel",
    "list_candidate_devices",
]
