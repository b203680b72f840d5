"""Serial connection lifecycle.

Exactly one physical link is held at a time. The ST24 does not tolerate two
concurrent openers, so opening a device always closes the previous link first.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from .adapters import SerialFraming, SerialLineChannel
from .core import LineChannel

LOGGER = logging.getLogger(__name__)

ChannelFactory = Callable[[str, SerialFraming], Awaitable[LineChannel]]


class LinkError(RuntimeError):
    """Raised when a serial device cannot be enumerated or opened."""

    def __init__(self, identifier: Optional[str], reason: str) -> None:
        self.identifier = identifier
        self.reason = reason
        if identifier:
            super().__init__(f"{identifier}: {reason}")
        else:
            super().__init__(reason)


class ConnectionState(str, Enum):
    """Current state of the serial link."""

    DISCONNECTED = "disconnected"
    """No link is open, or the device dropped the open one."""

    CONNECTING = "connecting"
    """A device is being opened."""

    CONNECTED = "connected"
    """A link is open and accepts writes."""


class SerialConnection:
    """Owns the single live channel to the tracker."""

    def __init__(
        self,
        framing: SerialFraming = SerialFraming(),
        *,
        channel_factory: Optional[ChannelFactory] = None,
    ) -> None:
        self._framing = framing
        self._channel_factory: ChannelFactory = (
            channel_factory or SerialLineChannel.open
        )
        self._channel: Optional[LineChannel] = None
        self._state = ConnectionState.DISCONNECTED
        self._lock = asyncio.Lock()

    @property
    def state(self) -> ConnectionState:
        if self._state is ConnectionState.CONNECTED and not self.is_open:
            return ConnectionState.DISCONNECTED
        return self._state

    @property
    def is_open(self) -> bool:
        return self._channel is not None and self._channel.is_open

    @property
    def channel(self) -> Optional[LineChannel]:
        return self._channel

    @property
    def identifier(self) -> Optional[str]:
        if self._channel is None:
            return None
        return self._channel.identifier

    async def open(self, identifier: str, *, baudrate: Optional[int] = None) -> None:
        """Open ``identifier``, closing any link held before.

        Raises:
            LinkError: If the device cannot be opened.
        """

        if not identifier:
            raise LinkError(None, "device path is required")

        async with self._lock:
            await self._close_channel()

            framing = self._framing.with_baudrate(baudrate)
            self._state = ConnectionState.CONNECTING
            LOGGER.info("Opening %s (%d baud, 8N1)", identifier, framing.baudrate)

            try:
                channel = await self._channel_factory(identifier, framing)
            except (OSError, ValueError) as exc:
                self._state = ConnectionState.DISCONNECTED
                LOGGER.error("Failed to open %s: %s", identifier, exc)
                raise LinkError(identifier, str(exc)) from exc

            self._channel = channel
            self._state = ConnectionState.CONNECTED

    async def close(self) -> None:
        async with self._lock:
            await self._close_channel()

    async def _close_channel(self) -> None:
        channel = self._channel
        self._channel = None
        self._state = ConnectionState.DISCONNECTED
        if channel is not None:
            await channel.close()
