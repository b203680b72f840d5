"""Protocol definitions for line-oriented device channels."""

from __future__ import annotations

from typing import AsyncIterator, Callable, Protocol


LineListener = Callable[[str], None]
Unsubscribe = Callable[[], None]


class LineChannel(Protocol):
    """Minimal contract for a duplex link that delivers delimited text lines."""

    @property
    def identifier(self) -> str:
        """Device path the channel is attached to."""
        ...

    @property
    def is_open(self) -> bool:
        """Whether writes are currently accepted."""
        ...

    async def write(self, data: bytes) -> None:
        """Send raw bytes; no acknowledgement is expected from the device.

        Raises:
            ChannelClosedError: If the channel is not open.
            ChannelWriteError: If the underlying link rejects the write.
        """
        ...

    def subscribe(self, listener: LineListener) -> Unsubscribe:
        """Invoke ``listener`` once per received line, in arrival order."""
        ...

    def lines(self) -> AsyncIterator[str]:
        """Iterate received lines until the channel closes."""
        ...

    async def close(self) -> None:
        """Release the underlying link."""
        ...
