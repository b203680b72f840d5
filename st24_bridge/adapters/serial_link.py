"""Serial adapter: carriage-return delimited line channel and device catalog."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import serial
import serial.tools.list_ports
import serial_asyncio

from .. import constants
from ..core import LineListener, Unsubscribe

LOGGER = logging.getLogger(__name__)


class ChannelError(RuntimeError):
    """Base class for serial channel failures."""


class ChannelClosedError(ChannelError):
    """Raised when writing to a channel that is not open."""


class ChannelWriteError(ChannelError):
    """Raised when the serial link rejects a write."""


@dataclass(slots=True, frozen=True)
class SerialFraming:
    """Line settings for the ST24 link: 8N1, no flow control, CR-terminated lines."""

    baudrate: int = constants.DEFAULT_BAUDRATE
    bytesize: int = serial.EIGHTBITS
    parity: str = serial.PARITY_NONE
    stopbits: float = serial.STOPBITS_ONE
    rtscts: bool = False
    xonxoff: bool = False
    terminator: bytes = constants.LINE_TERMINATOR
    encoding: str = "ascii"

    def with_baudrate(self, baudrate: Optional[int]) -> "SerialFraming":
        if baudrate is None or baudrate == self.baudrate:
            return self
        return SerialFraming(
            baudrate=baudrate,
            bytesize=self.bytesize,
            parity=self.parity,
            stopbits=self.stopbits,
            rtscts=self.rtscts,
            xonxoff=self.xonxoff,
            terminator=self.terminator,
            encoding=self.encoding,
        )


def list_candidate_devices(
    pattern: str = constants.DEFAULT_DEVICE_PATTERN,
) -> list[str]:
    """Return serial device paths whose name matches ``pattern``, in enumeration order."""

    matcher = re.compile(pattern)
    return [
        port.device
        for port in serial.tools.list_ports.comports()
        if port.device and matcher.search(port.device)
    ]


class SerialLineChannel:
    """Line channel over a pyserial-asyncio stream pair.

    A background task reads until the framing terminator, trims each line and
    hands it to every subscribed listener in arrival order.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        identifier: str,
        framing: SerialFraming = SerialFraming(),
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._identifier = identifier
        self._framing = framing
        self._listeners: list[LineListener] = []
        self._streams: list[asyncio.Queue[Optional[str]]] = []
        self._read_task: Optional[asyncio.Task[None]] = None
        self._open = True

    @classmethod
    async def open(
        cls, identifier: str, framing: SerialFraming = SerialFraming()
    ) -> "SerialLineChannel":
        """Open ``identifier`` and start dispatching lines.

        Raises:
            serial.SerialException: If the device cannot be opened.
            ValueError: If the framing parameters are rejected by pyserial.
        """

        reader, writer = await serial_asyncio.open_serial_connection(
            url=identifier,
            baudrate=framing.baudrate,
            bytesize=framing.bytesize,
            parity=framing.parity,
            stopbits=framing.stopbits,
            rtscts=framing.rtscts,
            xonxoff=framing.xonxoff,
        )
        channel = cls(reader, writer, identifier=identifier, framing=framing)
        channel.start()
        LOGGER.info("Opened %s at %d baud", identifier, framing.baudrate)
        return channel

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def is_open(self) -> bool:
        return self._open

    def start(self) -> None:
        if self._read_task is None:
            self._read_task = asyncio.create_task(self._read_loop())

    async def write(self, data: bytes) -> None:
        if not self._open:
            raise ChannelClosedError(f"{self._identifier} is not open")

        LOGGER.debug("TX %s: %r", self._identifier, data)
        try:
            self._writer.write(data)
            await self._writer.drain()
        except (serial.SerialException, OSError) as exc:
            raise ChannelWriteError(f"Write to {self._identifier} failed: {exc}") from exc

    def subscribe(self, listener: LineListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    async def lines(self) -> AsyncIterator[str]:
        if not self._open:
            return

        queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        unsubscribe = self.subscribe(queue.put_nowait)
        self._streams.append(queue)
        try:
            while True:
                line = await queue.get()
                if line is None:
                    return
                yield line
        finally:
            unsubscribe()
            with contextlib.suppress(ValueError):
                self._streams.remove(queue)

    async def close(self) -> None:
        was_open = self._open
        self._mark_closed()

        if self._read_task is not None:
            self._read_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._read_task
            self._read_task = None

        try:
            self._writer.close()
            await self._writer.wait_closed()
        except Exception as exc:
            LOGGER.warning("Error closing %s: %s", self._identifier, exc)

        if was_open:
            LOGGER.info("Closed %s", self._identifier)

    def _mark_closed(self) -> None:
        if not self._open:
            return
        self._open = False
        self._listeners.clear()
        for queue in self._streams:
            queue.put_nowait(None)

    def _dispatch(self, line: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(line)
            except Exception:
                LOGGER.exception("Line listener failed on %r", line)

    async def _read_loop(self) -> None:
        terminator = self._framing.terminator
        while self._open:
            try:
                raw = await self._reader.readuntil(terminator)
            except asyncio.IncompleteReadError:
                LOGGER.warning("%s closed by the device", self._identifier)
                break
            except asyncio.LimitOverrunError as exc:
                # No terminator within the buffer limit; drop the garbage.
                await self._reader.readexactly(exc.consumed)
                LOGGER.warning(
                    "Discarded %d bytes without terminator from %s",
                    exc.consumed,
                    self._identifier,
                )
                continue
            except (serial.SerialException, OSError) as exc:
                LOGGER.error("Read from %s failed: %s", self._identifier, exc)
                break

            line = raw[: -len(terminator)].decode(
                self._framing.encoding, errors="replace"
            ).strip()
            LOGGER.debug("RX %s: %s", self._identifier, line)
            self._dispatch(line)

        self._mark_closed()
