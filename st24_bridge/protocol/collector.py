"""Sentinel-delimited response collection.

The ST24 has no length field or checksum: a reply is a run of lines optionally
opened by ``>`` and closed by one of ``>``, ``#`` or ``*``. A per-command
deadline keeps the exchange live when the device stops answering mid-reply.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional

from .. import constants
from ..core import TIMEOUT_MARKER, CollectedBlock, LineChannel

LOGGER = logging.getLogger(__name__)

START_SENTINEL = ">"
TERMINAL_SENTINELS = frozenset({">", "#", "*"})


class CollectorState(str, Enum):
    AWAITING_START = "awaiting_start"
    COLLECTING = "collecting"
    DONE = "done"


class ResponseAssembler:
    """State machine that turns arriving lines into one response block."""

    def __init__(self, *, expects_start: bool = True) -> None:
        self.state = (
            CollectorState.AWAITING_START if expects_start else CollectorState.COLLECTING
        )
        self._lines: list[str] = []

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(self._lines)

    @property
    def done(self) -> bool:
        return self.state is CollectorState.DONE

    def feed(self, line: str) -> bool:
        """Consume one line; return True once the block is complete."""

        if self.state is CollectorState.DONE:
            return True

        line = line.strip()
        if not line:
            return False

        if self.state is CollectorState.AWAITING_START:
            self.state = CollectorState.COLLECTING
            if line == START_SENTINEL:
                return False
            # Start sentinel omitted by the device; the line is data.
            self._lines.append(line)
            return False

        if line in TERMINAL_SENTINELS:
            self.state = CollectorState.DONE
            return True

        self._lines.append(line)
        return False


def encode_command(command: str, terminator: bytes = constants.LINE_TERMINATOR) -> bytes:
    """Encode a command for the wire, appending the terminator once."""

    payload = command.encode("ascii")
    if not payload.endswith(terminator):
        payload += terminator
    return payload


class ResponseCollector:
    """Writes one command and gathers its reply until a sentinel or the deadline."""

    def __init__(
        self,
        *,
        timeout: float = constants.DEFAULT_RESPONSE_TIMEOUT_SECONDS,
        terminator: bytes = constants.LINE_TERMINATOR,
    ) -> None:
        self.timeout = timeout
        self._terminator = terminator

    async def exchange(
        self,
        channel: LineChannel,
        command: str,
        *,
        expects_start: bool = True,
        timeout: Optional[float] = None,
    ) -> CollectedBlock:
        """Send ``command`` and return the lines of its reply.

        A deadline never raises: the block is returned with ``timed_out`` set,
        holding whatever arrived or the ``"(timeout)"`` placeholder.

        Raises:
            ChannelError: If the command could not be written.
        """

        loop = asyncio.get_running_loop()
        settled: asyncio.Future[None] = loop.create_future()
        assembler = ResponseAssembler(expects_start=expects_start)

        def on_line(line: str) -> None:
            if settled.done():
                return
            if assembler.feed(line):
                settled.set_result(None)

        # Subscribe before writing so an immediate reply is not missed.
        unsubscribe = channel.subscribe(on_line)
        try:
            await channel.write(encode_command(command, self._terminator))
            deadline = self.timeout if timeout is None else timeout
            try:
                await asyncio.wait_for(settled, timeout=deadline)
            except asyncio.TimeoutError:
                lines = assembler.lines or (TIMEOUT_MARKER,)
                LOGGER.warning(
                    "No sentinel for %r within %.2fs (%d line(s) buffered)",
                    command,
                    deadline,
                    len(assembler.lines),
                )
                return CollectedBlock(command=command, lines=lines, timed_out=True)
        finally:
            unsubscribe()

        return CollectedBlock(command=command, lines=assembler.lines)
