"""Single-flight command sequencing for the ST24 poll cycle.

The device has no request identifiers, so replies can only be attributed by
order: every step waits for its reply (or deadline) before the next write, and
only one sequence may own the link at a time.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, Sequence

from .. import constants
from ..adapters import ChannelError
from ..core import (
    CollectedBlock,
    LineChannel,
    PollResult,
    TelemetryDomain,
    TelemetryReading,
)
from .collector import ResponseCollector, encode_command
from .parsers import parse_block
from .snapshot import assemble_snapshot

if TYPE_CHECKING:
    from ..connection import SerialConnection

LOGGER = logging.getLogger(__name__)


class SequencerError(RuntimeError):
    """Base class for requests the sequencer refuses."""


class NotConnectedError(SequencerError):
    """Raised when a command is requested while no link is open."""


class SequencerBusyError(SequencerError):
    """Raised when a command is requested while a poll owns the link."""


@dataclass(slots=True, frozen=True)
class CommandStep:
    """One command of a sequence.

    Attributes:
        command: Command text without terminator.
        settle_delay: Seconds to wait after the reply before the next step.
        domain: Telemetry decoded from the reply, if any.
        expects_start: Whether the reply opens with the ``>`` start sentinel.
    """

    command: str
    settle_delay: float = 0.0
    domain: Optional[TelemetryDomain] = None
    expects_start: bool = True


def build_poll_steps(
    settle_delay: float = constants.DEFAULT_SETTLE_DELAY_SECONDS,
) -> tuple[CommandStep, ...]:
    """Return the fixed poll cycle ``$ R P H G ^S %``."""

    return (
        CommandStep("$", settle_delay),
        CommandStep("R", settle_delay, TelemetryDomain.SIGNAL),
        CommandStep("P", settle_delay, TelemetryDomain.POSITION),
        CommandStep("H", settle_delay, TelemetryDomain.INCLINOMETER),
        CommandStep("G", settle_delay, TelemetryDomain.ATTITUDE),
        CommandStep("^S", settle_delay, TelemetryDomain.STATUS),
        CommandStep("%"),
    )


class CommandSequencer:
    """Runs poll cycles and manual sends against the shared connection."""

    def __init__(
        self,
        connection: SerialConnection,
        *,
        collector: Optional[ResponseCollector] = None,
        steps: Optional[Sequence[CommandStep]] = None,
    ) -> None:
        self._connection = connection
        self._collector = collector or ResponseCollector()
        self._steps = tuple(steps) if steps is not None else build_poll_steps()
        self._gate = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._gate.locked()

    @property
    def steps(self) -> tuple[CommandStep, ...]:
        return self._steps

    async def run_poll(self) -> PollResult:
        """Run the full command cycle and return the decoded snapshot.

        Returns a disconnected result without I/O when no link is open, and a
        busy result without I/O when another cycle is in flight.
        """

        if not self._connection.is_open:
            return PollResult.disconnected()

        if self._gate.locked():
            LOGGER.debug("Poll rejected: a sequence is already running")
            return PollResult.rejected_busy()

        readings: Dict[TelemetryDomain, Optional[TelemetryReading]] = {}
        async with self._gate:
            channel = self._connection.channel
            try:
                for step in self._steps:
                    block = await self._run_step(channel, step)
                    if step.domain is not None:
                        readings[step.domain] = parse_block(step.domain, block)
                    if step.settle_delay > 0:
                        await asyncio.sleep(step.settle_delay)
            except Exception:
                LOGGER.exception("Poll sequence aborted; returning partial snapshot")

        return assemble_snapshot(readings)

    async def send_raw(self, command: str) -> str:
        """Write a single command outside the poll cycle.

        The write shares the poll gate so it can never interleave with a
        running cycle. Write failures are logged, not raised.

        Raises:
            NotConnectedError: If no link is open.
            SequencerBusyError: If a poll cycle is in flight.
        """

        channel = self._connection.channel
        if channel is None or not channel.is_open:
            raise NotConnectedError("port not open")

        if self._gate.locked():
            raise SequencerBusyError("a poll sequence is running")

        async with self._gate:
            LOGGER.info("Sending %r", command)
            try:
                await channel.write(encode_command(command))
            except ChannelError as exc:
                LOGGER.error("Write of %r failed: %s", command, exc)

        return command

    async def _run_step(
        self, channel: Optional[LineChannel], step: CommandStep
    ) -> CollectedBlock:
        # Steps only ever write to the link the poll started on.
        if (
            channel is None
            or not channel.is_open
            or self._connection.channel is not channel
        ):
            LOGGER.warning("Link lost before %r", step.command)
            return CollectedBlock.empty(step.command)

        try:
            block = await self._collector.exchange(
                channel, step.command, expects_start=step.expects_start
            )
        except ChannelError as exc:
            LOGGER.error("Step %r failed: %s", step.command, exc)
            return CollectedBlock.empty(step.command)

        LOGGER.debug("Step %r -> %s", step.command, list(block.lines))
        return block
