"""Tracker engine: the operations exposed to the outside world."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .adapters import SerialFraming, list_candidate_devices
from .config import BridgeConfig
from .connection import LinkError, SerialConnection
from .core import PollResult
from .protocol import CommandSequencer, ResponseCollector, build_poll_steps

LOGGER = logging.getLogger(__name__)

DeviceLister = Callable[[str], list[str]]


class TrackerEngine:
    """Binds the device catalog, the connection and the sequencer together."""

    def __init__(
        self,
        config: BridgeConfig,
        *,
        connection: Optional[SerialConnection] = None,
        device_lister: Optional[DeviceLister] = None,
    ) -> None:
        self._config = config
        self._connection = connection or SerialConnection(
            SerialFraming(baudrate=config.serial.baudrate)
        )
        self._device_lister: DeviceLister = device_lister or list_candidate_devices
        self._sequencer = CommandSequencer(
            self._connection,
            collector=ResponseCollector(
                timeout=config.sequencer.response_timeout_seconds
            ),
            steps=build_poll_steps(config.sequencer.settle_delay_seconds),
        )

    @property
    def connection(self) -> SerialConnection:
        return self._connection

    @property
    def connected(self) -> bool:
        return self._connection.is_open

    @property
    def busy(self) -> bool:
        return self._sequencer.busy

    def list_candidate_devices(self) -> list[str]:
        """List serial devices that look like a tracker port.

        Raises:
            LinkError: If the platform refuses to enumerate devices.
        """

        try:
            devices = self._device_lister(self._config.serial.device_pattern)
        except OSError as exc:
            LOGGER.error("Serial port enumeration failed: %s", exc)
            raise LinkError(None, f"cannot list serial ports: {exc}") from exc
        LOGGER.info("Candidate ports: %s", devices)
        return devices

    async def open_connection(
        self, identifier: str, *, baudrate: Optional[int] = None
    ) -> None:
        await self._connection.open(identifier, baudrate=baudrate)

    async def send_raw(self, command: str) -> str:
        return await self._sequencer.send_raw(command)

    async def run_poll(self) -> PollResult:
        return await self._sequencer.run_poll()

    async def close(self) -> None:
        await self._connection.close()
