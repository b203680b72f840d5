"""Main application entry-point for st24-bridge."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .api import ApiServer
from .config import BridgeConfig, load_config
from .connection import LinkError
from .engine import TrackerEngine
from .logging import configure_logging

LOGGER = logging.getLogger(__name__)


class ST24BridgeApp:
    """Coordinates application startup and shutdown.

    Startup opens the configured device (if any) and the HTTP API; a failed
    open is logged and the service keeps running so a client can connect a
    port later through the API.
    """

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        *,
        engine: Optional[TrackerEngine] = None,
    ) -> None:
        self._config = config or load_config()
        self._engine = engine or TrackerEngine(self._config)
        self._api_server: Optional[ApiServer] = None
        self._shutdown_event = asyncio.Event()
        self._started_event = asyncio.Event()

    @property
    def engine(self) -> TrackerEngine:
        return self._engine

    async def run(self) -> None:
        """Run until :meth:`request_shutdown` is called or the task is cancelled."""

        LOGGER.info("st24-bridge starting with config: %s", self._config.path)
        try:
            await self._start_services()
            self._started_event.set()
            LOGGER.info("st24-bridge active; awaiting shutdown signal")
            await self._shutdown_event.wait()
        except asyncio.CancelledError:
            LOGGER.info("st24-bridge received shutdown signal")
            raise
        finally:
            await self._stop_services()

    async def wait_started(self) -> None:
        await self._started_event.wait()

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    @classmethod
    def start(cls, config: Optional[BridgeConfig] = None) -> None:
        instance = cls(config=config)
        configure_logging(
            instance._config.logging.level,
            log_path=instance._config.logging.path,
            log_traffic=instance._config.logging.log_traffic,
        )
        try:
            asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("st24-bridge received shutdown signal")

    async def _start_services(self) -> None:
        device = self._config.serial.device
        if device:
            try:
                await self._engine.open_connection(device)
            except LinkError as exc:
                LOGGER.warning("Startup connection failed (%s); continuing without link", exc)

        api = self._config.api
        if not api.enabled:
            return

        server = ApiServer(self._engine, api.host, api.port)
        await server.start()
        self._api_server = server

    async def _stop_services(self) -> None:
        if self._api_server is not None:
            await self._api_server.stop()
            self._api_server = None

        await self._engine.close()
