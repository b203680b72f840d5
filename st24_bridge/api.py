"""HTTP surface exposing the tracker engine."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any, Dict, Optional

from aiohttp import web

from .connection import LinkError
from .engine import TrackerEngine
from .protocol import NotConnectedError, SequencerBusyError

LOGGER = logging.getLogger(__name__)


async def _read_json(request: web.Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise web.HTTPBadRequest(
            text=json.dumps({"error": f"invalid JSON body: {exc}"}),
            content_type="application/json",
        ) from exc
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "JSON object expected"}),
            content_type="application/json",
        )
    return body


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


class ApiServer:
    """Thin HTTP layer mapping one endpoint to each engine operation."""

    def __init__(self, engine: TrackerEngine, host: str, port: int) -> None:
        self._engine = engine
        self._host = host
        self._port = port
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/ports", self._handle_ports)
        app.router.add_post("/api/connect", self._handle_connect)
        app.router.add_post("/api/send", self._handle_send)
        app.router.add_get("/api/status", self._handle_status)
        return app

    async def start(self) -> None:
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()
        LOGGER.info("ST24 API listening on http://%s:%s", self._host, self._port)

    async def stop(self) -> None:
        with contextlib.suppress(Exception):
            if self._site is not None:
                await self._site.stop()
        if self._runner is not None:
            await self._runner.cleanup()
        self._site = None
        self._runner = None

    async def _handle_ports(self, request: web.Request) -> web.Response:
        try:
            devices = await asyncio.to_thread(self._engine.list_candidate_devices)
        except LinkError as exc:
            return _error(str(exc), 500)
        return web.json_response(devices)

    async def _handle_connect(self, request: web.Request) -> web.Response:
        body = await _read_json(request)
        path = body.get("path")
        if not path or not isinstance(path, str):
            return _error('missing "path" parameter', 400)

        baudrate = body.get("baudRate")
        if baudrate is not None and (
            isinstance(baudrate, bool) or not isinstance(baudrate, int) or baudrate <= 0
        ):
            return _error('"baudRate" must be a positive integer', 400)

        try:
            await self._engine.open_connection(path, baudrate=baudrate)
        except LinkError as exc:
            return _error(str(exc), 502)
        return web.json_response({"ok": True})

    async def _handle_send(self, request: web.Request) -> web.Response:
        body = await _read_json(request)
        command = body.get("cmd")
        if not command or not isinstance(command, str):
            return _error('missing "cmd" parameter', 400)

        try:
            sent = await self._engine.send_raw(command)
        except NotConnectedError as exc:
            return _error(str(exc), 400)
        except SequencerBusyError as exc:
            return _error(str(exc), 409)
        except UnicodeEncodeError:
            return _error("commands must be ASCII", 400)
        return web.json_response({"sent": sent})

    async def _handle_status(self, request: web.Request) -> web.Response:
        result = await self._engine.run_poll()
        return web.json_response(result.as_dict())
