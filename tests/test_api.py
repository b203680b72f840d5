"""Tests for the HTTP surface."""

import asyncio
import threading

import aiohttp
import pytest
import pytest_asyncio

from st24_bridge.api import ApiServer
from st24_bridge.connection import SerialConnection
from st24_bridge.engine import TrackerEngine

HOST = "127.0.0.1"


@pytest_asyncio.fixture
async def api(bridge_config, channel_factory, unused_tcp_port):
    listed_patterns: list[str] = []
    lister_threads: list[threading.Thread] = []

    def device_lister(pattern: str) -> list[str]:
        listed_patterns.append(pattern)
        lister_threads.append(threading.current_thread())
        return ["/dev/ttyUSB0", "/dev/ttyACM0"]

    engine = TrackerEngine(
        bridge_config,
        connection=SerialConnection(channel_factory=channel_factory),
        device_lister=device_lister,
    )
    server = ApiServer(engine, HOST, unused_tcp_port)
    await server.start()

    class _Api:
        def __init__(self, session: aiohttp.ClientSession) -> None:
            self.session = session
            self.engine = engine
            self.factory = channel_factory
            self.listed_patterns = listed_patterns
            self.lister_threads = lister_threads

        def url(self, path: str) -> str:
            return f"http://{HOST}:{unused_tcp_port}{path}"

    try:
        async with aiohttp.ClientSession() as session:
            yield _Api(session)
    finally:
        await server.stop()
        await engine.close()


@pytest.mark.asyncio
async def test_ports_lists_candidate_devices(api, bridge_config):
    async with api.session.get(api.url("/api/ports")) as response:
        assert response.status == 200
        assert await response.json() == ["/dev/ttyUSB0", "/dev/ttyACM0"]

    assert api.listed_patterns == [bridge_config.serial.device_pattern]


@pytest.mark.asyncio
async def test_ports_enumeration_runs_off_the_event_loop_thread(api):
    async with api.session.get(api.url("/api/ports")) as response:
        assert response.status == 200

    assert api.lister_threads
    assert api.lister_threads[0] is not threading.main_thread()


@pytest.mark.asyncio
async def test_ports_enumeration_failure_returns_500(bridge_config, unused_tcp_port):
    def broken_lister(pattern: str) -> list[str]:
        raise OSError("permission denied")

    engine = TrackerEngine(bridge_config, device_lister=broken_lister)
    server = ApiServer(engine, HOST, unused_tcp_port)
    await server.start()
    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(f"http://{HOST}:{unused_tcp_port}/api/ports") as response:
                payload = await response.json()
                assert response.status == 500
                assert "permission denied" in payload["error"]
    finally:
        await server.stop()


@pytest.mark.asyncio
async def test_status_before_connect_reports_disconnected(api):
    async with api.session.get(api.url("/api/status")) as response:
        assert response.status == 200
        assert await response.json() == {"connected": False}


@pytest.mark.asyncio
async def test_connect_then_status_returns_snapshot(api):
    async with api.session.post(
        api.url("/api/connect"), json={"path": "/dev/ttyUSB0", "baudRate": 9600}
    ) as response:
        assert response.status == 200
        assert await response.json() == {"ok": True}

    async with api.session.get(api.url("/api/status")) as response:
        payload = await response.json()

    assert payload["connected"] is True
    assert payload["busy"] is False
    assert payload["signal"] == {"level": 2234, "threshold": 2033, "nid": "055", "count": 35}
    assert payload["position"] == {"el": 37.2, "az": 199.3, "pol": 1.5, "rel": 0}
    assert payload["inclinometer"] == {"xt": 0.0, "yt": -1.1, "rp1": 14.7, "rp2": 14.8}
    assert payload["attitude"] == {"roll": 0.1, "pitch": -1.1, "yaw": 199.5}
    assert payload["status"] == {
        "raw": "0007",
        "NIDOK": True,
        "TRACKF": True,
        "THRSF": True,
        "SRCHF": False,
    }


@pytest.mark.asyncio
async def test_overlapping_status_requests_report_busy(api):
    await api.engine.open_connection("/dev/ttyUSB0")
    api.factory.channels[0].reply_delay = 0.02

    async def fetch_status() -> dict:
        async with api.session.get(api.url("/api/status")) as response:
            return await response.json()

    async def wait_busy() -> None:
        while not api.engine.busy:
            await asyncio.sleep(0.001)

    first = asyncio.create_task(fetch_status())
    await asyncio.wait_for(wait_busy(), timeout=1.0)

    assert await fetch_status() == {"connected": True, "busy": True}

    payload = await first
    assert payload["busy"] is False
    assert payload["status"]["raw"] == "0007"


@pytest.mark.asyncio
async def test_connect_requires_path(api):
    async with api.session.post(api.url("/api/connect"), json={}) as response:
        assert response.status == 400
        assert "path" in (await response.json())["error"]


@pytest.mark.asyncio
async def test_connect_rejects_invalid_baudrate(api):
    async with api.session.post(
        api.url("/api/connect"), json={"path": "COM3", "baudRate": "fast"}
    ) as response:
        assert response.status == 400

    assert api.factory.opened == []


@pytest.mark.asyncio
async def test_connect_failure_returns_502(api):
    api.factory.error = OSError("could not open port /dev/ttyUSB7")

    async with api.session.post(
        api.url("/api/connect"), json={"path": "/dev/ttyUSB7"}
    ) as response:
        payload = await response.json()

    assert response.status == 502
    assert "/dev/ttyUSB7" in payload["error"]


@pytest.mark.asyncio
async def test_malformed_json_is_rejected(api):
    async with api.session.post(
        api.url("/api/connect"),
        data="{not json",
        headers={"Content-Type": "application/json"},
    ) as response:
        assert response.status == 400


@pytest.mark.asyncio
async def test_send_requires_open_port(api):
    async with api.session.post(api.url("/api/send"), json={"cmd": "R"}) as response:
        assert response.status == 400
        assert (await response.json())["error"] == "port not open"


@pytest.mark.asyncio
async def test_send_writes_command(api):
    await api.engine.open_connection("/dev/ttyUSB0")

    async with api.session.post(api.url("/api/send"), json={"cmd": "W1800"}) as response:
        assert response.status == 200
        assert await response.json() == {"sent": "W1800"}

    assert api.factory.channels[0].writes == [b"W1800\r"]


@pytest.mark.asyncio
async def test_send_requires_command(api):
    await api.engine.open_connection("/dev/ttyUSB0")

    async with api.session.post(api.url("/api/send"), json={"cmd": ""}) as response:
        assert response.status == 400


@pytest.mark.asyncio
async def test_send_during_poll_returns_409(api):
    await api.engine.open_connection("/dev/ttyUSB0")
    channel = api.factory.channels[0]
    channel.reply_delay = 0.02

    poll = asyncio.create_task(api.engine.run_poll())
    await asyncio.sleep(0)
    assert api.engine.busy is True

    async with api.session.post(api.url("/api/send"), json={"cmd": "W1800"}) as response:
        assert response.status == 409

    await poll
    assert b"W1800\r" not in channel.writes
