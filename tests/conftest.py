import asyncio
import contextlib
from pathlib import Path
from typing import AsyncIterator, Callable, Iterable, Mapping, Optional

import pytest

from st24_bridge.adapters import ChannelClosedError, ChannelWriteError, SerialFraming
from st24_bridge.config import BridgeConfig, load_config
from st24_bridge.connection import SerialConnection

# Replies of a healthy tracker to one full poll cycle.
ST24_REPLIES: dict[str, list[str]] = {
    "$": [">", "ST24 V2.1", "#"],
    "R": [">L2234t2033N055F@@R1:35", ">"],
    "P": [">", "E0372A1993p0015R0000", "#"],
    "H": [">XT:+00.0, YT:-01.1, RP:+014.7:+014.8", "*"],
    "G": [">RL:+00.1, PT:-01.1, YA:199.5", ">"],
    "^S": [">", "0007", ">"],
    "%": [">", "#"],
}


class ScriptedChannel:
    """In-memory line channel answering commands from a reply script."""

    def __init__(
        self,
        replies: Optional[Mapping[str, Iterable[str]]] = None,
        *,
        identifier: str = "/dev/ttyUSB0",
        reply_delay: float = 0.0,
    ) -> None:
        self.identifier = identifier
        self.is_open = True
        self.replies = {key: list(value) for key, value in (replies or {}).items()}
        self.reply_delay = reply_delay
        self.failing_commands: set[str] = set()
        self.writes: list[bytes] = []
        self.close_calls = 0
        self._listeners: list[Callable[[str], None]] = []

    @property
    def commands(self) -> list[str]:
        return [data.decode("ascii").rstrip("\r") for data in self.writes]

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def write(self, data: bytes) -> None:
        if not self.is_open:
            raise ChannelClosedError(f"{self.identifier} is not open")
        self.writes.append(data)
        command = data.decode("ascii").rstrip("\r")
        if command in self.failing_commands:
            raise ChannelWriteError(f"write of {command!r} failed")

        loop = asyncio.get_running_loop()
        for line in self.replies.get(command, ()):
            if self.reply_delay:
                loop.call_later(self.reply_delay, self.emit, line)
            else:
                loop.call_soon(self.emit, line)

    def emit(self, line: str) -> None:
        for listener in list(self._listeners):
            listener(line)

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    async def lines(self) -> AsyncIterator[str]:
        queue: asyncio.Queue[str] = asyncio.Queue()
        unsubscribe = self.subscribe(queue.put_nowait)
        try:
            while self.is_open:
                yield await queue.get()
        finally:
            unsubscribe()

    async def close(self) -> None:
        self.is_open = False
        self.close_calls += 1


class ChannelFactory:
    """Connection channel factory recording every open request."""

    def __init__(self, replies: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        self.replies = replies if replies is not None else ST24_REPLIES
        self.opened: list[tuple[str, SerialFraming]] = []
        self.channels: list[ScriptedChannel] = []
        self.error: Optional[Exception] = None

    async def __call__(self, identifier: str, framing: SerialFraming) -> ScriptedChannel:
        self.opened.append((identifier, framing))
        if self.error is not None:
            raise self.error
        channel = ScriptedChannel(self.replies, identifier=identifier)
        self.channels.append(channel)
        return channel


@pytest.fixture
def channel_factory() -> ChannelFactory:
    return ChannelFactory()


@pytest.fixture
def connection(channel_factory: ChannelFactory) -> SerialConnection:
    return SerialConnection(channel_factory=channel_factory)


@pytest.fixture
def bridge_config(tmp_path: Path) -> BridgeConfig:
    config = load_config(tmp_path / "st24-bridge.cfg")
    config.sequencer.response_timeout_seconds = 0.05
    config.sequencer.settle_delay_seconds = 0.0
    return config


@pytest.fixture
def st24_replies() -> dict[str, list[str]]:
    return {command: list(lines) for command, lines in ST24_REPLIES.items()}


@pytest.fixture
def make_channel() -> Callable[..., ScriptedChannel]:
    return ScriptedChannel


@pytest.fixture
def make_channel_factory() -> Callable[..., ChannelFactory]:
    return ChannelFactory
