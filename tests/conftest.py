import asyncio
import io
import json
import sys
from pathlib import Path

import pytest
import websockets
from rich.console import Console

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hackbot.config import BotConfig


class DummyWebSocket:
    """
    Stands in for a websockets ClientConnection.

    Inbound frames are queued with feed()/feed_json() and end() closes the
    stream. With chunked=True every send writes its frame to ``wire`` one
    character at a time, yielding to the loop in between, so unserialized
    concurrent sends would interleave.
    """

    def __init__(self, chunked: bool = False) -> None:
        self.sent_messages: list[str] = []
        self.wire: list[str] = []
        self.chunked = chunked
        self.fail_sends = False
        self.closed = False
        self.close_code: int | None = None
        self._inbound: asyncio.Queue = asyncio.Queue()

    def feed(self, frame) -> None:
        self._inbound.put_nowait(frame)

    def feed_json(self, **data) -> None:
        self.feed(json.dumps(data))

    def end(self) -> None:
        self._inbound.put_nowait(None)

    def sent_json(self) -> list[dict]:
        return [json.loads(msg) for msg in self.sent_messages]

    async def send(self, data: str) -> None:
        if self.fail_sends or self.closed:
            raise websockets.exceptions.ConnectionClosedError(None, None)
        if self.chunked:
            for ch in data:
                self.wire.append(ch)
                await asyncio.sleep(0)
            self.wire.append("\n")
        self.sent_messages.append(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True
        self.close_code = code
        self._inbound.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self._inbound.get()
        if frame is None:
            raise StopAsyncIteration
        return frame


@pytest.fixture
def dummy_ws() -> DummyWebSocket:
    return DummyWebSocket()


@pytest.fixture
def bot_config() -> BotConfig:
    return BotConfig(
        server="ws://127.0.0.1:6060/chat-ws",
        channel="lounge",
        nick="hackbot",
        password="",
        keepalive_interval=60.0,
    )


@pytest.fixture
def quiet_console() -> Console:
    return Console(file=io.StringIO(), force_terminal=False, highlight=False)
