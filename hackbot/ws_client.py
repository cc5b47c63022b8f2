from __future__ import annotations
import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import websockets
from rich.console import Console
from rich.markup import escape

from hackbot.cancel import CancelToken
from hackbot.commands import extract_command_line, parse_command
from hackbot.config import BotConfig
from hackbot.errors import ConnectError, SendError, SessionStateError
from hackbot.state import Roster, User
from shared.envelope import (
    ChatMessage,
    DecodeError,
    InboundMessage,
    OnlineAdd,
    OnlineRemove,
    OnlineSet,
    UnknownMessage,
    WhisperMessage,
    decode_message,
    encode_chat,
    encode_join,
    encode_ping,
)
from shared.log import get_logger, log_chat_event

logger = get_logger(__name__)


Connector = Callable[..., Awaitable[Any]]


class SessionState(str, Enum):
    NEW = "new"
    CONNECTED = "connected"
    JOINED = "joined"
    CLOSED = "closed"


class SessionResult(str, Enum):
    """Which of the raced tasks ended ``ChatSession.run``."""
    READER_CLOSED = "reader_closed"
    KEEPALIVE_FAILED = "keepalive_failed"
    CANCELLED = "cancelled"


class ChatSession:
    """
    One websocket connection to one channel.

    ``connect()`` then ``join()`` then ``run(cancel)``. While running, a reader
    task applies inbound frames in arrival order and a keepalive task pings
    the server; every outbound frame goes through ``_write_lock`` so frames
    from replies, pings and the join never interleave on the wire.
    """

    def __init__(
        self,
        config: BotConfig,
        console: Optional[Console] = None,
        connector: Connector = websockets.connect,
    ) -> None:
        self.config = config
        self.roster = Roster(case_sensitive=config.case_sensitive)
        self.websocket: Optional[websockets.ClientConnection] = None
        self.state = SessionState.NEW
        self.console = console or Console(highlight=False)
        self._connector = connector
        self._write_lock = asyncio.Lock()

    @property
    def _log_context(self) -> Dict[str, str]:
        return {"channel": self.config.channel, "nick": self.config.nick}

    # ========================================
    #           LIFECYCLE
    # ========================================

    async def connect(self) -> None:
        """Open the websocket to the configured server. Failure is fatal"""
        if self.state is not SessionState.NEW:
            raise SessionStateError(f"connect() called in state {self.state.value}")
        try:
            # Keepalive is the JSON ping below, not protocol-level pings
            websocket = await self._connector(self.config.server, ping_interval=None)
        except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as e:
            raise ConnectError(f"Failed to connect to {self.config.server}: {e}") from e
        self.attach(websocket)
        logger.info("Connected to %s", self.config.server, extra=self._log_context)

    def attach(self, websocket: Any) -> None:
        """Adopt an already open connection."""
        self.websocket = websocket
        self.state = SessionState.CONNECTED

    async def join(self) -> None:
        """Send the channel join handshake. Must run once, between connect() and run()"""
        if self.state is not SessionState.CONNECTED:
            raise SessionStateError(f"join() called in state {self.state.value}")
        await self._send(encode_join(self.config.channel, self.config.nick, self.config.password))
        self.state = SessionState.JOINED
        logger.info("Joined channel", extra=self._log_context)

    async def close(self) -> None:
        if self.websocket is None or self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        try:
            await self.websocket.close(code=1000)
        except (OSError, websockets.exceptions.WebSocketException) as e:
            logger.error(f"Error closing connection: {e}")

    # ========================================
    #           OUTBOUND
    # ========================================

    async def _send(self, frame: str) -> None:
        """Write one frame while holding the exclusive writer"""
        if self.websocket is None or self.state in (SessionState.NEW, SessionState.CLOSED):
            raise SendError(f"Cannot send in state {self.state.value}")
        async with self._write_lock:
            try:
                await self.websocket.send(frame)
            except websockets.exceptions.ConnectionClosed as e:
                raise SendError(f"Connection closed while sending: {e}") from e
            except OSError as e:
                raise SendError(f"Error sending frame: {e}") from e

    async def send_chat(self, text: str) -> bool:
        """Best effort chat message. Returns False and logs when the send fails."""
        try:
            await self._send(encode_chat(text))
        except SendError as e:
            logger.warning("Dropped chat reply: %s", e, extra=self._log_context)
            return False
        return True

    async def send_ping(self) -> None:
        await self._send(encode_ping())

    # ========================================
    #           RUN
    # ========================================

    async def run(self, cancel: CancelToken) -> SessionResult:
        """
        Race the reader, the keepalive and ``cancel`` until one finishes.

        The other two are cancelled and the connection is closed before
        returning. A keepalive send failure (or any unexpected reader error)
        is re-raised after cleanup.
        """
        if self.state is not SessionState.JOINED:
            raise SessionStateError(f"run() called in state {self.state.value}")

        reader = asyncio.create_task(self._read_loop(), name="hackbot-reader")
        keepalive = asyncio.create_task(self._keepalive_loop(), name="hackbot-keepalive")
        waiter = asyncio.create_task(cancel.wait(), name="hackbot-cancel")
        outcomes = {
            waiter: SessionResult.CANCELLED,
            keepalive: SessionResult.KEEPALIVE_FAILED,
            reader: SessionResult.READER_CLOSED,
        }

        try:
            done, _ = await asyncio.wait(outcomes, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in outcomes:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*outcomes, return_exceptions=True)
            await self.close()

        # dict order gives cancellation priority when several finish together
        winner = next(task for task in outcomes if task in done)
        result = outcomes[winner]
        logger.info("Session ended: %s", result.value, extra=self._log_context)

        error = None if winner.cancelled() else winner.exception()
        if error is not None:
            logger.error("Session terminated by %s", error, extra=self._log_context)
            raise error
        return result

    async def _keepalive_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.keepalive_interval)
            await self.send_ping()
            logger.debug("Sent keepalive ping")

    async def _read_loop(self) -> None:
        assert self.websocket is not None
        try:
            async for frame in self.websocket:
                await self._handle_frame(frame)
        except websockets.exceptions.ConnectionClosedError as e:
            logger.warning("Connection lost: %s", e, extra=self._log_context)
        else:
            logger.info("Server closed the connection", extra=self._log_context)

    async def _handle_frame(self, frame: Union[str, bytes]) -> None:
        if not isinstance(frame, str):
            logger.debug("Skipping %d byte binary frame", len(frame))
            return
        if not frame:
            return

        try:
            message = decode_message(frame)
        except DecodeError as e:
            logger.warning("Failed to parse frame: %s; %s", e, frame)
            return

        if isinstance(message, UnknownMessage):
            log_chat_event(logger, "info", f"Unhandled message {message.cmd}", frame=message.raw)
            return

        try:
            await self.handle_message(message)
        except Exception as e:
            logger.error("Failed to process inbound frame: %s", e, exc_info=True)

    # ========================================
    #           DISPATCH
    # ========================================

    async def handle_message(self, message: InboundMessage) -> None:
        """Apply one decoded message. Called sequentially by the reader."""
        if isinstance(message, ChatMessage):
            self._display(f"[bold]<{escape(message.sender)}>[/] {escape(message.text)}")
            await self._run_command(message.text)
        elif isinstance(message, WhisperMessage):
            self._display(f"[bold magenta]<{escape(message.sender)}|whisper>[/] {escape(message.text)}")
            await self._run_command(message.text)
        elif isinstance(message, OnlineSet):
            size = await self.roster.replace_all(User.from_online(entry) for entry in message.users)
            logger.debug("Roster now has %d users", size)
            logger.info("Users: %s", ", ".join(entry.nick for entry in message.users), extra=self._log_context)
        elif isinstance(message, OnlineAdd):
            size = await self.roster.add(User.from_online(message.user))
            logger.debug("Roster now has %d users", size)
            logger.info("Joined: %s", message.user.nick, extra=self._log_context)
        elif isinstance(message, OnlineRemove):
            if not await self.roster.remove(message.nick):
                logger.debug("Left user %s was not in the roster", message.nick)
            logger.info("Left: %s", message.nick, extra=self._log_context)

    async def _run_command(self, text: str) -> None:
        line = extract_command_line(text)
        if line is None:
            return
        command = parse_command(line)
        if command is None:
            return
        for reply in await command.execute(self):
            await self.send_chat(reply)

    def _display(self, markup: str) -> None:
        self.console.print(markup)
