#!/usr/bin/env python3

from __future__ import annotations
import asyncio
import signal
from contextlib import suppress
from pathlib import Path
from typing import Optional

import typer
from aioconsole import ainput
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from hackbot import __version__
from hackbot.cancel import CancelGuard, CancelToken
from hackbot.config import BotConfig, load_config
from hackbot.errors import ConfigError, HackbotError
from hackbot.ws_client import ChatSession, SessionResult
from shared.log import configure_root_logging, get_logger

app = typer.Typer(help="hack.chat channel bot")
console = Console(highlight=False)
logger = get_logger(__name__)


async def console_loop(session: ChatSession, cancel: CancelToken) -> None:
    """Read stdin lines and send them as chat until /quit or EOF."""
    with CancelGuard(cancel):
        while not cancel.cancelled:
            try:
                line = (await ainput(": ")).strip()
            except EOFError:
                break
            if not line:
                continue
            if line in {"/quit", "/exit"}:
                break
            if line == "/help":
                console.print("/users, /quit; anything else is sent to the channel")
                continue
            if line == "/users":
                table = Table(title=f"Users in ?{escape(session.config.channel)}")
                table.add_column("Username")
                table.add_column("Level", justify="right")
                table.add_column("Trip")
                for user in await session.roster.snapshot():
                    table.add_row(escape(user.username), str(user.level), escape(user.trip or ""))
                console.print(table)
                continue
            if not await session.send_chat(line):
                console.print("[red]Message not sent[/]")


async def serve(config: BotConfig, interactive: bool = False, session: Optional[ChatSession] = None) -> SessionResult:
    """Connect, join and run one session until it ends or a signal arrives."""
    session = session or ChatSession(config, console=console)
    cancel = CancelToken()
    loop = asyncio.get_running_loop()
    signals = (signal.SIGINT, signal.SIGTERM)
    for sig in signals:
        # Not available on Windows event loops
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, cancel.cancel, sig.name)

    console_task: Optional[asyncio.Task] = None
    try:
        await session.connect()
        await session.join()
        if interactive:
            console_task = asyncio.create_task(console_loop(session, cancel))
        return await session.run(cancel)
    finally:
        if console_task is not None:
            console_task.cancel()
            with suppress(asyncio.CancelledError):
                await console_task
        await session.close()
        for sig in signals:
            with suppress(NotImplementedError):
                loop.remove_signal_handler(sig)


@app.command()
def run(
    server: Optional[str] = typer.Option(None, envvar="HACK_SERVER", help="WebSocket URL of the chat server"),
    channel: Optional[str] = typer.Option(None, envvar="HACK_CHANNEL", help="Channel to join"),
    nick: Optional[str] = typer.Option(None, "--nick", "--username", envvar="HACK_USERNAME", help="Display name"),
    password: Optional[str] = typer.Option(None, envvar="HACK_PASSWORD", help="Optional channel password"),
    config_file: Optional[Path] = typer.Option(None, "--config", envvar="HACK_CONFIG", help="YAML file with default settings"),
    keepalive: Optional[float] = typer.Option(None, envvar="HACK_KEEPALIVE", help="Seconds between keepalive pings"),
    case_sensitive: Optional[bool] = typer.Option(None, "--case-sensitive/--case-insensitive", envvar="HACK_CASE_SENSITIVE", help="Username comparison for ::kick"),
    log_level: Optional[str] = typer.Option(None, envvar="HACK_LOG_LEVEL", help="DEBUG, INFO, WARNING or ERROR"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Send stdin lines as chat"),
):
    """Join a channel and stay connected until the server disconnects or Ctrl-C."""
    try:
        config = load_config(
            config_file,
            server=server,
            channel=channel,
            nick=nick,
            password=password,
            keepalive_interval=keepalive,
            case_sensitive=case_sensitive,
            log_level=log_level,
        )
    except ConfigError as e:
        console.print(f"[red]Configuration error[/]: {escape(str(e))}")
        raise typer.Exit(code=1)

    configure_root_logging(config.log_level)
    logger.debug("Loaded %r", config)
    console.print(f"[bold green]hackbot starting[/] as {escape(config.nick)} in ?{escape(config.channel)} on {escape(config.server)}")

    try:
        result = asyncio.run(serve(config, interactive=interactive))
    except HackbotError as e:
        console.print(f"[red]{type(e).__name__}[/]: {escape(str(e))}")
        raise typer.Exit(code=1)
    console.print(f"[dim]session ended ({result.value})[/]")


@app.command()
def version():
    """Print the hackbot version."""
    console.print(__version__)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
