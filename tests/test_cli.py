import asyncio

import pytest
from typer.testing import CliRunner

from hackbot import __version__, cli
from hackbot.cancel import CancelToken
from hackbot.config import BotConfig
from hackbot.errors import ConnectError
from hackbot.state import Roster, User
from hackbot.ws_client import SessionResult

runner = CliRunner()

_ENV_VARS = ("HACK_SERVER", "HACK_CHANNEL", "HACK_USERNAME", "HACK_PASSWORD",
             "HACK_CONFIG", "HACK_KEEPALIVE", "HACK_CASE_SENSITIVE", "HACK_LOG_LEVEL")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # root handlers would otherwise bind to the runner's temporary streams
    monkeypatch.setattr(cli, "configure_root_logging", lambda level="INFO": None)


def test_version():
    result = runner.invoke(cli.app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_run_without_settings_exits_with_error():
    result = runner.invoke(cli.app, ["run"])
    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_run_reads_environment_and_flags(monkeypatch):
    captured = {}

    async def fake_serve(config, interactive=False):
        captured["config"] = config
        captured["interactive"] = interactive
        return SessionResult.CANCELLED

    monkeypatch.setattr(cli, "serve", fake_serve)
    result = runner.invoke(
        cli.app,
        ["run", "--channel", "lounge", "--nick", "hackbot", "--case-sensitive", "--keepalive", "15"],
        env={"HACK_SERVER": "wss://hack.chat/chat-ws", "HACK_PASSWORD": "pw"},
    )

    assert result.exit_code == 0, result.output
    config = captured["config"]
    assert config.server == "wss://hack.chat/chat-ws"
    assert config.channel == "lounge"
    assert config.password == "pw"
    assert config.case_sensitive is True
    assert config.keepalive_interval == 15.0
    assert captured["interactive"] is False
    assert "cancelled" in result.output


def test_run_exits_nonzero_on_connect_error(monkeypatch):
    async def failing_serve(config, interactive=False):
        raise ConnectError("Failed to connect to ws://127.0.0.1:1")

    monkeypatch.setattr(cli, "serve", failing_serve)
    result = runner.invoke(cli.app, ["run", "--server", "ws://127.0.0.1:1", "--channel", "c", "--nick", "n"])

    assert result.exit_code == 1
    assert "ConnectError" in result.output


class ConsoleSession:
    def __init__(self) -> None:
        self.config = BotConfig(server="ws://x", channel="lounge", nick="hackbot")
        self.roster = Roster()
        self.sent: list[str] = []

    async def send_chat(self, text: str) -> bool:
        self.sent.append(text)
        return True


@pytest.mark.asyncio
async def test_console_loop_sends_lines_and_cancels_on_quit(monkeypatch):
    lines = iter(["hello all", "", "/users", "/help", "/quit", "never sent"])

    async def fake_ainput(prompt=""):
        return next(lines)

    monkeypatch.setattr(cli, "ainput", fake_ainput)
    session = ConsoleSession()
    await session.roster.add(User("bob", level=500))
    cancel = CancelToken()

    await asyncio.wait_for(cli.console_loop(session, cancel), timeout=1.0)

    assert session.sent == ["hello all"]
    assert cancel.cancelled


@pytest.mark.asyncio
async def test_console_loop_cancels_on_eof(monkeypatch):
    async def closed_stdin(prompt=""):
        raise EOFError

    monkeypatch.setattr(cli, "ainput", closed_stdin)
    cancel = CancelToken()
    await cli.console_loop(ConsoleSession(), cancel)
    assert cancel.cancelled
