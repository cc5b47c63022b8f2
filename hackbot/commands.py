"""
In-band chat commands.

A chat or whisper line starting with ``::`` is a command line. The rest of the
line is split with shell quoting rules and matched against the commands below;
argument checking is delegated to click so ``::kick "bob smith"`` works and
``::kick`` with no target is rejected.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Union

import click

from shared.log import get_logger

if TYPE_CHECKING:
    from hackbot.ws_client import ChatSession

logger = get_logger(__name__)

COMMAND_PREFIX = "::"


@dataclass(frozen=True)
class KickCommand:
    """Announce who would be kicked. Never removes anyone."""
    target: str

    async def execute(self, session: "ChatSession") -> List[str]:
        user = await session.roster.find(self.target)
        if user is None:
            return [f"User not in userlist: {self.target}"]
        return [f"Would kick {user.username}"]


@dataclass(frozen=True)
class UsersCommand:
    """List the roster, highest username first."""

    async def execute(self, session: "ChatSession") -> List[str]:
        users = await session.roster.snapshot_sorted(reverse=True)
        if not users:
            return []
        return ["Users: " + ", ".join(user.username for user in users)]


Command = Union[KickCommand, UsersCommand]


@click.command("kick", add_help_option=False)
@click.argument("target")
def _kick(target: str) -> Command:
    return KickCommand(target=target)


@click.command(
    "users",
    add_help_option=False,
    context_settings={"ignore_unknown_options": True, "allow_extra_args": True},
)
def _users() -> Command:
    return UsersCommand()


_COMMANDS: Dict[str, click.Command] = {
    "kick": _kick,
    "users": _users,
}


def extract_command_line(text: str) -> Optional[str]:
    """Return the text after the command prefix, or None for ordinary chat."""
    if not text.startswith(COMMAND_PREFIX):
        return None
    return text[len(COMMAND_PREFIX):]


def parse_command(line: str) -> Optional[Command]:
    """
    Parse a command line (prefix already stripped).

    Returns None when the line cannot be tokenized, is empty, names an
    unknown command, or has arguments the command does not accept.
    """
    try:
        args = shlex.split(line)
    except ValueError as e:
        logger.debug("Unparsable command line %r: %s", line, e)
        return None
    if not args:
        return None

    name = args[0].lower()
    cli = _COMMANDS.get(name)
    if cli is None:
        logger.debug("Unknown command %r", args[0])
        return None

    try:
        result = cli.main(args=args[1:], prog_name=name, standalone_mode=False)
    except click.ClickException as e:
        logger.debug("Bad arguments for %s: %s", name, e.format_message())
        return None
    except click.exceptions.Abort:
        return None

    if isinstance(result, (KickCommand, UsersCommand)):
        return result
    return None
