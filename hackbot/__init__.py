"""hack.chat channel bot: one websocket session, roster tracking and ``::`` commands."""

__version__ = "0.1.0"
