from __future__ import annotations


class HackbotError(Exception):
    """Base class for errors raised by the bot."""
    pass
class ConnectError(HackbotError):
    """Raised when the websocket connection cannot be established."""
    pass
class SendError(HackbotError):
    """Raised when a frame cannot be written to the connection."""
    pass
class SessionStateError(HackbotError):
    """Raised when a session operation is called out of order."""
    pass
class ConfigError(HackbotError):
    """Raised when required configuration is missing or malformed."""
    pass
