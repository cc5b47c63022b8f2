from __future__ import annotations

from enum import Enum, IntEnum


class InboundCommand(str, Enum):
    """Values of the ``cmd`` field the bot understands on inbound frames."""

    CHAT = "chat"                  # Public channel message
    INFO = "info"                  # Server notice, nested ``type`` tag
    ONLINE_SET = "onlineSet"       # Full roster, sent once after join
    ONLINE_ADD = "onlineAdd"       # A user joined the channel
    ONLINE_REMOVE = "onlineRemove" # A user left the channel

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if string is a known inbound command."""
        try:
            cls(value)
            return True
        except ValueError:
            return False


class InfoType(str, Enum):
    """Values of the nested ``type`` field on ``info`` frames."""

    WHISPER = "whisper"


class OutboundCommand(str, Enum):
    """Commands the bot sends to the server."""

    JOIN = "join"
    CHAT = "chat"
    PING = "ping"


class Level(IntEnum):
    """Numeric trust tiers the server attaches to every user."""

    DEFAULT = 100
    TRUSTED = 500
    CHAN_TRUSTED = 8999
    CHAN_MOD = 9999
    CHAN_OWNER = 99999
    MOD = 999999
    ADMIN = 9999999
