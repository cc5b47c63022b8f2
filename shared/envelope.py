from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
import json

from shared.MessageTypes import InboundCommand, InfoType, Level, OutboundCommand
from shared.utils import strip_whisper_prefix


class DecodeError(Exception):
    """Raised when an inbound frame is not a well formed message."""
    pass


@dataclass(frozen=True)
class OnlineUser:
    """A user entry as carried by onlineSet / onlineAdd frames."""
    nick: str
    level: int = Level.DEFAULT
    trip: Optional[str] = None
    is_me: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OnlineUser':
        nick = _require_str(data, 'nick')
        level = data.get('level', int(Level.DEFAULT))
        # bool is an int subclass; reject it explicitly
        if not isinstance(level, int) or isinstance(level, bool):
            raise DecodeError("'level' must be an integer")
        trip = data.get('trip')
        if trip is not None and not isinstance(trip, str):
            raise DecodeError("'trip' must be a string")
        return cls(nick=nick, level=level, trip=trip or None, is_me=bool(data.get('isme', False)))


@dataclass(frozen=True)
class ChatMessage:
    sender: str
    text: str
    cmd: InboundCommand = InboundCommand.CHAT


@dataclass(frozen=True)
class WhisperMessage:
    """Whisper text with the routing words already removed."""
    sender: str
    text: str
    cmd: InboundCommand = InboundCommand.INFO


@dataclass(frozen=True)
class OnlineSet:
    users: List[OnlineUser] = field(default_factory=list)
    cmd: InboundCommand = InboundCommand.ONLINE_SET


@dataclass(frozen=True)
class OnlineAdd:
    user: OnlineUser
    cmd: InboundCommand = InboundCommand.ONLINE_ADD


@dataclass(frozen=True)
class OnlineRemove:
    nick: str
    cmd: InboundCommand = InboundCommand.ONLINE_REMOVE


@dataclass(frozen=True)
class UnknownMessage:
    """
    Any frame whose ``cmd`` (or nested info ``type``) the bot does not
    handle. Not an error: the server may add message types at any time.
    """
    cmd: str
    raw: Dict[str, Any] = field(default_factory=dict)


InboundMessage = Union[ChatMessage, WhisperMessage, OnlineSet, OnlineAdd, OnlineRemove, UnknownMessage]


# ========================================
#           DECODING
# ========================================

def decode_message(text: str) -> InboundMessage:
    """Parse one text frame into a tagged inbound message"""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Invalid JSON: {e}") from e

    return decode_dict(data)


def decode_dict(data: Any) -> InboundMessage:
    """Create an inbound message from an already parsed JSON value"""
    if not isinstance(data, dict):
        raise DecodeError("frame must be a JSON object")

    cmd = data.get('cmd')
    if not isinstance(cmd, str):
        raise DecodeError("'cmd' must be a string")

    if not InboundCommand.is_valid(cmd):
        return UnknownMessage(cmd=cmd, raw=data)

    kind = InboundCommand(cmd)
    if kind is InboundCommand.CHAT:
        return ChatMessage(sender=_require_str(data, 'nick'), text=_require_str(data, 'text'))

    if kind is InboundCommand.INFO:
        return _decode_info(data)

    if kind is InboundCommand.ONLINE_SET:
        users = data.get('users')
        if not isinstance(users, list):
            raise DecodeError("'users' must be a list")
        entries = []
        for entry in users:
            if not isinstance(entry, dict):
                raise DecodeError("'users' entries must be objects")
            entries.append(OnlineUser.from_dict(entry))
        return OnlineSet(users=entries)

    if kind is InboundCommand.ONLINE_ADD:
        return OnlineAdd(user=OnlineUser.from_dict(data))

    return OnlineRemove(nick=_require_str(data, 'nick'))


def _decode_info(data: Dict[str, Any]) -> InboundMessage:
    info_type = data.get('type')
    if info_type != InfoType.WHISPER.value:
        return UnknownMessage(cmd=f"info/{info_type}", raw=data)

    sender = _require_str(data, 'from')
    text = strip_whisper_prefix(_require_str(data, 'text'))
    return WhisperMessage(sender=sender, text=text)


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise DecodeError(f"'{key}' must be a string")
    return value


# ========================================
#           ENCODING
# ========================================

def _to_json(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, separators=(',', ':'), ensure_ascii=False)


def encode_join(channel: str, nick: str, password: str = "") -> str:
    """Channel join handshake; an empty password is sent as an empty string"""
    return _to_json({
        'cmd': OutboundCommand.JOIN.value,
        'channel': channel,
        'nick': nick,
        'password': password,
    })


def encode_chat(text: str) -> str:
    return _to_json({'cmd': OutboundCommand.CHAT.value, 'text': text})


def encode_ping() -> str:
    return _to_json({'cmd': OutboundCommand.PING.value})
