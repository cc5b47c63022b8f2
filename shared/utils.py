from __future__ import annotations
import re
from urllib.parse import urlparse

# ========================================
#           INPUT VALIDATION HELPERS
# ========================================
"""
Helpers the config loader and the wire codec use to decide whether a value
is well formed before it reaches the server.
"""

# Server side nick rule: 1-24 word characters
_NICK_RE = re.compile(r'^[A-Za-z0-9_]{1,24}$')

def is_ws_url(s: str) -> bool:
    """
    returns True for ws:// or wss:// URLs with a host part, otherwise False.
    """
    try:
        parsed = urlparse(s)
    except ValueError:
        return False
    return parsed.scheme in ("ws", "wss") and bool(parsed.netloc)

def is_valid_nick(s: str) -> bool:
    """
    Accepts nicks the server will let us join with.

    - Only letters, digits and underscore.
    - Between 1 and 24 characters.
    """
    return bool(_NICK_RE.fullmatch(s))


# ========================================
#           WIRE TEXT HELPERS
# ========================================

def strip_whisper_prefix(text: str, routing_words: int = 2) -> str:
    """
    Whisper frames carry routing words ahead of the payload, e.g.
    ``"1234 botname hello there"``. Drop the first ``routing_words``
    whitespace-delimited tokens and rejoin the rest with single spaces.
    """
    words = text.split()
    return " ".join(words[routing_words:])
