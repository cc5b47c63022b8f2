from __future__ import annotations
import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional

from shared.envelope import OnlineUser
from shared.MessageTypes import Level


@dataclass(frozen=True)
class User:
    username: str
    level: int = Level.DEFAULT
    trip: Optional[str] = None

    @classmethod
    def from_online(cls, entry: OnlineUser) -> 'User':
        return cls(username=entry.nick, level=entry.level, trip=entry.trip)

    def has_level(self, level: Level) -> bool:
        return self.level >= level


@dataclass
class Roster:
    """
    Users currently visible in the channel, in the order the server
    announced them.

    Every operation takes ``_lock`` for its own duration only, so readers
    never see a half-applied onlineSet. ``case_sensitive`` controls how
    ``find`` compares usernames; ``remove`` matches the exact nick the
    server sent.
    """
    case_sensitive: bool = False
    _users: List[User] = field(default_factory=list, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    def _matches(self, stored: str, wanted: str) -> bool:
        if self.case_sensitive:
            return stored == wanted
        return stored.casefold() == wanted.casefold()

    async def replace_all(self, users: Iterable[User]) -> int:
        fresh = list(users)
        async with self._lock:
            self._users = fresh
            return len(self._users)

    async def add(self, user: User) -> int:
        # duplicates are kept as received
        async with self._lock:
            self._users.append(user)
            return len(self._users)

    async def remove(self, username: str) -> bool:
        async with self._lock:
            for index, user in enumerate(self._users):
                if user.username == username:
                    del self._users[index]
                    return True
        return False

    async def find(self, username: str) -> Optional[User]:
        async with self._lock:
            for user in self._users:
                if self._matches(user.username, username):
                    return user
        return None

    async def snapshot(self) -> List[User]:
        async with self._lock:
            return list(self._users)

    async def snapshot_sorted(self, key: Callable[[User], Any] = lambda u: u.username, reverse: bool = False) -> List[User]:
        """Copy under the lock, sort after releasing it."""
        users = await self.snapshot()
        users.sort(key=key, reverse=reverse)
        return users

    def __len__(self) -> int:
        return len(self._users)
