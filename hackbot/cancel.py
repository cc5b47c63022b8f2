from __future__ import annotations
import asyncio
from typing import Optional


class CancelToken:
    """Cooperative shutdown signal shared between the CLI and a session."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class CancelGuard:
    """
    Cancels its token when the guarded scope exits, whether normally or by
    exception. Call ``disarm()`` to leave the token untouched.

        with CancelGuard(token):
            ...
    """

    def __init__(self, token: Optional[CancelToken] = None) -> None:
        self.token = token or CancelToken()
        self._armed = True

    def disarm(self) -> None:
        self._armed = False

    def cancel(self, reason: str = "cancelled") -> None:
        self._armed = False
        self.token.cancel(reason)

    def __enter__(self) -> CancelToken:
        return self.token

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._armed:
            self.cancel("guard released" if exc is None else f"guard released: {exc_type.__name__}")

    async def __aenter__(self) -> CancelToken:
        return self.__enter__()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.__exit__(exc_type, exc, tb)
