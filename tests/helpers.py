"""Test doubles and time helpers shared across the live-coach test suite."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone

from live_coach.events import ChannelEvent

T0 = datetime(2025, 10, 3, 19, 0, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    """Return ``T0`` shifted by *seconds*."""
    return T0 + timedelta(seconds=seconds)


class FakeChannel:
    """Scriptable realtime channel.

    Events pushed with :meth:`push` are yielded by :meth:`receive`;
    :meth:`finish` ends the stream without an end signal.
    """

    _DONE = object()

    def __init__(
        self,
        handshake_error: BaseException | None = None,
        handshake_delay: float = 0.0,
    ) -> None:
        self.handshake_error = handshake_error
        self.handshake_delay = handshake_delay
        self.handshakes = 0
        self.closed = 0
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def handshake(self) -> None:
        self.handshakes += 1
        if self.handshake_delay:
            await asyncio.sleep(self.handshake_delay)
        if self.handshake_error is not None:
            raise self.handshake_error

    async def receive(self) -> AsyncIterator[ChannelEvent]:
        while True:
            item = await self._inbox.get()
            if item is self._DONE:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    async def close(self) -> None:
        self.closed += 1

    def push(self, event: ChannelEvent) -> None:
        self._inbox.put_nowait(event)

    def fail(self, error: BaseException) -> None:
        """Make :meth:`receive` raise *error*."""
        self._inbox.put_nowait(error)

    def finish(self) -> None:
        self._inbox.put_nowait(self._DONE)


class FakeCapture:
    """Capture device that records how often it was started and stopped."""

    def __init__(self, granted: bool = True, start_error: BaseException | None = None) -> None:
        self.granted = granted
        self.start_error = start_error
        self.permission_requests = 0
        self.starts = 0
        self.stops = 0

    async def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.granted

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.starts += 1

    async def stop(self) -> None:
        self.stops += 1


async def settle(rounds: int = 20) -> None:
    """Yield to the event loop so background tasks can make progress."""
    for _ in range(rounds):
        await asyncio.sleep(0)
