"""Boundary protocols for the realtime channel and local audio capture.

The engine only knows these shapes; concrete adapters (WebRTC, a
websocket client, a scripted replay) live outside the core.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from live_coach.events import ChannelEvent


class RealtimeChannel(Protocol):
    """Source of inbound transcript/audio events."""

    async def handshake(self) -> None:
        """Establish the session with the remote side.

        Raises on failure.  The caller applies the timeout.
        """
        ...

    def receive(self) -> AsyncIterator[ChannelEvent]:
        """Yield inbound events until the channel closes."""
        ...

    async def close(self) -> None:
        """Release the channel.  Must tolerate being called more than once."""
        ...


class CaptureDevice(Protocol):
    """Local microphone capture used for archival recording."""

    async def request_permission(self) -> bool:
        """Return ``True`` if capture is allowed."""
        ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class NullCapture:
    """Capture device that always grants permission and records nothing."""

    def __init__(self) -> None:
        self.started = 0
        self.stopped = 0

    async def request_permission(self) -> bool:
        return True

    async def start(self) -> None:
        self.started += 1

    async def stop(self) -> None:
        self.stopped += 1
