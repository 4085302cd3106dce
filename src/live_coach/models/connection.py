"""Connection status models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from live_coach.exceptions import CoachConnectionError


class ConnectionState(str, Enum):
    """Lifecycle state of the live audio/transcript channel."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class ConnectionStatus:
    """Read-only snapshot of the connection for the presentation layer.

    Attributes:
        state: Current lifecycle state.
        last_error: The error recorded on the last abnormal transition, or
            ``None``.  Cleared when a new ``start()`` begins.
        end_reason: Reason given by the remote end-of-call signal, if the
            last connection ended that way.
    """

    state: ConnectionState = ConnectionState.DISCONNECTED
    last_error: CoachConnectionError | None = None
    end_reason: str | None = None

    @property
    def error_reason(self) -> str | None:
        """Machine-readable reason code of :attr:`last_error`."""
        return self.last_error.reason if self.last_error is not None else None

    @property
    def is_active(self) -> bool:
        return self.state is ConnectionState.CONNECTED
