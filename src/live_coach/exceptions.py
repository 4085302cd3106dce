"""Custom exceptions for the live coaching engine.

Connection-lifecycle errors are surfaced to the caller of
:meth:`~live_coach.connection.ConnectionStateMachine.start` and recorded as
``last_error`` on the connection status.  Analysis-pipeline errors are
recoverable and never escape the transcript log.

Exception hierarchy::

    CoachError
    +-- ConnectionStateError              (illegal transition request)
    +-- CoachConnectionError              (base for connection failures)
    |   +-- PermissionDeniedError         (capture permission refused)
    |   +-- HandshakeFailureError         (channel handshake failed)
    |   |   +-- HandshakeTimeoutError     (no handshake response in time)
    |   +-- ChannelError                  (error while connected)
    |       +-- UnexpectedChannelCloseError
    +-- MalformedTurnPayloadError         (bad turn; dropped with a warning)
"""

from __future__ import annotations

from typing import Any


class CoachError(Exception):
    """Base exception for all live-coach errors."""


class ConnectionStateError(CoachError):
    """Raised when a lifecycle call is not valid in the current state.

    For example, calling ``start()`` while already ``connecting``.
    """


class CoachConnectionError(CoachError):
    """Base exception for failures of the live audio/transcript channel.

    Attributes:
        reason: Short machine-readable reason code (e.g. ``"permission_denied"``).
    """

    reason = "connection_error"

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message)
        if reason is not None:
            self.reason = reason


class PermissionDeniedError(CoachConnectionError):
    """Raised when audio capture permission is refused.

    Fatal to the start attempt and never retried automatically.
    """

    reason = "permission_denied"

    def __init__(self, message: str = "Audio capture permission denied") -> None:
        super().__init__(message)


class HandshakeFailureError(CoachConnectionError):
    """Raised when the realtime channel handshake fails.

    The caller may retry by calling ``start()`` again once the connection
    is back in ``disconnected``.
    """

    reason = "handshake_failure"


class HandshakeTimeoutError(HandshakeFailureError):
    """Raised when the handshake does not complete within the timeout.

    Attributes:
        timeout_seconds: The timeout that elapsed.
    """

    reason = "handshake_timeout"

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Handshake timed out after {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds


class ChannelError(CoachConnectionError):
    """Raised (or recorded) when the channel fails while connected."""

    reason = "channel_error"


class UnexpectedChannelCloseError(ChannelError):
    """Recorded when the inbound stream closes without an end signal.

    Treated as a normal termination path: the connection lands in
    ``disconnected`` and the transcript log is left intact.
    """

    reason = "unexpected_close"

    def __init__(self, message: str = "Channel closed without an end signal") -> None:
        super().__init__(message)


class MalformedTurnPayloadError(CoachError):
    """Raised inside the transcript log for a turn that cannot be accepted.

    Caught by :meth:`~live_coach.transcript_log.TranscriptLog.append`, which
    drops the offending turn with a warning.

    Attributes:
        payload: The rejected field value.
    """

    def __init__(self, message: str, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload
