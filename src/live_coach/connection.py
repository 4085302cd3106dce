"""Connection state machine for the live audio/transcript channel.

States and edges::

    disconnected --start()--> connecting --handshake ok--> connected
         ^                        |                            |
         +---- denial / failure --+                            |
         +---- stop() / end signal / channel error ------------+

There is no ``connected -> connecting`` edge; a reconnect always passes
through ``disconnected``.

Entering ``connected`` starts local capture and the inbound reception
task together.  Every edge back to ``disconnected`` goes through
:meth:`ConnectionStateMachine._teardown`, which stops both and releases
capture at most once, whichever path triggered it.

Inbound events are published as typed
:mod:`~live_coach.events` objects onto :attr:`ConnectionStateMachine.events`,
a single queue consumed by the coaching session.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime
from typing import Any

from live_coach.channel import CaptureDevice, RealtimeChannel
from live_coach.events import (
    AudioChunkReceived,
    ChannelEnded,
    ChannelEvent,
    ChannelFailed,
    ConnectionChanged,
    TranscriptReceived,
)
from live_coach.exceptions import (
    ChannelError,
    CoachConnectionError,
    ConnectionStateError,
    HandshakeFailureError,
    HandshakeTimeoutError,
    PermissionDeniedError,
    UnexpectedChannelCloseError,
)
from live_coach.models.connection import ConnectionState, ConnectionStatus

logger = logging.getLogger(__name__)

_DEFAULT_HANDSHAKE_TIMEOUT = 10.0

_ALLOWED_EDGES: frozenset[tuple[ConnectionState, ConnectionState]] = frozenset(
    {
        (ConnectionState.DISCONNECTED, ConnectionState.CONNECTING),
        (ConnectionState.CONNECTING, ConnectionState.CONNECTED),
        (ConnectionState.CONNECTING, ConnectionState.DISCONNECTED),
        (ConnectionState.CONNECTED, ConnectionState.DISCONNECTED),
    }
)


class ConnectionStateMachine:
    """Owns the lifecycle of one realtime channel and its capture device.

    Args:
        channel: The realtime channel adapter.
        capture: Local audio capture device.
        handshake_timeout: Seconds to wait for the handshake before
            failing with :class:`HandshakeTimeoutError`.
        events: Queue to publish events onto.  A new unbounded queue is
            created when omitted.
        publish_audio: Also publish :class:`AudioChunkReceived` events.
            Off by default; chunks are always counted.
    """

    def __init__(
        self,
        channel: RealtimeChannel,
        capture: CaptureDevice,
        *,
        handshake_timeout: float = _DEFAULT_HANDSHAKE_TIMEOUT,
        events: asyncio.Queue[ChannelEvent] | None = None,
        publish_audio: bool = False,
    ) -> None:
        self._channel = channel
        self._capture = capture
        self.handshake_timeout = handshake_timeout
        self.publish_audio = publish_audio
        self.events: asyncio.Queue[ChannelEvent] = events if events is not None else asyncio.Queue()

        self._state = ConnectionState.DISCONNECTED
        self._last_error: CoachConnectionError | None = None
        self._end_reason: str | None = None
        self._history: list[ConnectionState] = [ConnectionState.DISCONNECTED]

        self._handshake: asyncio.Future[Any] | None = None
        self._receiver: asyncio.Task[None] | None = None
        self._channel_open = False
        self._capture_held = False
        self._capture_releases = 0
        self._audio_chunks = 0

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def status(self) -> ConnectionStatus:
        """Snapshot of ``{state, last_error, end_reason}``."""
        return ConnectionStatus(
            state=self._state,
            last_error=self._last_error,
            end_reason=self._end_reason,
        )

    @property
    def history(self) -> tuple[ConnectionState, ...]:
        """Every state entered so far, starting with ``disconnected``."""
        return tuple(self._history)

    @property
    def capture_active(self) -> bool:
        return self._capture_held

    @property
    def capture_release_count(self) -> int:
        """How many times capture has been released over this object's life."""
        return self._capture_releases

    @property
    def audio_chunks_received(self) -> int:
        return self._audio_chunks

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> ConnectionStatus:
        """Connect: acquire permission, handshake, then start capture.

        Returns:
            The status after the attempt.  Normally ``connected``; it is
            ``disconnected`` (with no error) if :meth:`stop` was called
            while the attempt was in progress.

        Raises:
            ConnectionStateError: If not currently ``disconnected``.
            PermissionDeniedError: If capture permission is refused.
            HandshakeTimeoutError: If the handshake exceeds the timeout.
            HandshakeFailureError: If the handshake raises.
            ChannelError: If capture fails to start.
        """
        if self._state is not ConnectionState.DISCONNECTED:
            raise ConnectionStateError(
                f"start() requires state 'disconnected', not {self._state.value!r}"
            )

        self._last_error = None
        self._end_reason = None
        self._set_state(ConnectionState.CONNECTING)

        # --- Capture permission -------------------------------------------
        try:
            granted = await self._capture.request_permission()
        except Exception as exc:
            if self._state is not ConnectionState.CONNECTING:
                logger.info("Permission request failed after stop(): %s", exc)
                return self.status
            logger.warning("Capture permission request failed: %s", exc)
            error = PermissionDeniedError(f"Audio capture permission request failed: {exc}")
            await self._teardown(error)
            raise error from exc

        if self._state is not ConnectionState.CONNECTING:
            return self.status

        if not granted:
            error = PermissionDeniedError()
            await self._teardown(error)
            raise error

        # --- Handshake ----------------------------------------------------
        self._channel_open = True
        handshake = asyncio.ensure_future(self._channel.handshake())
        self._handshake = handshake
        try:
            await asyncio.wait_for(handshake, timeout=self.handshake_timeout)
        except asyncio.TimeoutError:
            timeout_error = HandshakeTimeoutError(self.handshake_timeout)
            await self._teardown(timeout_error)
            raise timeout_error from None
        except asyncio.CancelledError:
            if handshake.cancelled() and self._state is ConnectionState.DISCONNECTED:
                logger.info("Handshake cancelled by stop()")
                return self.status
            await self._teardown(None)
            raise
        except HandshakeFailureError as exc:
            await self._teardown(exc)
            raise
        except Exception as exc:
            failure = HandshakeFailureError(f"Handshake failed: {exc}")
            await self._teardown(failure)
            raise failure from exc
        finally:
            self._handshake = None

        if self._state is not ConnectionState.CONNECTING:
            return self.status

        # --- Connected: capture + reception start together ----------------
        self._set_state(ConnectionState.CONNECTED)
        self._capture_held = True
        try:
            await self._capture.start()
        except Exception as exc:
            self._capture_held = False
            capture_error = ChannelError(
                f"Audio capture failed to start: {exc}", reason="capture_failed"
            )
            await self._teardown(capture_error)
            raise capture_error from exc

        if self._state is ConnectionState.CONNECTED:
            self._receiver = asyncio.create_task(self._receive_loop())
        return self.status

    async def stop(self) -> ConnectionStatus:
        """Disconnect from any state.

        Idempotent: repeated calls, or a call racing a remote end signal,
        all land in ``disconnected`` and release capture at most once.
        ``last_error`` from an earlier abnormal transition is kept.
        """
        await self._teardown(None)
        return self.status

    # ------------------------------------------------------------------
    # Ingestion boundary
    # ------------------------------------------------------------------

    def on_transcript(self, speaker: Any, text: Any, timestamp: datetime | float | None = None) -> bool:
        """Forward a finished utterance.  Ignored unless ``connected``.

        Returns:
            ``True`` if the turn was published.
        """
        if self._state is not ConnectionState.CONNECTED:
            logger.debug("Ignoring transcript while %s", self._state.value)
            return False
        self.events.put_nowait(TranscriptReceived(speaker=speaker, text=text, timestamp=timestamp))
        return True

    def on_audio_chunk(self, chunk: Any) -> bool:
        """Count an opaque audio chunk.  Ignored unless ``connected``.

        The chunk is published only when :attr:`publish_audio` is set.
        """
        if self._state is not ConnectionState.CONNECTED:
            return False
        self._audio_chunks += 1
        if self.publish_audio:
            self.events.put_nowait(AudioChunkReceived(chunk=chunk))
        return True

    async def on_end(self, reason: str = "ended") -> None:
        """Handle the remote end-of-call signal."""
        if self._state is not ConnectionState.CONNECTED:
            logger.debug("Ignoring end signal (%s) while %s", reason, self._state.value)
            return
        logger.info("Channel ended by remote: %s", reason)
        self.events.put_nowait(ChannelEnded(reason=reason))
        await self._teardown(None, end_reason=reason)

    async def on_error(self, err: BaseException) -> None:
        """Handle a channel error while connected."""
        if self._state is not ConnectionState.CONNECTED:
            logger.debug("Ignoring channel error while %s: %s", self._state.value, err)
            return
        error = err if isinstance(err, ChannelError) else ChannelError(str(err) or type(err).__name__)
        logger.warning("Channel error: %s", error)
        self.events.put_nowait(ChannelFailed(error=error))
        await self._teardown(error)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _receive_loop(self) -> None:
        """Pump events from the channel into the ingestion boundary."""
        try:
            async for event in self._channel.receive():
                if isinstance(event, TranscriptReceived):
                    self.on_transcript(event.speaker, event.text, event.timestamp)
                elif isinstance(event, AudioChunkReceived):
                    self.on_audio_chunk(event.chunk)
                elif isinstance(event, ChannelEnded):
                    await self.on_end(event.reason)
                    return
                elif isinstance(event, ChannelFailed):
                    await self.on_error(event.error)
                    return
                else:
                    logger.warning("Ignoring unexpected channel event: %r", event)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            await self.on_error(exc)
            return

        if self._state is ConnectionState.CONNECTED:
            await self._teardown(UnexpectedChannelCloseError())

    def _set_state(self, new_state: ConnectionState) -> None:
        if new_state is self._state:
            return
        if (self._state, new_state) not in _ALLOWED_EDGES:
            raise ConnectionStateError(
                f"Illegal transition {self._state.value} -> {new_state.value}"
            )
        logger.info("Connection %s -> %s", self._state.value, new_state.value)
        self._state = new_state
        self._history.append(new_state)
        self.events.put_nowait(ConnectionChanged(status=self.status))

    async def _teardown(
        self,
        error: CoachConnectionError | None,
        end_reason: str | None = None,
    ) -> None:
        """Move to ``disconnected`` and release everything still held.

        Each resource is marked released before its release call is
        awaited, so overlapping teardowns never release it twice.
        """
        if error is not None:
            self._last_error = error
        if end_reason is not None:
            self._end_reason = end_reason

        if self._state is not ConnectionState.DISCONNECTED:
            self._set_state(ConnectionState.DISCONNECTED)

        handshake = self._handshake
        if handshake is not None and not handshake.done():
            handshake.cancel()

        receiver, self._receiver = self._receiver, None
        if receiver is not None and receiver is not asyncio.current_task():
            receiver.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await receiver

        if self._capture_held:
            self._capture_held = False
            self._capture_releases += 1
            try:
                await self._capture.stop()
            except Exception:
                logger.exception("Audio capture failed to stop cleanly")

        if self._channel_open:
            self._channel_open = False
            try:
                await self._channel.close()
            except Exception:
                logger.exception("Realtime channel failed to close cleanly")
