"""Unit tests for the connection state machine."""

from __future__ import annotations

import asyncio

import pytest

from live_coach.connection import ConnectionStateMachine
from live_coach.events import (
    AudioChunkReceived,
    ChannelEnded,
    ChannelFailed,
    ConnectionChanged,
    TranscriptReceived,
)
from live_coach.exceptions import (
    ChannelError,
    ConnectionStateError,
    HandshakeFailureError,
    HandshakeTimeoutError,
    PermissionDeniedError,
)
from live_coach.models.connection import ConnectionState
from tests.helpers import FakeCapture, FakeChannel, at, settle

D = ConnectionState.DISCONNECTED
C = ConnectionState.CONNECTING
K = ConnectionState.CONNECTED


def _drain(machine: ConnectionStateMachine) -> list[object]:
    events = []
    while not machine.events.empty():
        events.append(machine.events.get_nowait())
    return events


class TestStart:
    @pytest.mark.asyncio
    async def test_successful_start(self, channel: FakeChannel, capture: FakeCapture) -> None:
        machine = ConnectionStateMachine(channel, capture)

        status = await machine.start()

        assert status.state is K
        assert status.last_error is None
        assert machine.history == (D, C, K)
        assert machine.capture_active
        assert capture.starts == 1
        assert channel.handshakes == 1
        await machine.stop()

    @pytest.mark.asyncio
    async def test_publishes_state_changes(self, channel: FakeChannel, capture: FakeCapture) -> None:
        machine = ConnectionStateMachine(channel, capture)

        await machine.start()
        await machine.stop()

        states = [e.status.state for e in _drain(machine) if isinstance(e, ConnectionChanged)]
        assert states == [C, K, D]

    @pytest.mark.asyncio
    async def test_start_while_connected_raises(
        self, channel: FakeChannel, capture: FakeCapture
    ) -> None:
        machine = ConnectionStateMachine(channel, capture)
        await machine.start()

        with pytest.raises(ConnectionStateError):
            await machine.start()

        assert machine.state is K
        await machine.stop()

    @pytest.mark.asyncio
    async def test_permission_denied(self, channel: FakeChannel) -> None:
        capture = FakeCapture(granted=False)
        machine = ConnectionStateMachine(channel, capture)

        with pytest.raises(PermissionDeniedError):
            await machine.start()

        assert machine.history == (D, C, D)
        assert machine.status.error_reason == "permission_denied"
        assert channel.handshakes == 0
        assert capture.starts == 0
        assert machine.capture_release_count == 0

    @pytest.mark.asyncio
    async def test_permission_request_error_is_denial(self, channel: FakeChannel) -> None:
        class BrokenCapture(FakeCapture):
            async def request_permission(self) -> bool:
                raise OSError("no microphone")

        machine = ConnectionStateMachine(channel, BrokenCapture())

        with pytest.raises(PermissionDeniedError) as exc_info:
            await machine.start()

        assert isinstance(exc_info.value.__cause__, OSError)
        assert machine.state is D

    @pytest.mark.asyncio
    async def test_handshake_failure(self, capture: FakeCapture) -> None:
        channel = FakeChannel(handshake_error=RuntimeError("offer rejected"))
        machine = ConnectionStateMachine(channel, capture)

        with pytest.raises(HandshakeFailureError, match="offer rejected") as exc_info:
            await machine.start()

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert machine.history == (D, C, D)
        assert machine.status.error_reason == "handshake_failure"
        assert capture.starts == 0
        assert channel.closed == 1

    @pytest.mark.asyncio
    async def test_channel_handshake_error_propagates_unchanged(self, capture: FakeCapture) -> None:
        error = HandshakeFailureError("remote busy", reason="busy")
        machine = ConnectionStateMachine(FakeChannel(handshake_error=error), capture)

        with pytest.raises(HandshakeFailureError) as exc_info:
            await machine.start()

        assert exc_info.value is error
        assert machine.status.last_error is error

    @pytest.mark.asyncio
    async def test_handshake_timeout(self, capture: FakeCapture) -> None:
        channel = FakeChannel(handshake_delay=5)
        machine = ConnectionStateMachine(channel, capture, handshake_timeout=0.01)

        with pytest.raises(HandshakeTimeoutError):
            await machine.start()

        assert machine.state is D
        assert machine.status.error_reason == "handshake_timeout"
        assert capture.starts == 0

    @pytest.mark.asyncio
    async def test_retry_after_failure_clears_error(self, capture: FakeCapture) -> None:
        channel = FakeChannel(handshake_error=RuntimeError("flaky"))
        machine = ConnectionStateMachine(channel, capture)
        with pytest.raises(HandshakeFailureError):
            await machine.start()

        channel.handshake_error = None
        status = await machine.start()

        assert status.state is K
        assert status.last_error is None
        assert machine.history == (D, C, D, C, K)
        await machine.stop()

    @pytest.mark.asyncio
    async def test_capture_start_failure(self, channel: FakeChannel) -> None:
        capture = FakeCapture(start_error=OSError("device busy"))
        machine = ConnectionStateMachine(channel, capture)

        with pytest.raises(ChannelError) as exc_info:
            await machine.start()

        assert exc_info.value.reason == "capture_failed"
        assert machine.history == (D, C, K, D)
        assert machine.capture_release_count == 0
        assert channel.closed == 1

    @pytest.mark.asyncio
    async def test_stop_during_handshake(self, capture: FakeCapture) -> None:
        """stop() while connecting cancels the handshake without an error."""
        channel = FakeChannel(handshake_delay=5)
        machine = ConnectionStateMachine(channel, capture)

        attempt = asyncio.create_task(machine.start())
        await settle()
        assert machine.state is C

        await machine.stop()
        status = await attempt

        assert status.state is D
        assert status.last_error is None
        assert capture.starts == 0
        assert channel.closed == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("outcome", [False, OSError("prompt dismissed")])
    async def test_stop_during_permission_request(
        self, channel: FakeChannel, outcome: object
    ) -> None:
        """A denial that lands after stop() is not reported as an error."""
        release = asyncio.Event()

        class SlowCapture(FakeCapture):
            async def request_permission(self) -> bool:
                self.permission_requests += 1
                await release.wait()
                if isinstance(outcome, BaseException):
                    raise outcome
                return bool(outcome)

        capture = SlowCapture()
        machine = ConnectionStateMachine(channel, capture)

        attempt = asyncio.create_task(machine.start())
        await settle()
        assert machine.state is C

        await machine.stop()
        release.set()
        status = await attempt

        assert status.state is D
        assert status.last_error is None
        assert machine.history == (D, C, D)
        assert channel.handshakes == 0
        assert capture.starts == 0


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_releases_capture_once(
        self, channel: FakeChannel, capture: FakeCapture
    ) -> None:
        machine = ConnectionStateMachine(channel, capture)
        await machine.start()

        await machine.stop()
        await machine.stop()

        assert machine.state is D
        assert capture.stops == 1
        assert machine.capture_release_count == 1
        assert channel.closed == 1
        assert not machine.capture_active

    @pytest.mark.asyncio
    async def test_concurrent_stops(self, channel: FakeChannel, capture: FakeCapture) -> None:
        machine = ConnectionStateMachine(channel, capture)
        await machine.start()

        await asyncio.gather(machine.stop(), machine.stop(), machine.stop())

        assert capture.stops == 1
        assert channel.closed == 1

    @pytest.mark.asyncio
    async def test_stop_when_disconnected_is_noop(
        self, channel: FakeChannel, capture: FakeCapture
    ) -> None:
        machine = ConnectionStateMachine(channel, capture)

        status = await machine.stop()

        assert status.state is D
        assert machine.history == (D,)
        assert channel.closed == 0

    @pytest.mark.asyncio
    async def test_stop_keeps_earlier_error(self, channel: FakeChannel) -> None:
        machine = ConnectionStateMachine(channel, FakeCapture(granted=False))
        with pytest.raises(PermissionDeniedError):
            await machine.start()

        status = await machine.stop()

        assert status.error_reason == "permission_denied"


class TestInbound:
    @pytest.mark.asyncio
    async def test_transcripts_forwarded_while_connected(
        self, channel: FakeChannel, capture: FakeCapture
    ) -> None:
        machine = ConnectionStateMachine(channel, capture, publish_audio=True)
        await machine.start()
        _drain(machine)

        channel.push(TranscriptReceived("homeowner", "Too expensive", at(0)))
        channel.push(AudioChunkReceived(b"\x00\x01"))
        await settle()

        events = _drain(machine)
        assert events == [
            TranscriptReceived("homeowner", "Too expensive", at(0)),
            AudioChunkReceived(b"\x00\x01"),
        ]
        assert machine.audio_chunks_received == 1
        await machine.stop()

    @pytest.mark.asyncio
    async def test_audio_chunks_counted_not_queued_by_default(
        self, channel: FakeChannel, capture: FakeCapture
    ) -> None:
        machine = ConnectionStateMachine(channel, capture)
        await machine.start()
        _drain(machine)

        for _ in range(100):
            channel.push(AudioChunkReceived(b"\x00"))
        await settle(rounds=150)

        assert machine.audio_chunks_received == 100
        assert machine.events.empty()
        await machine.stop()

    @pytest.mark.asyncio
    async def test_transcripts_ignored_when_not_connected(
        self, channel: FakeChannel, capture: FakeCapture
    ) -> None:
        machine = ConnectionStateMachine(channel, capture)

        assert machine.on_transcript("rep", "Hello") is False
        assert machine.on_audio_chunk(b"") is False
        assert machine.events.empty()

    @pytest.mark.asyncio
    async def test_remote_end(self, channel: FakeChannel, capture: FakeCapture) -> None:
        machine = ConnectionStateMachine(channel, capture)
        await machine.start()

        channel.push(ChannelEnded(reason="hangup"))
        await settle()

        status = machine.status
        assert status.state is D
        assert status.end_reason == "hangup"
        assert status.last_error is None
        assert capture.stops == 1
        assert ChannelEnded(reason="hangup") in _drain(machine)

    @pytest.mark.asyncio
    async def test_stop_racing_remote_end(self, channel: FakeChannel, capture: FakeCapture) -> None:
        machine = ConnectionStateMachine(channel, capture)
        await machine.start()

        channel.push(ChannelEnded(reason="hangup"))
        await machine.stop()
        await settle()

        assert machine.state is D
        assert capture.stops == 1
        assert channel.closed == 1

    @pytest.mark.asyncio
    async def test_channel_error_from_stream(
        self, channel: FakeChannel, capture: FakeCapture
    ) -> None:
        machine = ConnectionStateMachine(channel, capture)
        await machine.start()

        channel.fail(ConnectionResetError("peer reset"))
        await settle()

        assert machine.state is D
        assert machine.status.error_reason == "channel_error"
        assert "peer reset" in str(machine.status.last_error)
        assert capture.stops == 1

    @pytest.mark.asyncio
    async def test_channel_failed_event(self, channel: FakeChannel, capture: FakeCapture) -> None:
        machine = ConnectionStateMachine(channel, capture)
        await machine.start()

        _drain(machine)

        channel.push(ChannelFailed(error=RuntimeError("ice failed")))
        await settle()

        assert machine.state is D
        assert isinstance(machine.status.last_error, ChannelError)
        (failed,) = [e for e in _drain(machine) if isinstance(e, ChannelFailed)]
        assert failed.error is machine.status.last_error

    @pytest.mark.asyncio
    async def test_stream_closed_without_end_signal(
        self, channel: FakeChannel, capture: FakeCapture
    ) -> None:
        machine = ConnectionStateMachine(channel, capture)
        await machine.start()

        channel.finish()
        await settle()

        assert machine.state is D
        assert machine.status.error_reason == "unexpected_close"
        assert machine.capture_release_count == 1
