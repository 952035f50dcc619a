"""Realtime session client: connection state machine, push-to-talk and cleanup."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import httpx
from aiortc import RTCSessionDescription

from config.settings import Settings, get_settings
from realtime.errors import NegotiationFailedError, RealtimeClientError
from realtime.events import ActivityLog, parse_server_event
from realtime.media import AiortcMediaBackend, BaseMediaBackend, GatedAudioTrack
from realtime.scenarios import build_session_update, validate_scenario
from realtime.schemas import STATUS_TEXT, Credential, LogEntry, SessionState
from realtime.signaling import exchange_sdp, fetch_credential

LOGGER = logging.getLogger(__name__)

_CONNECTED_STATES = frozenset({SessionState.CONNECTED, SessionState.TALKING})
_IN_FLIGHT_STATES = frozenset({SessionState.REQUESTING_CREDENTIAL, SessionState.NEGOTIATING_SESSION})


@dataclass
class SessionHandles:
    """Live media objects of one session. Replaced wholesale on cleanup."""

    peer_connection: Any = None
    control_channel: Any = None
    microphone: Any = None
    local_track: GatedAudioTrack | None = None
    remote_sink: Any = None
    connection_state: str = "new"
    config_sent: bool = False

    def is_empty(self) -> bool:
        return (
            self.peer_connection is None
            and self.control_channel is None
            and self.microphone is None
            and self.local_track is None
            and self.remote_sink is None
        )


class RealtimeSession:
    """One realtime voice session against the upstream WebRTC endpoint.

    All methods run on a single asyncio loop. The peer connection and data
    channel callbacks feed into ``handle_connection_state_change``,
    ``handle_channel_open`` and ``handle_channel_message``, which tests can
    also call directly with synthetic input.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        media: BaseMediaBackend | None = None,
        http_client: httpx.AsyncClient | None = None,
        log: ActivityLog | None = None,
        scenario: str | None = None,
        on_state_change: Callable[[SessionState], None] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._media = media or AiortcMediaBackend(self._settings)
        self._http = http_client
        self._on_state_change = on_state_change
        self.log = log or ActivityLog()
        self.scenario = validate_scenario(scenario if scenario is not None else self._settings.default_scenario)
        self.state = SessionState.IDLE
        self.handles = SessionHandles()
        self.last_error: RealtimeClientError | None = None

    @property
    def status(self) -> str:
        return STATUS_TEXT[self.state]

    @property
    def talk_controls_enabled(self) -> bool:
        return self.state in _CONNECTED_STATES

    def select_scenario(self, scenario: str | None) -> None:
        """Choose the instruction preset used by the next ``session.update``."""

        self.scenario = validate_scenario(scenario)

    def _set_state(self, state: SessionState) -> None:
        if state is self.state:
            return
        LOGGER.debug("Session state %s -> %s", self.state.value, state.value)
        self.state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    @asynccontextmanager
    async def _http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http is not None:
            yield self._http
            return
        async with httpx.AsyncClient(timeout=self._settings.upstream_timeout_seconds) as client:
            yield client

    async def connect(self) -> bool:
        """Fetch a credential and negotiate the WebRTC session.

        Returns True once the SDP handshake completed. The session reaches
        ``CONNECTED`` when the peer connection reports it.
        """

        if self.state in _IN_FLIGHT_STATES:
            self.log.append("system", "Connection attempt already in progress.")
            return False
        if self.state is SessionState.DISCONNECTED:
            self.log.append("system", "Session dropped. Disconnect before reconnecting.")
            return False
        if self.state not in (SessionState.IDLE, SessionState.FAILED):
            self.log.append("system", "Already connected.")
            return False

        if not self.handles.is_empty():
            await self._release(self._take_handles())
        self.last_error = None
        self._set_state(SessionState.REQUESTING_CREDENTIAL)
        self.log.append("system", "Requesting ephemeral key from relay...")

        try:
            async with self._http_client() as client:
                credential = await fetch_credential(client, self._settings.relay_token_url)
                self.log.append("system", "Got ephemeral key. Creating WebRTC connection...")
                self._set_state(SessionState.NEGOTIATING_SESSION)
                await self._negotiate(client, credential)
        except RealtimeClientError as exc:
            await self._fail(exc)
            return False
        except Exception as exc:
            LOGGER.exception("Unexpected failure while connecting")
            await self._fail(NegotiationFailedError(f"Session negotiation failed: {exc}"))
            return False

        if self.state is SessionState.FAILED:
            # The peer connection failed while the answer was being applied.
            return False
        self.log.append("system", "SDP handshake complete.")
        return True

    async def _negotiate(self, client: httpx.AsyncClient, credential: Credential) -> None:
        handles = self.handles

        handles.microphone = self._media.open_microphone()
        handles.local_track = self._media.gate(handles.microphone)

        pc = self._media.create_peer_connection()
        handles.peer_connection = pc
        handles.remote_sink = self._media.create_remote_sink()

        def on_connection_state_change() -> None:
            if self.handles.peer_connection is pc:
                self.handle_connection_state_change(pc.connectionState)

        pc.on("track", self._handle_remote_track)
        pc.on("connectionstatechange", on_connection_state_change)
        pc.addTrack(handles.local_track)

        channel = pc.createDataChannel(self._settings.control_channel_label)
        handles.control_channel = channel
        channel.on("open", self.handle_channel_open)
        channel.on("message", self.handle_channel_message)

        try:
            offer = await pc.createOffer()
            await pc.setLocalDescription(offer)
        except Exception as exc:
            raise NegotiationFailedError(f"Could not create local offer: {exc}") from exc

        answer_sdp = await exchange_sdp(
            client,
            self._settings.realtime_calls_url,
            credential,
            pc.localDescription.sdp,
        )

        try:
            await pc.setRemoteDescription(RTCSessionDescription(sdp=answer_sdp, type="answer"))
        except Exception as exc:
            raise NegotiationFailedError(f"Could not apply remote answer: {exc}") from exc

        await handles.remote_sink.start()

    async def _fail(self, exc: RealtimeClientError) -> None:
        self.last_error = exc
        LOGGER.error("Realtime connect failed: %s", exc.detail)
        self.log.append("system", exc.detail)
        await self._release(self._take_handles())
        self._set_state(SessionState.FAILED)

    def _handle_remote_track(self, track: Any) -> None:
        if track.kind != "audio" or self.handles.remote_sink is None:
            return
        self.handles.remote_sink.addTrack(track)
        self.log.append("system", "Attached remote audio track.")

    def handle_connection_state_change(self, connection_state: str) -> None:
        self.handles.connection_state = connection_state

        if connection_state == "connected":
            if self.state is SessionState.NEGOTIATING_SESSION:
                self._set_state(SessionState.CONNECTED)
                self.log.append("system", "Connected to Realtime API.")
            return

        if connection_state not in ("disconnected", "failed", "closed"):
            return

        if self.state in _CONNECTED_STATES:
            self._close_gate()
            self._set_state(SessionState.DISCONNECTED)
            self.log.append("system", f"Connection {connection_state}.")
        elif self.state is SessionState.NEGOTIATING_SESSION and connection_state != "disconnected":
            self.last_error = NegotiationFailedError(f"Peer connection {connection_state} during negotiation")
            self._close_gate()
            self._set_state(SessionState.FAILED)
            self.log.append("system", self.last_error.detail)

    def handle_channel_open(self) -> bool:
        """Send the one ``session.update`` for this session.

        Returns False if there is no channel or the update was already sent.
        """

        handles = self.handles
        if handles.control_channel is None or handles.config_sent:
            return False

        self.log.append("system", "DataChannel open.")
        message = build_session_update(self._settings, self.scenario)
        handles.control_channel.send(json.dumps(message))
        handles.config_sent = True
        self.log.append("system", "Sent session.update.")
        return True

    def handle_channel_message(self, raw: str | bytes) -> LogEntry | None:
        event = parse_server_event(raw)
        if event is None:
            return None
        return self.log.apply(event)

    def start_talking(self) -> bool:
        if self.state is not SessionState.CONNECTED or self.handles.local_track is None:
            return False
        self.handles.local_track.enabled = True
        self._set_state(SessionState.TALKING)
        self.log.append("system", "Microphone ON.")
        return True

    def stop_talking(self) -> bool:
        if self.state is not SessionState.TALKING:
            return False
        self._close_gate()
        self._set_state(SessionState.CONNECTED)
        self.log.append("system", "Microphone OFF.")
        return True

    def toggle_talking(self) -> bool:
        if self.state is SessionState.TALKING:
            return self.stop_talking()
        return self.start_talking()

    def _close_gate(self) -> None:
        if self.handles.local_track is not None:
            self.handles.local_track.enabled = False

    def _take_handles(self) -> SessionHandles:
        handles = self.handles
        self.handles = SessionHandles()
        return handles

    async def cleanup(self) -> None:
        """Release every media handle and return to ``IDLE``. Safe to call repeatedly."""

        handles = self._take_handles()
        released = not handles.is_empty()
        await self._release(handles)
        self._set_state(SessionState.IDLE)
        if released:
            self.log.append("system", "Disconnected.")

    async def _release(self, handles: SessionHandles) -> None:
        if handles.local_track is not None:
            handles.local_track.enabled = False
            _quietly("stop local track", handles.local_track.stop)
        if handles.microphone is not None:
            _quietly("stop microphone", handles.microphone.stop)
        if handles.control_channel is not None:
            _quietly("close data channel", handles.control_channel.close)
        if handles.peer_connection is not None:
            try:
                await handles.peer_connection.close()
            except Exception:
                LOGGER.warning("Failed to close peer connection", exc_info=True)
        if handles.remote_sink is not None:
            try:
                await handles.remote_sink.stop()
            except Exception:
                LOGGER.warning("Failed to stop remote audio sink", exc_info=True)


def _quietly(action: str, func: Callable[[], Any]) -> None:
    try:
        func()
    except Exception:
        LOGGER.warning("Failed to %s", action, exc_info=True)
