"""Media plumbing for the realtime client: peer connection, microphone and sinks."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import numpy as np
from aiortc import MediaStreamTrack, RTCConfiguration, RTCIceServer, RTCPeerConnection
from aiortc.contrib.media import MediaBlackhole, MediaPlayer, MediaRecorder
from av import AudioFrame

from config.settings import Settings, get_settings
from realtime.errors import MediaAcquisitionFailedError

LOGGER = logging.getLogger(__name__)


def silence_like(frame: AudioFrame) -> AudioFrame:
    """Return a zeroed frame with the same format, layout and timing as ``frame``."""

    silent = AudioFrame.from_ndarray(
        np.zeros_like(frame.to_ndarray()),
        format=frame.format.name,
        layout=frame.layout.name,
    )
    silent.sample_rate = frame.sample_rate
    silent.pts = frame.pts
    silent.time_base = frame.time_base
    return silent


class GatedAudioTrack(MediaStreamTrack):
    """Outbound audio track that forwards microphone frames only while enabled.

    While disabled it keeps the RTP stream alive with silent frames so the
    upstream never receives captured audio.
    """

    kind = "audio"

    def __init__(self, source: MediaStreamTrack) -> None:
        super().__init__()
        self._source = source
        self.enabled = False

    async def recv(self) -> AudioFrame:
        frame = await self._source.recv()
        if self.enabled:
            return frame
        return silence_like(frame)

    def stop(self) -> None:
        self.enabled = False
        super().stop()
        self._source.stop()


class BaseMediaBackend(ABC):
    """Factory for the media objects a realtime session needs."""

    @abstractmethod
    def open_microphone(self) -> MediaStreamTrack:
        """Return a live audio track from the local microphone."""

    @abstractmethod
    def create_peer_connection(self) -> Any:
        """Return a new peer connection."""

    @abstractmethod
    def create_remote_sink(self) -> Any:
        """Return a sink with ``addTrack``/``start``/``stop`` for assistant audio."""

    def gate(self, track: MediaStreamTrack) -> GatedAudioTrack:
        return GatedAudioTrack(track)


class AiortcMediaBackend(BaseMediaBackend):
    """aiortc + FFmpeg implementation."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def open_microphone(self) -> MediaStreamTrack:
        settings = self._settings
        try:
            player = MediaPlayer(settings.microphone_device, format=settings.microphone_format)
        except Exception as exc:
            raise MediaAcquisitionFailedError(
                f"Could not open microphone {settings.microphone_device!r} "
                f"({settings.microphone_format}): {exc}"
            ) from exc

        if player.audio is None:
            raise MediaAcquisitionFailedError(
                f"Device {settings.microphone_device!r} has no audio stream"
            )
        return player.audio

    def create_peer_connection(self) -> RTCPeerConnection:
        ice_servers = [RTCIceServer(urls=url) for url in self._settings.ice_servers]
        return RTCPeerConnection(configuration=RTCConfiguration(iceServers=ice_servers))

    def create_remote_sink(self) -> MediaRecorder | MediaBlackhole:
        path = self._settings.remote_audio_path
        if path is None:
            return MediaBlackhole()
        path.parent.mkdir(parents=True, exist_ok=True)
        LOGGER.info("Recording assistant audio to %s", path)
        return MediaRecorder(str(path))
