from __future__ import annotations

import asyncio
from fractions import Fraction

import numpy as np
from av import AudioFrame

from realtime.media import AiortcMediaBackend, GatedAudioTrack


class ToneSource:
    kind = "audio"

    def __init__(self) -> None:
        self.stopped = False
        self._pts = 0

    async def recv(self) -> AudioFrame:
        frame = AudioFrame.from_ndarray(
            np.full((1, 960), 4000, dtype=np.int16),
            format="s16",
            layout="mono",
        )
        frame.sample_rate = 48000
        frame.time_base = Fraction(1, 48000)
        frame.pts = self._pts
        self._pts += 960
        return frame

    def stop(self) -> None:
        self.stopped = True


def test_gated_track_emits_silence_until_enabled():
    source = ToneSource()
    track = GatedAudioTrack(source)

    async def scenario():
        muted = await track.recv()
        track.enabled = True
        live = await track.recv()
        return muted, live

    muted, live = asyncio.run(scenario())

    assert track.kind == "audio"
    assert not muted.to_ndarray().any()
    assert muted.samples == 960
    assert muted.sample_rate == 48000
    assert muted.pts == 0
    assert (live.to_ndarray() == 4000).all()
    assert live.pts == 960


def test_gated_track_stop_closes_gate_and_source():
    source = ToneSource()
    track = GatedAudioTrack(source)
    track.enabled = True

    track.stop()

    assert track.enabled is False
    assert track.readyState == "ended"
    assert source.stopped is True


def test_remote_sink_defaults_to_blackhole(settings, tmp_path):
    from aiortc.contrib.media import MediaBlackhole, MediaRecorder

    assert isinstance(AiortcMediaBackend(settings).create_remote_sink(), MediaBlackhole)

    recording = settings.model_copy(update={"remote_audio_path": tmp_path / "out" / "assistant.wav"})
    sink = AiortcMediaBackend(recording).create_remote_sink()
    assert isinstance(sink, MediaRecorder)
    assert (tmp_path / "out").is_dir()
