from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

from audiotap.core.audio.base import SinkIoError
from audiotap.core.audio.writers import FileSink, SinkSettings
from audiotap.data.models import AudioFormat, CaptureBuffer, SampleFormat


def _buffer(
    frames: int = 1024,
    value: float = 0.25,
    native: AudioFormat = AudioFormat(48_000.0, 1, SampleFormat.FLOAT32),
) -> CaptureBuffer:
    dtype = native.sample_format.dtype if native.sample_format else np.float32
    return CaptureBuffer(
        samples=np.full((frames, native.channels or 1), value, dtype=dtype),
        frame_count=frames,
        native_format=native,
        timestamp=0.0,
    )


def test_settings_come_from_first_buffer(tmp_path: Path) -> None:
    sink = FileSink(sample_rate=16_000)
    destination = tmp_path / "audio.wav"

    sink.write(_buffer(), destination)
    first_settings = sink.settings
    for _ in range(3):
        sink.write(_buffer(native=AudioFormat(44_100.0, 1, SampleFormat.FLOAT32)), destination)
    sink.reset()

    assert first_settings == SinkSettings(channels=1, sample_rate=48_000.0, bit_depth=32, is_float=True)
    info = sf.info(str(destination))
    assert info.samplerate == 48_000
    assert info.frames == 4 * 1024
    assert info.subtype == "FLOAT"


def test_missing_format_fields_use_defaults(tmp_path: Path) -> None:
    sink = FileSink(sample_rate=22_050)
    destination = tmp_path / "audio.wav"

    sink.write(_buffer(frames=100, native=AudioFormat()), destination)
    sink.close()

    info = sf.info(str(destination))
    assert info.samplerate == 22_050
    assert info.channels == 1
    assert info.subtype == "PCM_16"


def test_int16_buffers_write_pcm16(tmp_path: Path) -> None:
    sink = FileSink(sample_rate=48_000)
    destination = tmp_path / "pcm.wav"
    native = AudioFormat(16_000.0, 2, SampleFormat.INT16)

    sink.write(_buffer(frames=10, value=1_000, native=native), destination)
    sink.reset()

    data, rate = sf.read(str(destination), dtype="int16")
    assert rate == 16_000
    assert data.shape == (10, 2)
    assert (data == 1_000).all()


def test_reset_then_new_destination_is_independent(tmp_path: Path) -> None:
    sink = FileSink(sample_rate=48_000)
    first = tmp_path / "first.wav"
    second = tmp_path / "second.wav"

    sink.write(_buffer(value=0.1), first)
    sink.write(_buffer(value=0.1), first)
    sink.reset()
    assert not sink.is_open
    assert sink.settings is None

    sink.write(_buffer(frames=256, value=0.5), second)
    sink.reset()

    assert sf.info(str(first)).frames == 2048
    data, _ = sf.read(str(second), dtype="float32")
    assert data.shape[0] == 256
    assert np.allclose(data, 0.5)


def test_handle_is_reused_within_session(tmp_path: Path) -> None:
    sink = FileSink(sample_rate=48_000)

    sink.write(_buffer(), tmp_path / "a.wav")
    sink.write(_buffer(), tmp_path / "b.wav")
    sink.reset()

    assert sf.info(str(tmp_path / "a.wav")).frames == 2048
    assert not (tmp_path / "b.wav").exists()


def test_parent_directories_are_created(tmp_path: Path) -> None:
    sink = FileSink(sample_rate=48_000)
    destination = tmp_path / "nested" / "dir" / "audio.wav"

    with sink:
        sink.write(_buffer(frames=8), destination)
        assert sink.is_open
        assert sink.destination == destination
        assert sink.frames_written == 8
        assert sink.duration_seconds == pytest.approx(8 / 48_000)

    assert destination.exists()


def test_open_failure_raises_sink_error(tmp_path: Path) -> None:
    sink = FileSink(sample_rate=48_000)

    with pytest.raises(SinkIoError):
        sink.write(_buffer(), tmp_path)

    assert not sink.is_open


def test_unsupported_bit_depth_is_rejected() -> None:
    settings = SinkSettings(channels=1, sample_rate=8_000, bit_depth=12)

    with pytest.raises(SinkIoError):
        settings.subtype


def test_reset_clears_frame_count(tmp_path: Path) -> None:
    sink = FileSink(sample_rate=48_000)

    sink.write(_buffer(frames=64), tmp_path / "audio.wav")
    assert sink.frames_written == 64
    sink.reset()

    assert sink.frames_written == 0
    assert sink.duration_seconds == 0.0
