"""Tests for the sounddevice hardware input."""

from __future__ import annotations

import sys

import numpy as np
import pytest

from audiotap.core.audio.base import HardwareError
from audiotap.data.models import SampleFormat


class _FakePortAudioError(Exception):
    pass


class _FakeInputStream:
    def __init__(self, module: "_FakeSoundDeviceModule", **kwargs) -> None:
        self.module = module
        self.kwargs = kwargs
        self.calls: list[str] = []
        self.active = False
        module.streams.append(self)

    def start(self) -> None:
        self.calls.append("start")
        if self.module.fail_start:
            raise _FakePortAudioError("Device unavailable")
        self.active = True

    def stop(self) -> None:
        self.calls.append("stop")
        self.active = False

    def close(self) -> None:
        self.calls.append("close")

    def deliver(self, frames: int, value: float = 0.0) -> None:
        channels = self.kwargs["channels"]
        indata = np.full((frames, channels), value, dtype=np.float32)
        self.kwargs["callback"](indata, frames, None, None)


class _FakeSoundDeviceModule:
    PortAudioError = _FakePortAudioError

    def __init__(self, max_input_channels: int = 2, default_samplerate: float = 44_100.0) -> None:
        self.info = {
            "name": "Fake Microphone",
            "max_input_channels": max_input_channels,
            "default_samplerate": default_samplerate,
        }
        self.streams: list[_FakeInputStream] = []
        self.fail_start = False
        self.queries: list[tuple] = []

    def query_devices(self, device=None, kind=None):
        self.queries.append((device, kind))
        if device == "missing":
            raise ValueError("No input device matching 'missing'")
        return dict(self.info)

    def InputStream(self, **kwargs):  # noqa: N802 - mirrors sounddevice API
        return _FakeInputStream(self, **kwargs)


@pytest.fixture
def fake_sd(monkeypatch):
    module = _FakeSoundDeviceModule()
    monkeypatch.setitem(sys.modules, "sounddevice", module)
    return module


def _make_input(**kwargs):
    from audiotap.core.audio.sounddevice_backend import SoundDeviceInput

    return SoundDeviceInput(**kwargs)


def test_native_format_comes_from_device(fake_sd) -> None:
    hardware = _make_input(device=3)

    native = hardware.native_format

    assert native.sample_rate == 44_100.0
    assert native.channels == 2
    assert native.sample_format is SampleFormat.FLOAT32
    assert hardware.input_channel_count == 2
    assert fake_sd.queries[0] == (3, "input")


def test_missing_device_reports_no_channels(fake_sd) -> None:
    hardware = _make_input(device="missing")

    assert hardware.input_channel_count == 0
    with pytest.raises(HardwareError):
        hardware.install_tap(1024, lambda buffer: None)


def test_install_tap_opens_stream_without_starting(fake_sd) -> None:
    hardware = _make_input(sample_format=SampleFormat.INT16)

    hardware.install_tap(512, lambda buffer: None)

    assert hardware.tap_installed
    stream = fake_sd.streams[0]
    assert stream.kwargs["samplerate"] == 44_100.0
    assert stream.kwargs["channels"] == 2
    assert stream.kwargs["dtype"] == "int16"
    assert stream.kwargs["blocksize"] == 512
    assert stream.calls == []

    with pytest.raises(HardwareError):
        hardware.install_tap(512, lambda buffer: None)


def test_callback_wraps_indata_with_sample_time(fake_sd) -> None:
    received = []
    hardware = _make_input()
    hardware.install_tap(256, received.append)
    stream = fake_sd.streams[0]

    stream.deliver(256, 0.5)
    stream.deliver(256, 0.25)

    assert [buffer.timestamp for buffer in received] == [0.0, 256.0]
    assert received[0].frame_count == 256
    assert received[0].native_format.channels == 2
    assert np.allclose(received[1].samples, 0.25)

    hardware.reset()
    stream.deliver(128)
    assert received[-1].timestamp == 0.0


def test_start_pause_stop_drive_stream(fake_sd) -> None:
    hardware = _make_input()
    hardware.install_tap(1024, lambda buffer: None)
    stream = fake_sd.streams[0]

    hardware.start()
    hardware.pause()
    hardware.start()
    hardware.stop()
    hardware.remove_tap()

    assert stream.calls == ["start", "stop", "start", "stop", "close"]
    assert not hardware.tap_installed


def test_start_failure_raises_hardware_error(fake_sd) -> None:
    hardware = _make_input()
    hardware.install_tap(1024, lambda buffer: None)
    fake_sd.fail_start = True

    with pytest.raises(HardwareError, match="Device unavailable"):
        hardware.start()


def test_start_without_tap_raises(fake_sd) -> None:
    with pytest.raises(HardwareError):
        _make_input().start()


def test_callbacks_after_remove_tap_are_dropped(fake_sd) -> None:
    received = []
    hardware = _make_input()
    hardware.install_tap(1024, received.append)
    stream = fake_sd.streams[0]

    hardware.remove_tap()
    stream.deliver(64)

    assert received == []


def test_start_on_running_stream_is_a_no_op(fake_sd) -> None:
    hardware = _make_input()
    hardware.install_tap(1024, lambda buffer: None)
    stream = fake_sd.streams[0]

    hardware.start()
    hardware.start()

    assert stream.calls == ["start"]
