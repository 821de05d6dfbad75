"""Hardware input implementation powered by sounddevice/PortAudio."""

from __future__ import annotations

import contextlib
import threading
from typing import Optional

from ...data.models import AudioFormat, CaptureBuffer, SampleFormat
from ...logging import get_logger
from .base import HardwareError, HardwareInput, TapCallback

LOGGER = get_logger(__name__)


class SoundDeviceInput(HardwareInput):
    """Input tap on a PortAudio device opened through ``sounddevice``.

    Installing the tap opens (but does not start) an ``InputStream`` whose
    callback hands ``indata`` straight to the tap without copying. A running
    frame counter provides the monotonic sample time of every buffer.
    """

    def __init__(
        self,
        device: Optional[int | str] = None,
        sample_format: SampleFormat = SampleFormat.FLOAT32,
    ) -> None:
        try:
            import sounddevice as sd
        except ImportError as exc:  # pragma: no cover - handled in tests
            raise HardwareError("sounddevice dependency is required for capture") from exc

        self._sd = sd
        self._device = device
        self._sample_format = sample_format
        self._stream = None
        self._callback: Optional[TapCallback] = None
        self._format: Optional[AudioFormat] = None
        self._sample_time = 0
        self._clock_lock = threading.Lock()

    @property
    def device(self) -> Optional[int | str]:
        return self._device

    def _query_device_info(self) -> Optional[dict]:
        try:
            return self._sd.query_devices(self._device, "input")
        except (ValueError, self._sd.PortAudioError) as exc:
            LOGGER.debug("Failed to query input device %s: %s", self._device, exc)
            return None

    @property
    def input_channel_count(self) -> int:
        info = self._query_device_info()
        if not info:
            return 0
        return int(info.get("max_input_channels") or 0)

    @property
    def native_format(self) -> AudioFormat:
        if self._format is not None:
            return self._format
        info = self._query_device_info() or {}
        rate = info.get("default_samplerate")
        channels = int(info.get("max_input_channels") or 0)
        return AudioFormat(
            sample_rate=float(rate) if rate else None,
            channels=channels or None,
            sample_format=self._sample_format,
        )

    @property
    def tap_installed(self) -> bool:
        return self._stream is not None

    def install_tap(self, buffer_size: int, callback: TapCallback) -> None:
        if self._stream is not None:
            raise HardwareError("A tap is already installed on this input")

        native = self.native_format
        if not native.channels or not native.sample_rate:
            raise HardwareError(f"Input device {self._device} does not report a usable format")

        self._callback = callback
        self._format = native
        try:
            self._stream = self._sd.InputStream(
                samplerate=native.sample_rate,
                channels=native.channels,
                dtype=self._sample_format.value,
                blocksize=buffer_size,
                device=self._device,
                callback=self._on_audio,
            )
        except self._sd.PortAudioError as exc:
            self._callback = None
            self._format = None
            raise HardwareError(str(exc)) from exc
        LOGGER.info(
            "Installed tap on %s (%s ch, %s Hz, %s frames)",
            "default input" if self._device is None else self._device,
            native.channels,
            int(native.sample_rate),
            buffer_size,
        )

    def _on_audio(self, indata, frames, time_info, status) -> None:
        if status:
            LOGGER.debug("sounddevice status: %s", status)
        callback = self._callback
        if callback is None:
            return
        with self._clock_lock:
            timestamp = float(self._sample_time)
            self._sample_time += frames
        callback(
            CaptureBuffer(
                samples=indata,
                frame_count=frames,
                native_format=self._format,
                timestamp=timestamp,
            )
        )

    def remove_tap(self) -> None:
        stream, self._stream = self._stream, None
        self._callback = None
        self._format = None
        if stream is not None:
            LOGGER.debug("Closing input stream for %s", self._device)
            with contextlib.suppress(self._sd.PortAudioError):
                stream.close()

    def start(self) -> None:
        if self._stream is None:
            raise HardwareError("No tap is installed")
        if self._stream.active:
            return
        try:
            self._stream.start()
        except self._sd.PortAudioError as exc:
            raise HardwareError(str(exc)) from exc

    def pause(self) -> None:
        if self._stream is not None:
            try:
                self._stream.stop()
            except self._sd.PortAudioError as exc:
                raise HardwareError(str(exc)) from exc

    def stop(self) -> None:
        if self._stream is not None:
            LOGGER.info("Stopping input stream for %s", self._device)
            try:
                self._stream.stop()
            except self._sd.PortAudioError as exc:
                raise HardwareError(str(exc)) from exc

    def reset(self) -> None:
        with self._clock_lock:
            self._sample_time = 0


__all__ = ["SoundDeviceInput"]
