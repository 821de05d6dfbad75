"""Per-buffer sample format, channel and rate conversion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from ...data.models import AudioFormat, CaptureBuffer, ConvertedBuffer, EngineConfig, SampleFormat
from .base import ConversionError, ConverterCreationError, EngineError, InvalidFormatError


class ConversionOutcome:
    """Result of one :meth:`FormatConverter.convert` call."""


@dataclass
class ConversionData(ConversionOutcome):
    buffer: ConvertedBuffer


@dataclass
class EndOfStream(ConversionOutcome):
    pass


@dataclass
class InputStarved(ConversionOutcome):
    pass


@dataclass
class ConversionFailed(ConversionOutcome):
    error: EngineError


def target_capacity(frame_count: int, source_rate: float, target_rate: float) -> int:
    """Number of output frames for ``frame_count`` input frames."""

    if frame_count <= 0:
        return 0
    return int(round(target_rate * frame_count / source_rate))


def _remix_channels(data: np.ndarray, channels: int) -> np.ndarray:
    source_channels = data.shape[1]
    if source_channels == channels:
        return data
    if channels == 1:
        return data.mean(axis=1, keepdims=True)
    if source_channels == 1:
        return np.repeat(data, channels, axis=1)
    if source_channels > channels:
        return data[:, :channels]
    extra = np.repeat(data[:, -1:], channels - source_channels, axis=1)
    return np.concatenate([data, extra], axis=1)


def _resample(data: np.ndarray, target_length: int) -> np.ndarray:
    length = data.shape[0]
    if length == target_length:
        return data
    if length == 1 or target_length == 1:
        return np.repeat(data[:1], target_length, axis=0)
    original_positions = np.linspace(0, length - 1, num=length)
    target_positions = np.linspace(0, length - 1, num=target_length)
    columns = [np.interp(target_positions, original_positions, data[:, index]) for index in range(data.shape[1])]
    return np.stack(columns, axis=1)


def _encode(data: np.ndarray, sample_format: SampleFormat) -> np.ndarray:
    if sample_format.is_float:
        return data.astype(sample_format.dtype)
    clipped = np.clip(data, -1.0, 1.0)
    scale = sample_format.full_scale
    return np.clip(np.round(clipped * scale), -scale, scale - 1).astype(sample_format.dtype)


class FormatConverter:
    """Stateless converter from a buffer's native format to a target format.

    Every call performs one complete pass over a single input buffer; nothing
    is queued or carried over to the next call.
    """

    def convert(
        self,
        buffer: CaptureBuffer,
        target_format: SampleFormat,
        target_channels: int,
        target_rate: float,
    ) -> ConversionOutcome:
        error = self._validate_target(target_format, target_channels, target_rate)
        if error is not None:
            return ConversionFailed(error)

        source = buffer.native_format
        error = self._validate_source(source)
        if error is not None:
            return ConversionFailed(error)

        if buffer.end_of_stream:
            return EndOfStream()

        capacity = target_capacity(buffer.frame_count, float(source.sample_rate), float(target_rate))
        if capacity <= 0:
            return InputStarved()

        try:
            data = self._convert_samples(buffer, source, SampleFormat(target_format), int(target_channels), capacity)
        except (ValueError, TypeError, IndexError, FloatingPointError) as exc:
            return ConversionFailed(ConversionError(str(exc)))

        return ConversionData(
            ConvertedBuffer(
                data=data,
                frame_count=int(data.shape[0]),
                timestamp=buffer.timestamp,
                sample_format=SampleFormat(target_format),
            )
        )

    def convert_for(self, buffer: CaptureBuffer, config: EngineConfig) -> ConversionOutcome:
        return self.convert(buffer, config.sample_format, config.channel_count, config.sample_rate)

    @staticmethod
    def _validate_target(target_format, target_channels, target_rate) -> Optional[EngineError]:
        try:
            SampleFormat(target_format)
        except ValueError:
            return InvalidFormatError(f"unsupported sample format {target_format!r}")
        if target_channels is None or int(target_channels) < 1:
            return InvalidFormatError(f"channel count must be positive, got {target_channels}")
        if target_rate is None or float(target_rate) <= 0:
            return InvalidFormatError(f"sample rate must be positive, got {target_rate}")
        return None

    @staticmethod
    def _validate_source(source: AudioFormat) -> Optional[EngineError]:
        if source.sample_format is None:
            return ConverterCreationError("native sample format is unknown")
        if not source.sample_rate or source.sample_rate <= 0:
            return ConverterCreationError(f"native sample rate {source.sample_rate} is not usable")
        if not source.channels or source.channels < 1:
            return ConverterCreationError(f"native channel count {source.channels} is not usable")
        return None

    @staticmethod
    def _convert_samples(
        buffer: CaptureBuffer,
        source: AudioFormat,
        target_format: SampleFormat,
        target_channels: int,
        capacity: int,
    ) -> np.ndarray:
        samples = np.asarray(buffer.samples)
        if samples.ndim == 1:
            samples = samples.reshape(-1, 1)
        if samples.ndim != 2:
            raise ValueError(f"expected (frames, channels) samples, got shape {samples.shape}")
        if samples.shape[1] != source.channels:
            raise ValueError(
                f"buffer holds {samples.shape[1]} channel(s) but native format declares {source.channels}"
            )
        if samples.shape[0] < buffer.frame_count:
            raise ValueError(f"buffer holds {samples.shape[0]} frame(s), expected {buffer.frame_count}")

        frames = samples[: buffer.frame_count].astype(np.float64) / source.sample_format.full_scale
        frames = _remix_channels(frames, target_channels)
        frames = _resample(frames, capacity)
        return _encode(frames, target_format)


__all__ = [
    "ConversionData",
    "ConversionFailed",
    "ConversionOutcome",
    "EndOfStream",
    "FormatConverter",
    "InputStarved",
    "target_capacity",
]
