"""Data models shared by the capture pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


class SampleFormat(str, enum.Enum):
    """PCM sample encodings understood by the converter and the file sink."""

    FLOAT32 = "float32"
    FLOAT64 = "float64"
    INT16 = "int16"
    INT32 = "int32"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.value)

    @property
    def bit_depth(self) -> int:
        return self.dtype.itemsize * 8

    @property
    def is_float(self) -> bool:
        return self in (SampleFormat.FLOAT32, SampleFormat.FLOAT64)

    @property
    def full_scale(self) -> float:
        """Divisor mapping integer PCM into ``[-1.0, 1.0]``."""

        if self.is_float:
            return 1.0
        return float(2 ** (self.bit_depth - 1))

    @classmethod
    def from_dtype(cls, dtype) -> Optional["SampleFormat"]:
        try:
            return cls(np.dtype(dtype).name)
        except (TypeError, ValueError):
            return None


class EngineState(enum.Enum):
    NOT_INITIALIZED = "not_initialized"
    READY = "ready"
    RECORDING = "recording"
    PAUSED = "paused"
    FAILED = "failed"


@dataclass(frozen=True)
class AudioFormat:
    """Description of a PCM stream; unknown fields are ``None``."""

    sample_rate: Optional[float] = None
    channels: Optional[int] = None
    sample_format: Optional[SampleFormat] = None


class EngineConfig(BaseModel):
    """Target format the engine converts every captured buffer into."""

    model_config = ConfigDict(frozen=True)

    channel_count: int = Field(default=1, ge=1)
    sample_format: SampleFormat = SampleFormat.FLOAT32
    sample_rate: float = Field(default=48_000.0, gt=0)

    @property
    def target_format(self) -> AudioFormat:
        return AudioFormat(
            sample_rate=self.sample_rate,
            channels=self.channel_count,
            sample_format=self.sample_format,
        )


@dataclass
class CaptureBuffer:
    """One hardware-delivered block of frames in the native input format.

    ``samples`` is shaped ``(frames, channels)`` and may alias memory owned by
    the audio driver. The buffer is only valid while the tap callback that
    received it is running, so consumers copy what they need out of it.
    """

    samples: np.ndarray
    frame_count: int
    native_format: AudioFormat
    timestamp: float
    end_of_stream: bool = False


@dataclass
class ConvertedBuffer:
    """Freshly allocated output of a single conversion pass."""

    data: np.ndarray
    frame_count: int
    timestamp: float
    sample_format: SampleFormat

    @property
    def channels(self) -> int:
        return int(self.data.shape[1]) if self.data.ndim == 2 else 1

    @property
    def samples(self) -> np.ndarray:
        """First channel as float32 in ``[-1.0, 1.0]``."""

        first = self.data[:, 0] if self.data.ndim == 2 else self.data
        if self.sample_format.is_float:
            return first.astype(np.float32, copy=False)
        return (first.astype(np.float32) / self.sample_format.full_scale).astype(np.float32)


__all__ = [
    "AudioFormat",
    "CaptureBuffer",
    "ConvertedBuffer",
    "EngineConfig",
    "EngineState",
    "SampleFormat",
]
