"""Append-only WAV sink for raw captured buffers."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import soundfile as sf

from ...data.models import CaptureBuffer
from ...logging import get_logger
from .base import SinkIoError

LOGGER = get_logger(__name__)

DEFAULT_BIT_DEPTH = 16
DEFAULT_CHANNELS = 1

_INT_SUBTYPES = {16: "PCM_16", 24: "PCM_24", 32: "PCM_32"}
_FLOAT_SUBTYPES = {32: "FLOAT", 64: "DOUBLE"}


@dataclass(frozen=True)
class SinkSettings:
    """File format fixed by the first buffer written after a reset."""

    channels: int
    sample_rate: float
    bit_depth: int
    is_float: bool = False
    format_id: str = "linear_pcm"

    @property
    def subtype(self) -> str:
        table = _FLOAT_SUBTYPES if self.is_float else _INT_SUBTYPES
        try:
            return table[self.bit_depth]
        except KeyError:
            raise SinkIoError(f"unsupported bit depth {self.bit_depth}") from None

    @classmethod
    def from_buffer(cls, buffer: CaptureBuffer, default_sample_rate: float) -> "SinkSettings":
        native = buffer.native_format
        sample_format = native.sample_format
        return cls(
            channels=int(native.channels or DEFAULT_CHANNELS),
            sample_rate=float(native.sample_rate or default_sample_rate),
            bit_depth=sample_format.bit_depth if sample_format is not None else DEFAULT_BIT_DEPTH,
            is_float=sample_format.is_float if sample_format is not None else False,
        )


class FileSink:
    """Lazily opened WAV writer shared by consecutive captured buffers.

    The first :meth:`write` after construction or :meth:`reset` derives the
    file settings from the buffer and opens ``destination``; later writes
    append to that same handle until the next reset.
    """

    def __init__(self, sample_rate: float) -> None:
        self.sample_rate = sample_rate
        self._lock = threading.Lock()
        self._file: Optional[sf.SoundFile] = None
        self._settings: Optional[SinkSettings] = None
        self._destination: Optional[Path] = None
        self._frames_written = 0

    @property
    def settings(self) -> Optional[SinkSettings]:
        return self._settings

    @property
    def destination(self) -> Optional[Path]:
        return self._destination

    @property
    def is_open(self) -> bool:
        return self._file is not None

    @property
    def frames_written(self) -> int:
        return self._frames_written

    @property
    def duration_seconds(self) -> float:
        if self._settings is None or self._settings.sample_rate <= 0:
            return 0.0
        return self._frames_written / self._settings.sample_rate

    def write(self, buffer: CaptureBuffer, destination: Path) -> None:
        with self._lock:
            if self._file is None:
                self._open(buffer, Path(destination))
            data = np.asarray(buffer.samples)[: buffer.frame_count]
            if data.ndim == 1:
                data = data[:, np.newaxis]
            try:
                self._file.write(data)
            except (sf.LibsndfileError, RuntimeError, ValueError, TypeError) as exc:
                raise SinkIoError(f"{self._destination}: {exc}") from exc
            self._frames_written += int(data.shape[0])

    def _open(self, buffer: CaptureBuffer, destination: Path) -> None:
        settings = SinkSettings.from_buffer(buffer, self.sample_rate)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            handle = sf.SoundFile(
                str(destination),
                mode="w",
                samplerate=int(round(settings.sample_rate)),
                channels=settings.channels,
                subtype=settings.subtype,
                format="WAV",
            )
        except (sf.LibsndfileError, OSError, RuntimeError, ValueError) as exc:
            raise SinkIoError(f"{destination}: {exc}") from exc
        self._file = handle
        self._settings = settings
        self._destination = destination
        self._frames_written = 0
        LOGGER.info(
            "Opened %s for writing (%s ch, %s Hz, %s)",
            destination,
            settings.channels,
            int(settings.sample_rate),
            settings.subtype,
        )

    def reset(self) -> None:
        with self._lock:
            handle, self._file = self._file, None
            if handle is not None:
                try:
                    handle.close()
                except (sf.LibsndfileError, RuntimeError) as exc:
                    LOGGER.warning("Failed to close %s cleanly: %s", self._destination, exc)
                else:
                    LOGGER.info(
                        "Closed %s after %s frame(s)",
                        self._destination,
                        self._frames_written,
                    )
            self._settings = None
            self._destination = None
            self._frames_written = 0

    def close(self) -> None:
        self.reset()

    def __enter__(self) -> "FileSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["FileSink", "SinkSettings"]
