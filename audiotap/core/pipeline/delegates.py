"""Ready-made engine delegates."""

from __future__ import annotations

import threading
from collections import deque
from pathlib import Path
from typing import Callable, Deque, List, Optional, Tuple

import numpy as np

from ...data.models import CaptureBuffer
from ..audio.base import EngineError
from .engine import CaptureEngine, EngineDelegate


class CollectingDelegate(EngineDelegate):
    """Keeps counters, recent converted blocks and every reported error."""

    def __init__(self, history: int = 32) -> None:
        self._lock = threading.Lock()
        self.blocks: Deque[Tuple[float, np.ndarray]] = deque(maxlen=history)
        self.errors: List[EngineError] = []
        self.started_count = 0
        self.converted_frames = 0
        self.raw_buffers = 0
        self.peak = 0.0

    def on_failed(self, error: EngineError) -> None:
        with self._lock:
            self.errors.append(error)

    def on_converted(self, samples: np.ndarray, timestamp: float) -> None:
        level = float(np.max(np.abs(samples))) if samples.size else 0.0
        with self._lock:
            self.blocks.append((timestamp, samples))
            self.converted_frames += int(samples.shape[0])
            self.peak = level

    def on_raw_buffer(self, buffer: CaptureBuffer, timestamp: float) -> None:
        with self._lock:
            self.raw_buffers += 1

    def on_started(self) -> None:
        with self._lock:
            self.started_count += 1


class FileRecordingDelegate(CollectingDelegate):
    """Persists every raw buffer to ``destination`` through the engine sink."""

    def __init__(
        self,
        engine: CaptureEngine,
        destination: Path,
        on_started: Optional[Callable[[], None]] = None,
        history: int = 32,
    ) -> None:
        super().__init__(history=history)
        self.engine = engine
        self.destination = Path(destination)
        self._started_callback = on_started
        self.write_failures = 0

    def on_raw_buffer(self, buffer: CaptureBuffer, timestamp: float) -> None:
        super().on_raw_buffer(buffer, timestamp)
        if not self.engine.write_buffer(buffer, self.destination):
            self.write_failures += 1

    def on_started(self) -> None:
        super().on_started()
        if self._started_callback is not None:
            self._started_callback()


__all__ = ["CollectingDelegate", "FileRecordingDelegate"]
