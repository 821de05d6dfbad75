"""Capture engine coordinating the hardware tap, conversion and delegates."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from ...data.models import CaptureBuffer, EngineConfig, EngineState
from ...logging import get_logger
from ..audio.base import (
    EngineError,
    EngineNotInitializedError,
    HardwareError,
    HardwareInput,
    HardwareStartError,
    HardwareStopError,
    NoInputChannelError,
    SinkIoError,
)
from ..audio.converter import ConversionData, ConversionFailed, FormatConverter
from ..audio.writers import FileSink

LOGGER = get_logger(__name__)

DEFAULT_BUFFER_SIZE = 1024


class EngineDelegate:
    """Receiver of engine notifications; every hook defaults to a no-op.

    ``on_raw_buffer``, ``on_started``, ``on_converted`` and tap-side
    ``on_failed`` calls arrive on the audio callback thread. Failures raised
    by ``start``/``resume`` arrive on the calling thread.
    """

    def on_failed(self, error: EngineError) -> None:
        pass

    def on_converted(self, samples: np.ndarray, timestamp: float) -> None:
        pass

    def on_raw_buffer(self, buffer: CaptureBuffer, timestamp: float) -> None:
        pass

    def on_started(self) -> None:
        pass


_NULL_DELEGATE = EngineDelegate()


class CaptureEngine:
    """Lifecycle state machine around a single hardware input tap.

    Control methods (``initialize``, ``start``, ``pause``, ``resume``,
    ``stop``) are expected from one thread at a time. The tap callback runs
    concurrently on the hardware thread; state and the streaming flag are
    only touched under ``_lock`` and delegates are always called outside it.
    """

    def __init__(
        self,
        hardware: HardwareInput,
        config: Optional[EngineConfig] = None,
        delegate: Optional[EngineDelegate] = None,
        sink: Optional[FileSink] = None,
        converter: Optional[FormatConverter] = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        if buffer_size <= 0:
            raise ValueError("buffer_size must be a positive integer")
        self._hardware = hardware
        self._config = config
        self._delegate = delegate
        self._owns_sink = sink is None
        self._sink = sink or FileSink((config or EngineConfig()).sample_rate)
        self._converter = converter or FormatConverter()
        self._buffer_size = buffer_size

        self._lock = threading.Lock()
        # Held for the whole extent of a tap callback so stop() can wait it out.
        self._tap_lock = threading.RLock()
        self._state = EngineState.NOT_INITIALIZED
        self._streaming = False
        self._tap_generation = 0

    @property
    def state(self) -> EngineState:
        with self._lock:
            return self._state

    @property
    def is_streaming(self) -> bool:
        with self._lock:
            return self._streaming

    @property
    def config(self) -> Optional[EngineConfig]:
        return self._config

    @property
    def sink(self) -> FileSink:
        return self._sink

    @property
    def hardware(self) -> HardwareInput:
        return self._hardware

    @property
    def delegate(self) -> Optional[EngineDelegate]:
        return self._delegate

    def set_delegate(self, delegate: Optional[EngineDelegate]) -> Optional[EngineDelegate]:
        """Replace the delegate and return the previous one."""

        previous, self._delegate = self._delegate, delegate
        return previous

    def _set_state(self, state: EngineState, *, streaming: Optional[bool] = None) -> None:
        with self._lock:
            self._state = state
            if streaming is not None:
                self._streaming = streaming

    @property
    def _receiver(self) -> EngineDelegate:
        delegate = self._delegate
        return _NULL_DELEGATE if delegate is None else delegate

    def _notify(self, hook: Callable[..., None], *args) -> None:
        try:
            hook(*args)
        except Exception:
            LOGGER.exception("Engine delegate hook %s raised an exception", hook.__name__)

    def _fail(self, error: EngineError) -> None:
        self._set_state(EngineState.FAILED, streaming=False)
        LOGGER.error("%s", error)
        self._notify(self._receiver.on_failed, error)

    def _install_tap(self) -> None:
        config = self._config
        with self._lock:
            self._tap_generation += 1
            generation = self._tap_generation

        def _tap(buffer: CaptureBuffer) -> None:
            self._on_tap(buffer, generation, config)

        self._hardware.install_tap(self._buffer_size, _tap)

    def initialize(self, config: Optional[EngineConfig] = None) -> None:
        """Install the tap with ``config`` captured by value and become ready."""

        if self._hardware.tap_installed:
            LOGGER.warning("Tap already installed; ignoring repeated initialize()")
            return

        self._config = config or self._config or EngineConfig()
        if self._owns_sink:
            self._sink.sample_rate = self._config.sample_rate

        try:
            self._install_tap()
        except HardwareError as exc:
            self._fail(HardwareStartError(str(exc)))
            return

        self._set_state(EngineState.READY)
        LOGGER.info(
            "Engine ready: %s ch, %s, %s Hz",
            self._config.channel_count,
            self._config.sample_format.value,
            int(self._config.sample_rate),
        )

    def _check_input(self) -> bool:
        if self._hardware.input_channel_count > 0:
            return True
        LOGGER.warning("No input is available")
        self._fail(NoInputChannelError())
        return False

    def _start_hardware(self) -> bool:
        try:
            if not self._hardware.tap_installed:
                self._install_tap()
        except HardwareError as exc:
            self._fail(HardwareStartError(str(exc)))
            return False

        # Buffers can arrive before hardware.start() returns.
        self._set_state(EngineState.RECORDING)
        try:
            self._hardware.start()
        except HardwareError as exc:
            self._fail(HardwareStartError(str(exc)))
            return False
        return self.state is EngineState.RECORDING

    def start(self) -> None:
        state = self.state
        if state is EngineState.NOT_INITIALIZED:
            error = EngineNotInitializedError()
            LOGGER.error("%s", error)
            self._notify(self._receiver.on_failed, error)
            return
        if state is EngineState.RECORDING:
            LOGGER.debug("Engine already recording; ignoring start()")
            return

        if not self._check_input():
            return
        if self._start_hardware():
            LOGGER.info("Started tapping input")

    def pause(self) -> None:
        if self.state is not EngineState.RECORDING:
            LOGGER.debug("Engine is %s; ignoring pause()", self.state.value)
            return
        try:
            self._hardware.pause()
        except HardwareError as exc:
            self._fail(HardwareStopError(str(exc)))
            return
        with self._tap_lock:
            pass
        with self._lock:
            paused = self._state is EngineState.RECORDING
            if paused:
                self._state = EngineState.PAUSED
                self._streaming = False
        if paused:
            LOGGER.info("Paused input")
        else:
            LOGGER.warning("Engine failed while pausing; staying %s", self.state.value)

    def resume(self) -> None:
        state = self.state
        if state not in (EngineState.PAUSED, EngineState.FAILED):
            LOGGER.debug("Engine is %s; ignoring resume()", state.value)
            return
        if self._config is None:
            self._notify(self._receiver.on_failed, EngineNotInitializedError())
            return

        if not self._check_input():
            return
        if self._start_hardware():
            LOGGER.info("Resumed input")

    def stop(self) -> None:
        """Tear the tap down; no tap callback is processed after this returns."""

        with self._lock:
            self._tap_generation += 1
        with self._tap_lock:
            pass

        try:
            self._hardware.stop()
        except HardwareError as exc:
            error = HardwareStopError(str(exc))
            LOGGER.warning("%s", error)
            self._notify(self._receiver.on_failed, error)

        self._sink.reset()
        self._hardware.reset()
        self._hardware.remove_tap()

        with self._lock:
            if self._state is not EngineState.NOT_INITIALIZED:
                self._state = EngineState.READY
            self._streaming = False
        LOGGER.info("Stopped input and removed tap")

    def write_buffer(self, buffer: CaptureBuffer, destination: Path) -> bool:
        """Persist a raw buffer; failures are reported but never stop capture."""

        try:
            self._sink.write(buffer, destination)
        except SinkIoError as exc:
            LOGGER.warning("Failed to write into the file: %s", exc)
            self._notify(self._receiver.on_failed, exc)
            return False
        return True

    def _on_tap(self, buffer: CaptureBuffer, generation: int, config: EngineConfig) -> None:
        with self._tap_lock:
            with self._lock:
                if generation != self._tap_generation:
                    return
                state = self._state
            # The stream keeps running after a tap failure until resume() or stop().
            if state is not EngineState.RECORDING:
                LOGGER.debug("Dropping buffer at %s while %s", buffer.timestamp, state.value)
                return

            delegate = self._receiver
            outcome = self._converter.convert_for(buffer, config)

            if isinstance(outcome, ConversionData):
                converted = outcome.buffer
                self._notify(delegate.on_raw_buffer, buffer, buffer.timestamp)
                with self._lock:
                    edge = not self._streaming
                    self._streaming = True
                if edge:
                    self._notify(delegate.on_started)
                self._notify(delegate.on_converted, converted.samples, converted.timestamp)
            elif isinstance(outcome, ConversionFailed):
                self._set_state(EngineState.FAILED, streaming=False)
                LOGGER.error("Converter failed: %s", outcome.error)
                self._notify(delegate.on_failed, outcome.error)
            else:
                with self._lock:
                    self._streaming = False
                LOGGER.debug("No converted data for buffer at %s: %s", buffer.timestamp, type(outcome).__name__)

    def __enter__(self) -> "CaptureEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._hardware.tap_installed:
            self.stop()


__all__ = ["CaptureEngine", "DEFAULT_BUFFER_SIZE", "EngineDelegate"]
