"""Hardware input abstraction and the capture error taxonomy."""

from __future__ import annotations

import abc
from typing import Callable, Optional

from ...data.models import AudioFormat, CaptureBuffer

TapCallback = Callable[[CaptureBuffer], None]


class HardwareInput(abc.ABC):
    """Platform audio input that delivers buffers through a registered tap.

    Implementations invoke the tap on their own thread at device cadence. The
    tap must not be invoked again once :meth:`remove_tap` has returned.
    """

    @property
    @abc.abstractmethod
    def native_format(self) -> AudioFormat:
        """Format the device delivers buffers in."""

    @property
    @abc.abstractmethod
    def input_channel_count(self) -> int:
        """Number of input channels currently available, ``0`` when none."""

    @property
    @abc.abstractmethod
    def tap_installed(self) -> bool:
        """Whether a tap callback is currently registered."""

    @abc.abstractmethod
    def install_tap(self, buffer_size: int, callback: TapCallback) -> None:
        """Register ``callback`` for buffers of roughly ``buffer_size`` frames."""

    @abc.abstractmethod
    def remove_tap(self) -> None:
        """Unregister the tap and release the underlying stream."""

    @abc.abstractmethod
    def start(self) -> None:
        """Start (or restart after a pause) delivering buffers."""

    @abc.abstractmethod
    def pause(self) -> None:
        """Stop delivering buffers while keeping the tap and resources."""

    @abc.abstractmethod
    def stop(self) -> None:
        """Stop delivering buffers."""

    def reset(self) -> None:
        """Reset internal clocks; optional for implementations."""


class HardwareError(RuntimeError):
    """Raised by a :class:`HardwareInput` when the device refuses an operation."""


class EngineError(RuntimeError):
    """Base class for every failure reported to an engine delegate."""

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail
        message = self.default_message
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    default_message = "Audio engine error"


class NoInputChannelError(EngineError):
    default_message = "No input channel is available"


class EngineNotInitializedError(EngineError):
    default_message = "Audio engine is not initialized"


class InvalidFormatError(EngineError):
    default_message = "Invalid target audio format"


class ConverterCreationError(EngineError):
    default_message = "Failed to create the format converter"


class ConversionError(EngineError):
    default_message = "Format conversion failed"


class HardwareStartError(EngineError):
    default_message = "Audio hardware failed to start"


class HardwareStopError(EngineError):
    default_message = "Audio hardware failed to stop"


class SinkIoError(EngineError):
    default_message = "Failed to write audio file"


__all__ = [
    "ConversionError",
    "ConverterCreationError",
    "EngineError",
    "EngineNotInitializedError",
    "HardwareError",
    "HardwareInput",
    "HardwareStartError",
    "HardwareStopError",
    "InvalidFormatError",
    "NoInputChannelError",
    "SinkIoError",
    "TapCallback",
]
