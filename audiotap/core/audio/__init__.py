"""Audio capture package."""

from .base import (
    ConversionError,
    ConverterCreationError,
    EngineError,
    EngineNotInitializedError,
    HardwareError,
    HardwareInput,
    HardwareStartError,
    HardwareStopError,
    InvalidFormatError,
    NoInputChannelError,
    SinkIoError,
)
from .converter import (
    ConversionData,
    ConversionFailed,
    ConversionOutcome,
    EndOfStream,
    FormatConverter,
    InputStarved,
)
from .writers import FileSink, SinkSettings

__all__ = [
    "ConversionData",
    "ConversionError",
    "ConversionFailed",
    "ConversionOutcome",
    "ConverterCreationError",
    "EndOfStream",
    "EngineError",
    "EngineNotInitializedError",
    "FileSink",
    "FormatConverter",
    "HardwareError",
    "HardwareInput",
    "HardwareStartError",
    "HardwareStopError",
    "InputStarved",
    "InvalidFormatError",
    "NoInputChannelError",
    "SinkIoError",
    "SinkSettings",
]
