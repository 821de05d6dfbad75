"""Audio device enumeration and input route selection."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from ...logging import get_logger

LOGGER = get_logger(__name__)


class PortType(str, enum.Enum):
    BUILTIN_MIC = "builtin_mic"
    HEADSET_MIC = "headset_mic"
    BLUETOOTH_HFP = "bluetooth_hfp"
    BLUETOOTH_A2DP = "bluetooth_a2dp"
    HEADPHONES = "headphones"
    BUILTIN_SPEAKER = "builtin_speaker"
    USB = "usb"
    LINE = "line"
    OTHER = "other"


PREFERRED_INPUT_PORTS = (PortType.HEADSET_MIC, PortType.BLUETOOTH_HFP)
PRIVATE_OUTPUT_PORTS = (PortType.HEADPHONES, PortType.BLUETOOTH_A2DP)

SPEAKER_OVERRIDE = "speaker"
NO_OVERRIDE = "none"

_BLUETOOTH_PATTERN = re.compile(r"bluetooth|airpods|hands[- ]?free|\bhfp\b|\bbt\b|bluez", re.IGNORECASE)
_HEADSET_PATTERN = re.compile(r"headset|headphone|earphone|earbud", re.IGNORECASE)
_BUILTIN_PATTERN = re.compile(r"built[- ]?in|internal|macbook|default|onboard", re.IGNORECASE)
_USB_PATTERN = re.compile(r"\busb\b", re.IGNORECASE)
_LINE_PATTERN = re.compile(r"line[- ]?in|line input|aux", re.IGNORECASE)


@dataclass
class DeviceInfo:
    id: int
    name: str
    max_input_channels: int
    default_samplerate: float
    hostapi: str
    port_type: PortType = PortType.OTHER


@dataclass(frozen=True)
class InputPort:
    name: str
    port_type: PortType
    device: Optional[int] = None


@dataclass(frozen=True)
class OutputPort:
    name: str
    port_type: PortType


def classify_port(name: str, *, is_input: bool = True) -> PortType:
    """Guess the physical port behind a device name."""

    if _BLUETOOTH_PATTERN.search(name):
        return PortType.BLUETOOTH_HFP if is_input else PortType.BLUETOOTH_A2DP
    if _HEADSET_PATTERN.search(name):
        return PortType.HEADSET_MIC if is_input else PortType.HEADPHONES
    if _USB_PATTERN.search(name):
        return PortType.USB
    if _LINE_PATTERN.search(name):
        return PortType.LINE
    if _BUILTIN_PATTERN.search(name) or "microphone" in name.lower() or "speaker" in name.lower():
        return PortType.BUILTIN_MIC if is_input else PortType.BUILTIN_SPEAKER
    return PortType.OTHER


def select_input_route(inputs: Iterable[InputPort]) -> Optional[InputPort]:
    """Return the first headset or Bluetooth hands-free input, if any.

    ``None`` means the platform default (usually the built-in microphone)
    should be left alone.
    """

    for port in inputs:
        if port.port_type in PREFERRED_INPUT_PORTS:
            return port
    return None


def select_output_override(outputs: Sequence[OutputPort]) -> str:
    """Return ``"none"`` when private listening hardware is connected.

    Every output is inspected in order and the last one decides, so a route
    ending on the built-in speaker forces the speaker override.
    """

    decision = SPEAKER_OVERRIDE
    for port in outputs:
        decision = NO_OVERRIDE if port.port_type in PRIVATE_OUTPUT_PORTS else SPEAKER_OVERRIDE
    return decision


def list_input_devices() -> List[DeviceInfo]:
    try:
        import sounddevice as sd
    except ImportError:
        LOGGER.warning("sounddevice not installed; cannot list devices")
        return []

    hostapis = sd.query_hostapis()
    devices = sd.query_devices()
    results: List[DeviceInfo] = []

    for idx, info in enumerate(devices):
        max_input = int(info.get("max_input_channels") or 0)
        if max_input <= 0:
            continue
        hostapi = hostapis[info["hostapi"]]["name"] if hostapis else "unknown"
        name = info["name"]
        results.append(
            DeviceInfo(
                id=idx,
                name=name,
                max_input_channels=max_input,
                default_samplerate=info.get("default_samplerate", 0.0),
                hostapi=hostapi,
                port_type=classify_port(name),
            )
        )
    return results


def list_output_ports() -> List[OutputPort]:
    try:
        import sounddevice as sd
    except ImportError:
        return []

    return [
        OutputPort(name=info["name"], port_type=classify_port(info["name"], is_input=False))
        for info in sd.query_devices()
        if int(info.get("max_output_channels") or 0) > 0
    ]


def configure_input_route(devices: Optional[Sequence[DeviceInfo]] = None) -> Optional[InputPort]:
    """Point the sounddevice default input at the preferred port.

    Returns the selected port, or ``None`` when the default is kept.
    """

    try:
        import sounddevice as sd
    except ImportError:
        LOGGER.warning("sounddevice not installed; keeping the default input route")
        return None

    device_list = list_input_devices() if devices is None else list(devices)
    ports = [InputPort(name=device.name, port_type=device.port_type, device=device.id) for device in device_list]
    selected = select_input_route(ports)

    override = select_output_override(list_output_ports())
    LOGGER.debug("Output override decision: %s", override)

    if selected is None:
        LOGGER.info("No headset or Bluetooth input found; keeping the default input")
        return None

    sd.default.device = (selected.device, sd.default.device[1])
    LOGGER.info("%s (%s) is selected as the input source", selected.name, selected.port_type.value)
    return selected


def format_device_table(devices: Optional[Iterable[DeviceInfo]] = None) -> str:
    device_list = list_input_devices() if devices is None else list(devices)

    if not device_list:
        return (
            "No input devices detected. Install audio support with "
            "`pip install sounddevice` and ensure audio hardware is accessible."
        )

    preferred = select_input_route(
        InputPort(name=device.name, port_type=device.port_type, device=device.id) for device in device_list
    )
    header = f"{'ID':>3} | {'Name':<40} | {'In':>2} | {'Rate':>7} | {'Host API':<12} | {'Port':<14} | Route"
    lines = [header, "-" * len(header)]
    for device in device_list:
        selected = preferred is not None and preferred.device == device.id
        lines.append(
            f"{device.id:>3} | {device.name:<40.40} | {device.max_input_channels:>2} | "
            f"{int(device.default_samplerate):>7} | {device.hostapi:<12.12} | "
            f"{device.port_type.value:<14} | {('auto' if selected else ''):>5}"
        )
    return "\n".join(lines)


__all__ = [
    "DeviceInfo",
    "InputPort",
    "OutputPort",
    "PortType",
    "classify_port",
    "configure_input_route",
    "format_device_table",
    "list_input_devices",
    "list_output_ports",
    "select_input_route",
    "select_output_override",
]
