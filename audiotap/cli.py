"""Typer CLI entry point for audiotap."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from .config import get_settings, list_environment_settings, parse_device
from .core.audio.base import HardwareError, HardwareInput
from .core.audio.devices import configure_input_route, format_device_table
from .core.audio.sounddevice_backend import SoundDeviceInput
from .core.pipeline.delegates import FileRecordingDelegate
from .core.pipeline.engine import CaptureEngine
from .data.models import EngineConfig, EngineState, SampleFormat
from .logging import configure_logging, get_logger

app = typer.Typer(help="audiotap real-time audio capture")
LOGGER = get_logger(__name__)

POLL_INTERVAL = 0.1


def _build_input(device: Optional[str], sample_format: SampleFormat) -> HardwareInput:
    try:
        return SoundDeviceInput(device=parse_device(device), sample_format=sample_format)
    except HardwareError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def devices() -> None:
    """List available audio input devices."""

    configure_logging(get_settings().log_level, force=True)
    typer.echo(format_device_table())


@app.command("config")
def show_config() -> None:
    """Show environment-backed settings and their current values."""

    for entry in list_environment_settings():
        value = entry.value.value if isinstance(entry.value, SampleFormat) else entry.value
        typer.echo(f"{entry.env_name}={'' if value is None else value}")


@app.command()
def record(
    output: Optional[Path] = typer.Argument(None, help="WAV file to write; defaults to AUDIOTAP_OUTPUT_PATH"),
    duration: Optional[float] = typer.Option(None, help="Duration in seconds; default waits for Ctrl+C"),
    device: Optional[str] = typer.Option(None, help="Input device id/name"),
    sample_rate: Optional[float] = typer.Option(None, help="Override target sample rate"),
    channels: Optional[int] = typer.Option(None, help="Override target channel count"),
    sample_format: Optional[SampleFormat] = typer.Option(None, case_sensitive=False, help="Override target sample format"),
    route: Optional[bool] = typer.Option(None, "--route/--no-route", help="Prefer headset/Bluetooth inputs"),
) -> None:
    """Capture from the input device into a WAV file."""

    settings = get_settings()
    configure_logging(settings.log_level, force=True)

    try:
        config = EngineConfig(
            channel_count=channels if channels is not None else settings.channels,
            sample_format=sample_format or settings.sample_format,
            sample_rate=sample_rate if sample_rate is not None else settings.sample_rate,
        )
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    destination = Path(output or settings.output_path)
    device = device if device is not None else settings.input_device
    use_route = settings.auto_route if route is None else route
    if use_route and device is None:
        configure_input_route()

    hardware = _build_input(device, config.sample_format)
    engine = CaptureEngine(hardware, config=config, buffer_size=settings.buffer_size)
    delegate = FileRecordingDelegate(
        engine,
        destination,
        on_started=lambda: LOGGER.info("Input started returning data"),
    )
    engine.set_delegate(delegate)

    engine.initialize()
    engine.start()

    failed = engine.state is EngineState.FAILED
    started_at = time.monotonic()
    try:
        while not failed and (duration is None or time.monotonic() - started_at < duration):
            time.sleep(POLL_INTERVAL)
            failed = engine.state is EngineState.FAILED
    except KeyboardInterrupt:
        LOGGER.info("Recording interrupted by user; finishing up")
    finally:
        engine.stop()

    for error in delegate.errors:
        typer.echo(f"Error: {error}", err=True)

    seconds = delegate.converted_frames / config.sample_rate
    typer.echo(f"Recorded {seconds:.2f}s ({delegate.raw_buffers} buffers) to {destination}")
    if failed:
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover
    app()
