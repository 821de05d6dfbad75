"""Global configuration using Pydantic settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .data.models import EngineConfig, SampleFormat


class Settings(BaseSettings):
    """Application wide settings loaded from environment variables."""

    sample_rate: float = Field(default=48_000.0, gt=0)
    channels: int = Field(default=1, ge=1)
    sample_format: SampleFormat = SampleFormat.FLOAT32
    buffer_size: int = Field(default=1024, gt=0)
    output_path: Path = Field(default_factory=lambda: Path("recordings") / "audio.wav")
    input_device: Optional[str] = None
    auto_route: bool = True
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="AUDIOTAP_",
        env_file=".env",
        case_sensitive=False,
    )

    def engine_config(self) -> EngineConfig:
        return EngineConfig(
            channel_count=self.channels,
            sample_format=self.sample_format,
            sample_rate=self.sample_rate,
        )


_settings: Optional[Settings] = None


_MODEL_CONFIG: Dict[str, Any] = dict(Settings.model_config or {})
_ENV_PREFIX: str = (_MODEL_CONFIG.get("env_prefix") or "").upper()
_CASE_SENSITIVE: bool = bool(_MODEL_CONFIG.get("case_sensitive", True))


@dataclass
class EnvironmentSetting:
    """Metadata about a configuration option backed by an environment variable."""

    field: str
    env_name: str
    value: Any
    default: Any


def _env_key(field: str) -> str:
    key = f"{_ENV_PREFIX}{field}" if _ENV_PREFIX else field
    return key if _CASE_SENSITIVE else key.upper()


def _field_default(field_info) -> Any:
    if field_info.default_factory is not None:  # type: ignore[truthy-function]
        return field_info.default_factory()
    return field_info.get_default()


def list_environment_settings(settings: Optional[Settings] = None) -> Iterable[EnvironmentSetting]:
    """Return metadata for all environment-backed settings."""

    settings = settings or get_settings()
    for name, field in Settings.model_fields.items():
        yield EnvironmentSetting(
            field=name,
            env_name=_env_key(name),
            value=getattr(settings, name),
            default=_field_default(field),
        )


def parse_device(device: Optional[str]) -> Optional[int | str]:
    if device is None:
        return None
    device = device.strip()
    if not device:
        return None
    if device.isdigit():
        return int(device)
    return device


def get_settings() -> Settings:
    """Return a singleton instance of the application settings."""

    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


__all__ = [
    "EnvironmentSetting",
    "Settings",
    "get_settings",
    "list_environment_settings",
    "parse_device",
]
