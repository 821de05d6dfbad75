"""Tests for environment-backed configuration."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from audiotap import config
from audiotap.data.models import SampleFormat


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch, tmp_path):
    """Ensure each test starts with a clean configuration environment."""

    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config, "_settings", None)

    for key in list(os.environ):
        if key.startswith("AUDIOTAP_"):
            monkeypatch.delenv(key, raising=False)

    yield


def test_defaults_match_engine_defaults():
    settings = config.get_settings()

    assert settings.sample_rate == 48_000.0
    assert settings.channels == 1
    assert settings.sample_format is SampleFormat.FLOAT32
    assert settings.output_path == Path("recordings") / "audio.wav"
    assert settings.auto_route is True


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("AUDIOTAP_SAMPLE_RATE", "16000")
    monkeypatch.setenv("AUDIOTAP_SAMPLE_FORMAT", "int16")
    monkeypatch.setenv("AUDIOTAP_AUTO_ROUTE", "false")

    settings = config.get_settings()
    engine_config = settings.engine_config()

    assert engine_config.sample_rate == 16_000.0
    assert engine_config.sample_format is SampleFormat.INT16
    assert settings.auto_route is False


def test_env_file_is_read(tmp_path):
    (tmp_path / ".env").write_text("AUDIOTAP_CHANNELS=2\n")

    assert config.get_settings().channels == 2


def test_invalid_channel_count_is_rejected(monkeypatch):
    monkeypatch.setenv("AUDIOTAP_CHANNELS", "0")

    with pytest.raises(ValidationError):
        config.Settings()


def test_list_environment_settings_reflects_defaults():
    entries = {entry.env_name: entry for entry in config.list_environment_settings()}

    assert "AUDIOTAP_SAMPLE_RATE" in entries
    assert "AUDIOTAP_INPUT_DEVICE" in entries
    assert entries["AUDIOTAP_BUFFER_SIZE"].default == 1024
    assert entries["AUDIOTAP_OUTPUT_PATH"].default == Path("recordings") / "audio.wav"


@pytest.mark.parametrize(
    "raw, expected",
    [(None, None), ("", None), ("  ", None), ("3", 3), (" USB Mic ", "USB Mic")],
)
def test_parse_device(raw, expected):
    assert config.parse_device(raw) == expected
