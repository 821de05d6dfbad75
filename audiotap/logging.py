"""Logging helpers for the audiotap project."""

from __future__ import annotations

import logging
from typing import Optional, Union

_LOGGER_CONFIGURED = False


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: Union[int, str] = logging.INFO, *, force: bool = False) -> None:
    """Configure basic logging once for the application.

    ``force`` re-applies the configuration, which the CLI uses to honour the
    configured log level after modules already requested their loggers.
    """

    global _LOGGER_CONFIGURED
    if _LOGGER_CONFIGURED and not force:
        return

    logging.basicConfig(
        level=_resolve_level(level),
        format="%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s",
        force=force,
    )
    _LOGGER_CONFIGURED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Convenience helper that ensures logging is configured."""

    configure_logging()
    return logging.getLogger(name or "audiotap")


__all__ = ["configure_logging", "get_logger"]
