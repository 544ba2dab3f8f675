from __future__ import annotations

import logging
from typing import Optional

from citybikebot.config.models import LoggingSettings


# Chatty third-party loggers that would otherwise log every request at INFO/DEBUG.
_NOISY_LOGGERS = ("urllib3", "requests")


def _parse_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {name}")
    return level


def _handlers_for(settings: LoggingSettings) -> Optional[list[logging.Handler]]:
    if settings.file is None:
        return None
    settings.file.parent.mkdir(parents=True, exist_ok=True)
    return [logging.FileHandler(settings.file, encoding="utf-8"), logging.StreamHandler()]


def configure_logging(settings: LoggingSettings) -> None:
    """
    Configure process-wide logging for the bot.

    `basicConfig` does nothing when the root logger already has handlers (uvicorn installs its
    own before the app factory runs), so the configured level is applied to the root logger
    explicitly as well.
    """

    level = _parse_level(settings.level)
    logging.basicConfig(level=level, format=settings.format, handlers=_handlers_for(settings))
    logging.getLogger().setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
