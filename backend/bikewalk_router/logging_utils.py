from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from tempfile import gettempdir
from typing import Any

from pythonjsonlogger import jsonlogger

from .settings import settings

LOGGER_NAME = "bikewalk_router"
LOG_FILE_NAME = "api.log.jsonl"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Attributes every LogRecord already owns; passing one through ``extra`` raises KeyError.
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(str(name).strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _log_dir_candidates(out_dir: str) -> Iterator[Path]:
    yield Path(out_dir) / "logs"
    yield Path.cwd() / "out" / "logs"
    yield Path(gettempdir()) / "bikewalk-router" / "logs"


def _first_writable(candidates: Iterator[Path]) -> Path | None:
    for log_dir in candidates:
        probe = log_dir / ".writetest"
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            probe.touch(exist_ok=True)
            probe.unlink(missing_ok=True)
        except OSError:
            continue
        return log_dir
    return None


def _handlers(formatter: logging.Formatter) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_dir = _first_writable(_log_dir_candidates(settings.out_dir))
    if log_dir is not None:
        try:
            handlers.append(logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8"))
        except OSError:
            pass
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def get_logger() -> logging.Logger:
    """Return the service logger, attaching JSON handlers on first use only."""
    logger = logging.getLogger(LOGGER_NAME)
    if getattr(logger, "_bikewalk_configured", False):
        return logger

    logger.setLevel(_level_from_name(settings.log_level))
    logger.propagate = False
    for handler in _handlers(jsonlogger.JsonFormatter(LOG_FORMAT)):
        logger.addHandler(handler)

    logger._bikewalk_configured = True  # type: ignore[attr-defined]
    return logger


def _extra(event: str, fields: dict[str, Any]) -> dict[str, Any]:
    extra: dict[str, Any] = {"event": event}
    for key, value in fields.items():
        extra[f"field_{key}" if key in _RECORD_ATTRS else key] = value
    return extra


def log_event(event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit one structured record; ``event`` is both the message and a top-level key."""
    logger = get_logger()
    if logger.isEnabledFor(level):
        logger.log(level, event, extra=_extra(event, fields))
