from __future__ import annotations

import logging
import os
import traceback
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path

_LOGGER = logging.getLogger("tonesketch.logging")
_ROOT_LOGGER_NAME = "tonesketch"
LOG_DIR_ENV = "TONESKETCH_LOG_DIR"
_LOG_FILE = "tonesketch.log"
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: int | None = None) -> None:
    """Attach a NullHandler to the package logger, or a stream handler when given a level."""

    logger = logging.getLogger(_ROOT_LOGGER_NAME)
    if level is None:
        if not any(isinstance(handler, logging.NullHandler) for handler in logger.handlers):
            logger.addHandler(logging.NullHandler())
        return
    logging.basicConfig(level=level, format=_LOG_FORMAT)
    logger.setLevel(level)


def get_log_dir() -> Path:
    configured = os.environ.get(LOG_DIR_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".cache" / "tonesketch" / "logs"


def get_log_path() -> Path:
    return get_log_dir() / _LOG_FILE


def log_exception(
    context: str,
    exc: BaseException,
    *,
    details: Mapping[str, object] | None = None,
) -> Path | None:
    """Append a timestamped traceback to the log file.

    ``details`` (route, request id, render parameters) is written as sorted
    key=value pairs on the line after the failure headline.
    """
    try:
        log_dir = get_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        path = get_log_path()
        timestamp = datetime.now().isoformat()
        with path.open("a", encoding="utf-8") as handle:
            handle.write(f"[{timestamp}] {context} failed: {type(exc).__name__}: {exc}\n")
            if details:
                pairs = " ".join(f"{key}={details[key]!r}" for key in sorted(details))
                handle.write(f"  context: {pairs}\n")
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=handle)
            handle.write("\n")
        return path
    except Exception as log_exc:
        _LOGGER.warning("Failed to write log file: %s", log_exc, exc_info=True)
        return None
