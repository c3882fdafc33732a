from __future__ import annotations

import logging
import os
import sys
import traceback
from datetime import datetime
from pathlib import Path

LOG_DIR_ENV = "NOISEBOX_LOG_DIR"
DEBUG_ENV = "NOISEBOX_DEBUG"
LOG_FILE = "noisebox.log"

_LOGGER = logging.getLogger("noisebox.logging")
_ROLE_ATTR = "noisebox_role"
_LEVEL_ICONS = {
    logging.DEBUG: "🐛",
    logging.INFO: "ℹ️",
    logging.WARNING: "⚠️",
    logging.ERROR: "❌",
    logging.CRITICAL: "💥",
}


class _IconFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        icon = _LEVEL_ICONS.get(record.levelno, "")
        return f"{icon} {super().format(record)}"


def debug_enabled() -> bool:
    return bool(os.environ.get(DEBUG_ENV))


def get_log_dir() -> Path:
    configured = os.environ.get(LOG_DIR_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".cache" / "noisebox" / "logs"


def get_log_path() -> Path:
    return get_log_dir() / LOG_FILE


def _handlers(logger: logging.Logger, role: str) -> list[logging.Handler]:
    return [handler for handler in logger.handlers if getattr(handler, _ROLE_ATTR, None) == role]


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.__stderr__)
    handler.setLevel(logging.DEBUG if debug_enabled() else logging.INFO)
    handler.setFormatter(_IconFormatter("%(name)s: %(message)s"))
    setattr(handler, _ROLE_ATTR, "console")
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    setattr(handler, _ROLE_ATTR, "file")
    return handler


def configure_logging() -> Path | None:
    """Attach the noisebox console and file handlers; return the log file in use.

    Calling it again is cheap. When ``NOISEBOX_LOG_DIR`` has changed since the
    last call, the file handler moves to the new location.
    """

    logger = logging.getLogger("noisebox")
    logger.setLevel(logging.DEBUG)
    if not _handlers(logger, "console") and not logging.getLogger().handlers:
        logger.addHandler(_console_handler())

    target = get_log_path()
    for handler in _handlers(logger, "file"):
        assert isinstance(handler, logging.FileHandler)
        if Path(handler.baseFilename) == target.absolute():
            return target
        logger.removeHandler(handler)
        handler.close()

    try:
        logger.addHandler(_file_handler(target))
    except OSError as exc:
        _LOGGER.warning("Failed to configure file logging at %s: %s", target, exc, exc_info=True)
        return None
    return target


def log_exception(context: str, exc: BaseException) -> Path | None:
    """Append a timestamped traceback for ``exc`` to the log file."""

    path = get_log_path()
    stamp = datetime.now().isoformat(timespec="seconds")
    lines = [f"[{stamp}] {context} failed: {type(exc).__name__}: {exc}\n"]
    lines.extend(traceback.format_exception(type(exc), exc, exc.__traceback__))
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.writelines(lines)
            handle.write("\n")
    except OSError as log_exc:
        _LOGGER.warning("Failed to write log file: %s", log_exc, exc_info=True)
        return None
    return path
