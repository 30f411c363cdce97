from __future__ import annotations

import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path

_LOGGER_NAME = "CustomOSD.Client"
LOG_DIR_ENV_VAR = "CUSTOM_OSD_LOG_DIR"
PROPAGATE_ENV_VAR = "CUSTOM_OSD_PROPAGATE_LOGS"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s"
LOG_MAX_BYTES = 512 * 1024


def resolve_logs_dir() -> Path:
    """Return the first writable of CUSTOM_OSD_LOG_DIR, the XDG state dir, or the temp dir."""
    candidates = []
    env_override = os.environ.get(LOG_DIR_ENV_VAR)
    if env_override:
        candidates.append(Path(env_override).expanduser())
    state_home = Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))
    candidates.append(state_home / "custom-osd" / "logs")

    for target in candidates:
        try:
            target.mkdir(parents=True, exist_ok=True)
            return target
        except OSError:
            continue

    temp_fallback = Path(tempfile.gettempdir()) / "custom-osd" / "logs"
    temp_fallback.mkdir(parents=True, exist_ok=True)
    return temp_fallback


class _ReleaseLogLevelFilter(logging.Filter):
    """Promote debug logs to INFO in release builds so diagnostics stay visible."""

    def __init__(self, release_mode: bool) -> None:
        super().__init__()
        self._release_mode = release_mode

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - logging shim
        if self._release_mode and record.levelno == logging.DEBUG:
            record.levelno = logging.INFO
            record.levelname = "INFO"
        return True


def configure_client_logger(debug_enabled: bool) -> logging.Logger:
    """Set level, propagation and the release filter on the shared client logger."""
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug_enabled else logging.INFO)
    logger.propagate = os.environ.get(PROPAGATE_ENV_VAR, "").lower() in {"1", "true", "yes", "on"}
    for existing in list(logger.filters):
        if isinstance(existing, _ReleaseLogLevelFilter):
            logger.removeFilter(existing)
    logger.addFilter(_ReleaseLogLevelFilter(release_mode=not debug_enabled))
    return logger


def attach_file_handler(logger: logging.Logger, *, retention: int, filename: str = "custom-osd.log") -> Path:
    """Attach a rotating file handler (replacing a previous one) and return the log directory.

    ``retention`` counts the live file, so ``retention - 1`` backups are kept.
    """
    log_dir = resolve_logs_dir()
    for existing in list(logger.handlers):
        if isinstance(existing, RotatingFileHandler):
            logger.removeHandler(existing)
            existing.close()
    handler = RotatingFileHandler(
        log_dir / filename,
        maxBytes=LOG_MAX_BYTES,
        backupCount=max(0, max(1, retention) - 1),
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return log_dir
