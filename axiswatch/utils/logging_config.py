"""Process-wide logging setup for axiswatch entry points.

Library modules only ever log through ``logging.getLogger(__name__)``; this
module decides where those records end up.  Records always go to stderr and,
when a file is given, to a size-rotated log file as well.

The root level can be forced from the environment with ``AXISWATCH_LOG_LEVEL``
(a ``.env`` file in the working directory is honoured), and single loggers
such as ``axiswatch.dynamics.smoothing`` can be turned up to DEBUG through
``verbose`` without flooding the rest of the process.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional, Union

from dotenv import load_dotenv

LOG_LEVEL_ENV_VAR = "AXISWATCH_LOG_LEVEL"

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

MAX_BYTES = 2 * 1024 * 1024
BACKUP_COUNT = 5


def resolve_level(level: Union[int, str]) -> int:
    """Turn ``"warning"`` / ``"DEBUG"`` / ``logging.INFO`` into a numeric level."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level {level!r}")
    return value


def _file_handler(path: Path, max_bytes: int, backup_count: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)


def setup_logging(
    level: Union[int, str] = logging.WARNING,
    log_file: Union[str, Path, None] = None,
    *,
    debug: bool = False,
    verbose: Iterable[str] = (),
    fmt: str = LOG_FORMAT,
    max_bytes: int = MAX_BYTES,
    backup_count: int = BACKUP_COUNT,
) -> Optional[Path]:
    """Configure the root logger once per process.

    ``debug`` wins over everything, then ``AXISWATCH_LOG_LEVEL``, then
    ``level``.  An unusable environment value is reported and ignored.
    Returns the log file path, or None when logging to stderr only.
    """
    load_dotenv()
    env_level = os.getenv(LOG_LEVEL_ENV_VAR)
    bad_env_level = None

    if debug:
        root_level = logging.DEBUG
    else:
        root_level = resolve_level(level)
        if env_level:
            try:
                root_level = resolve_level(env_level)
            except ValueError:
                bad_env_level = env_level

    path = Path(log_file) if log_file else None
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if path is not None:
        handlers.append(_file_handler(path, max_bytes, backup_count))
    logging.basicConfig(level=root_level, format=fmt, handlers=handlers)

    log = logging.getLogger(__name__)
    if bad_env_level is not None:
        log.warning("Ignoring %s=%r: not a log level", LOG_LEVEL_ENV_VAR, bad_env_level)
    for name in verbose:
        logging.getLogger(name).setLevel(logging.DEBUG)
        log.debug("DEBUG logging enabled for %s", name)
    if path is not None:
        log.info("Logging to %s", path)
    return path
