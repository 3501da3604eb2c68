"""Opt-in logging handlers for scripts and notebooks.

`metabolax` itself only attaches a `NullHandler`. Applications that want the
package's log output call `enable_logging_handlers` once at startup.

:copyright: Copyright 2024 by MLL <mll@mll.bio>.
:license: Apache 2.0. See LICENSE for details.
"""

import logging
from collections.abc import Callable, Mapping
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from metabolax.config import LOGGING

LOG_FILE_NAME = "metabolax.log"
SESSION_START_BANNER = "―" * 20 + " NEW SESSION STARTED " + "―" * 20


def _drop_handlers(logger: logging.Logger, match: Callable[[logging.Handler], bool]) -> None:
    for handler in list(logger.handlers):
        if match(handler):
            logger.removeHandler(handler)
            handler.close()


def _is_console_handler(handler: logging.Handler) -> bool:
    return isinstance(handler, logging.StreamHandler) and not isinstance(
        handler, logging.FileHandler
    )


def _package_levels() -> dict[str, int]:
    levels = getattr(LOGGING, "pkg_console_levels", None)
    if levels is None:
        return {}
    return dict(vars(levels))


def enable_logging_handlers(
    file_level: Optional[int] = None,
    console_level: Optional[int] = None,
    pkg_console_levels: Optional[Mapping[str, int]] = None,
    logs_dir: Optional[str | Path] = None,
) -> Path:
    """Send log records to a `rich` console handler and a rotating log file.

    Any console or rotating file handler already on the root logger is
    replaced, so calling this more than once is harmless. Arguments that are
    not given take their values from `logging.yml`.

    Arguments:
        file_level: Level of the file handler.
        console_level: Level of the console handler.
        pkg_console_levels: Levels of individual loggers, e.g. `{"jax": logging.WARNING}`
            to quieten a chatty dependency.
        logs_dir: Directory of the log file.

    Returns:
        The path of the log file.
    """
    if file_level is None:
        file_level = LOGGING.file_level
    if console_level is None:
        console_level = LOGGING.console_level
    if pkg_console_levels is None:
        pkg_console_levels = _package_levels()

    log_dir = Path(logs_dir or LOGGING.logs_dir).expanduser().resolve()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(min(file_level, console_level))

    _drop_handlers(root, lambda h: isinstance(h, RotatingFileHandler))
    file_handler = RotatingFileHandler(
        filename=str(log_path),
        maxBytes=LOGGING.max_bytes,
        backupCount=LOGGING.backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(LOGGING.file_format_str))
    root.addHandler(file_handler)

    _drop_handlers(root, _is_console_handler)
    console_handler = RichHandler(level=console_level)
    console_handler.setFormatter(logging.Formatter(LOGGING.console_format_str))
    root.addHandler(console_handler)

    for name, level in pkg_console_levels.items():
        logging.getLogger(name).setLevel(level)

    root.info(SESSION_START_BANNER)
    root.info("Logging to %s", log_path)

    logging.captureWarnings(True)
    return log_path
