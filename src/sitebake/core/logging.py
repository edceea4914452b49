"""Build logging for :mod:`sitebake`.

Events are structlog key/value records. They go to a Rich console on stderr
and, for ``sitebake build``, to a JSON-lines build log inside the output
directory (``<out>/logs/build.log``). Each build starts a fresh log; the
logs of the previous builds are kept gzipped as ``build.log.1.gz`` (most
recent) through ``build.log.5.gz``.
"""

from __future__ import annotations

import gzip
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import shutil
from typing import Any, Iterable, Mapping

from rich.console import Console
from rich.logging import RichHandler
import structlog

Logger = structlog.stdlib.BoundLogger

BUILD_LOG_FILENAME = "build.log"
BUILD_LOG_BACKUPS = 5

_TIMESTAMPER = structlog.processors.TimeStamper(fmt="iso", utc=True)
# Applied to records from plain ``logging`` callers (warnings, libraries).
_FOREIGN_PRE_CHAIN = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    _TIMESTAMPER,
]


def _parse_level(level: str) -> int:
    """Translate a level name such as ``"debug"`` into its numeric value.

    Raises:
        ValueError: If the level name is not recognized.
    """

    value = logging.getLevelName(level.strip().upper())
    if isinstance(value, str):  # unknown names are echoed back as strings
        raise ValueError(f"Unsupported log level: {level!r}")
    return value


def _swap_root_handlers(
    root: logging.Logger,
    handlers: Iterable[logging.Handler],
) -> None:
    for previous in list(root.handlers):
        root.removeHandler(previous)
        try:
            previous.close()
        except Exception:  # pragma: no cover - close failures are irrelevant
            pass
    for handler in handlers:
        root.addHandler(handler)


def _configure_structlog() -> None:
    structlog.reset_defaults()
    structlog.configure(
        processors=[
            *_FOREIGN_PRE_CHAIN,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _archive_build_log(source: str, dest: str) -> None:
    with open(source, "rb") as current, gzip.open(dest, "wb") as archived:
        shutil.copyfileobj(current, archived)
    Path(source).unlink(missing_ok=True)


def build_log_handler(log_file: Path, level: int) -> RotatingFileHandler:
    """Return the JSON-lines handler for one build.

    A non-empty log left by an earlier build is archived first, so
    ``log_file`` only ever holds the current build's events.
    """

    handler = RotatingFileHandler(
        log_file,
        backupCount=BUILD_LOG_BACKUPS,
        encoding="utf-8",
        delay=True,
    )
    handler.namer = lambda name: f"{name}.gz"
    handler.rotator = _archive_build_log
    if log_file.exists() and log_file.stat().st_size > 0:
        handler.doRollover()
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(sort_keys=True),
            foreign_pre_chain=_FOREIGN_PRE_CHAIN,
        )
    )
    return handler


def console_log_handler(level: int, console: Console | None = None) -> RichHandler:
    """Return the human-readable stderr handler."""

    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        markup=False,
        enable_link_path=False,
        log_time_format="%H:%M:%S",
    )
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=False),
            foreign_pre_chain=_FOREIGN_PRE_CHAIN,
        )
    )
    return handler


def configure_logging(
    *,
    level: str = "WARNING",
    log_dir: str | Path | None = None,
    console: Console | None = None,
    build_context: Mapping[str, Any] | None = None,
) -> Path | None:
    """Set up logging for one command run.

    Args:
        level: Level name applied to the root logger (case-insensitive).
        log_dir: Directory receiving the build log; no file is written
            when ``None``.
        console: Optional Rich console override, primarily for testing.
        build_context: Key/value pairs attached to every event of the run,
            such as the project being built.

    Returns:
        The build log path when one was opened.

    Raises:
        ValueError: If ``level`` is not a recognized level name.
    """

    log_level = _parse_level(level)

    root = logging.getLogger()
    root.setLevel(log_level)

    _configure_structlog()
    structlog.contextvars.clear_contextvars()
    if build_context:
        structlog.contextvars.bind_contextvars(**build_context)

    handlers: list[logging.Handler] = [console_log_handler(log_level, console)]

    log_file: Path | None = None
    if log_dir is not None:
        directory = Path(log_dir).expanduser().resolve(strict=False)
        directory.mkdir(parents=True, exist_ok=True)
        log_file = directory / BUILD_LOG_FILENAME
        handlers.append(build_log_handler(log_file, log_level))

    _swap_root_handlers(root, handlers)
    logging.captureWarnings(True)
    return log_file


def get_logger(name: str | None = None, **initial_context: Any) -> Logger:
    """Return a structured logger bound to ``initial_context``.

    Example:
        >>> logger = get_logger(__name__, component="bundle")
        >>> isinstance(logger, structlog.stdlib.BoundLogger)
        True
    """

    return structlog.get_logger(name).bind(**initial_context)


__all__ = [
    "BUILD_LOG_BACKUPS",
    "BUILD_LOG_FILENAME",
    "Logger",
    "build_log_handler",
    "configure_logging",
    "console_log_handler",
    "get_logger",
]
