"""Core utilities shared across :mod:`sitebake` modules.

The core namespace provides configuration loading and logging setup so the
compiler modules stay free of process-level concerns.

Example:
    >>> from sitebake.core import get_logger
    >>> logger = get_logger(__name__)
    >>> isinstance(logger, object)
    True
"""

from __future__ import annotations

from .config import (
    AppConfig,
    CdnSettings,
    CompilerSettings,
    RuntimeSettings,
    load_config,
)
from .logging import configure_logging, get_logger

__all__ = [
    "AppConfig",
    "CdnSettings",
    "CompilerSettings",
    "RuntimeSettings",
    "configure_logging",
    "get_logger",
    "load_config",
]
