"""Domain-specific exceptions for :mod:`sitebake`."""

from __future__ import annotations


class SitebakeError(RuntimeError):
    """Base error for every failure surfaced to callers."""


class CompilerError(SitebakeError):
    """Base error for compile-time failures."""


class MissingEntryFileError(CompilerError):
    """Raised when no recognizable home-page file exists in the project."""


class MissingPageFragmentError(CompilerError):
    """Raised when a bundle is assembled without a page fragment."""


class ProjectLoadError(SitebakeError):
    """Raised when project input cannot be read or validated."""


__all__ = [
    "SitebakeError",
    "CompilerError",
    "MissingEntryFileError",
    "MissingPageFragmentError",
    "ProjectLoadError",
]
