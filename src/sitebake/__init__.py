"""Top-level package for :mod:`sitebake`.

``sitebake`` compiles a generated multi-file component project into
self-contained static HTML documents.

Example:
    >>> from sitebake import __version__
    >>> __version__.split(".")[0].isdigit()
    True
"""

from importlib import metadata

try:
    __version__ = metadata.version("sitebake")
except metadata.PackageNotFoundError:  # pragma: no cover - fallback for editable installs
    __version__ = "0.0.0"

__all__ = ["__version__"]
