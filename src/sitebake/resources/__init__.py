"""Packaged resource helpers for :mod:`sitebake`."""

from __future__ import annotations

from importlib import resources
from importlib.resources.abc import Traversable


def get_resource(relative_path: str) -> Traversable:
    """Return a traversable handle to a packaged resource.

    Example:
        >>> get_resource("sitebake.defaults.toml").name
        'sitebake.defaults.toml'
    """

    candidate = resources.files(__package__)
    for part in relative_path.split("/"):
        candidate = candidate.joinpath(part)
    if not candidate.is_file():
        raise FileNotFoundError(relative_path)
    return candidate


def read_resource_text(relative_path: str) -> str:
    """Return the UTF-8 text of a packaged resource."""

    return get_resource(relative_path).read_text(encoding="utf-8")


__all__ = ["get_resource", "read_resource_text"]
