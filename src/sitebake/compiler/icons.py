"""Icon data embedded into documents.

Two sources feed the runtime: a packaged set of common icon names and
stroke paths (``icons.toml``) and, optionally, an icon library bundle whose
``createLucideIcon("Name", [...])`` definitions give exact vector nodes for
icons a page actually renders.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import json
from pathlib import Path
import re
from types import MappingProxyType
from typing import Mapping

import tomllib

from sitebake.core.logging import get_logger
from sitebake.resources import read_resource_text

from .literals import extract_balanced

__all__ = [
    "ICONS_RESOURCE_NAME",
    "IconCatalog",
    "IconSet",
    "jsx_component_names",
    "load_icon_set",
]

ICONS_RESOURCE_NAME = "icons.toml"

_CREATE_ICON_RE = re.compile(
    r'const\s+([A-Za-z_$][\w$]*)\s*=\s*createLucideIcon\(\s*"([^"]+)"\s*,\s*\['
)
_EXPORT_ALIAS_RE = re.compile(
    r"exports\.([A-Za-z_$][\w$]*)\s*=\s*([A-Za-z_$][\w$]*)\s*;"
)
_PLAIN_TAG_RE = re.compile(r"<\s*([A-Z][A-Za-z0-9_]*)\b")
_MEMBER_TAG_RE = re.compile(r"<\s*[A-Z][A-Za-z0-9_]*\.([A-Z][A-Za-z0-9_]*)\b")


@dataclass(frozen=True, slots=True)
class IconSet:
    """Packaged placeholder icons shipped with every document."""

    fallback_path: str
    names: tuple[str, ...]
    paths: Mapping[str, str]


@lru_cache(maxsize=1)
def load_icon_set() -> IconSet:
    """Load the packaged icon names and paths.

    Example:
        >>> "Menu" in load_icon_set().paths
        True
    """

    data = tomllib.loads(read_resource_text(ICONS_RESOURCE_NAME))
    return IconSet(
        fallback_path=data["fallback_path"],
        names=tuple(data.get("names", ())),
        paths=MappingProxyType(dict(data.get("paths", {}))),
    )


def jsx_component_names(code: str) -> set[str]:
    """Return capitalized tag names (and ``<Ns.Member>`` members) in ``code``."""

    names = set(_PLAIN_TAG_RE.findall(code))
    names.update(_MEMBER_TAG_RE.findall(code))
    return names


class IconCatalog:
    """Exact icon vector nodes keyed by display and export name."""

    def __init__(self, nodes: Mapping[str, str] | None = None) -> None:
        self._nodes: dict[str, str] = dict(nodes or {})

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def get(self, name: str) -> str | None:
        return self._nodes.get(name)

    @classmethod
    def from_source(cls, source: str) -> "IconCatalog":
        """Scan an icon library bundle for icon definitions.

        Each definition is indexed under its variable and display names;
        ``exports.Alias = Variable;`` lines add further names.
        """

        nodes: dict[str, str] = {}
        by_variable: dict[str, str] = {}
        for match in _CREATE_ICON_RE.finditer(source):
            literal = extract_balanced(source, match.end() - 1, "[", "]")
            if literal is None:
                continue
            variable, display = match.group(1), match.group(2)
            by_variable[variable] = literal
            nodes[display] = literal
            nodes[variable] = literal

        for match in _EXPORT_ALIAS_RE.finditer(source):
            literal = by_variable.get(match.group(2))
            if literal is not None:
                nodes[match.group(1)] = literal
        return cls(nodes)

    @classmethod
    def from_path(cls, path: Path | None) -> "IconCatalog":
        """Load a catalog from disk; an unreadable bundle yields an empty one."""

        if path is None:
            return cls()
        try:
            source = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            get_logger(__name__, component="icons").warning(
                "icon-library-unreadable",
                path=str(path),
                error=str(exc),
            )
            return cls()
        return cls.from_source(source)

    def used_names(self, code: str) -> list[str]:
        return sorted(name for name in jsx_component_names(code) if name in self)

    def assignments(self, code: str) -> str:
        """Return runtime statements defining every catalogued icon ``code`` uses."""

        lines: list[str] = []
        for name in self.used_names(code):
            label = json.dumps(name)
            lines.append(
                f"window[{label}] = createLucideIconFromNode({label}, {self._nodes[name]});"
            )
        return "\n".join(lines)

