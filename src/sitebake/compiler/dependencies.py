"""Transitive same-project dependency collection."""

from __future__ import annotations

from collections import deque
import re
from typing import Iterable, Sequence

from sitebake.core.logging import get_logger

from .models import DependencyClosure, ImportEdge, SourceFile
from .paths import PathResolver, ProjectIndex

__all__ = [
    "DependencyCollector",
    "import_map",
    "scan_import_specifiers",
]

_IDENT = r"[A-Za-z_$][\w$]*"

_FROM_IMPORT_RE = re.compile(
    r"""\bimport\s+([^;'"]*?)\s*\bfrom\s*["']([^"'\n]+)["']"""
)
_SIDE_EFFECT_IMPORT_RE = re.compile(r"""\bimport\s*["']([^"'\n]+)["']""")
_REEXPORT_RE = re.compile(
    rf"""\bexport\s+(?:type\s+)?(?:\*(?:\s+as\s+{_IDENT})?|\{{[^}}]*\}})\s*from\s*["']([^"'\n]+)["']"""
)
_DEFAULT_BINDING_RE = re.compile(rf"^(?:type\s+)?({_IDENT})\b")
_NAMED_BLOCK_RE = re.compile(r"\{([^}]*)\}")
_ALIASED_NAME_RE = re.compile(rf"^(?:type\s+)?({_IDENT})\s+as\s+({_IDENT})$")
_PLAIN_NAME_RE = re.compile(rf"^(?:type\s+)?({_IDENT})$")


def scan_import_specifiers(source: str) -> tuple[str, ...]:
    """Return every import and re-export specifier in ``source``.

    Example:
        >>> scan_import_specifiers('import A from "./a";\\nimport "./b.css";')
        ('./a', './b.css')
    """

    found: list[str] = []
    found.extend(match.group(2) for match in _FROM_IMPORT_RE.finditer(source))
    found.extend(match.group(1) for match in _SIDE_EFFECT_IMPORT_RE.finditer(source))
    found.extend(match.group(1) for match in _REEXPORT_RE.finditer(source))
    return tuple(dict.fromkeys(spec.strip() for spec in found if spec.strip()))


def import_map(source: str) -> dict[str, str]:
    """Map each locally bound import name to its specifier.

    Covers ``import Foo from``, ``import { A, B as C } from`` and the mixed
    ``import Foo, { A } from`` form. Namespace imports are ignored.

    Example:
        >>> import_map('import Nav, { Foot as Footer } from "./chrome";')
        {'Nav': './chrome', 'Footer': './chrome'}
    """

    mapping: dict[str, str] = {}
    for match in _FROM_IMPORT_RE.finditer(source):
        clause = match.group(1).strip()
        specifier = match.group(2).strip()

        default = _DEFAULT_BINDING_RE.match(clause)
        if default and default.group(1) != "type" and not clause.startswith("{"):
            mapping[default.group(1)] = specifier

        named = _NAMED_BLOCK_RE.search(clause)
        if not named:
            continue
        for raw_name in named.group(1).split(","):
            name = raw_name.strip()
            if not name:
                continue
            aliased = _ALIASED_NAME_RE.match(name)
            if aliased:
                mapping[aliased.group(2)] = specifier
                continue
            plain = _PLAIN_NAME_RE.match(name)
            if plain:
                mapping[plain.group(1)] = specifier
    return mapping


class DependencyCollector:
    """Breadth-first closure over import edges between project files."""

    def __init__(self, resolver: PathResolver) -> None:
        self._resolver = resolver
        self._logger = get_logger(__name__, component="dependencies")

    def collect(
        self,
        index: ProjectIndex,
        entries: Sequence[SourceFile] | Iterable[SourceFile],
    ) -> DependencyClosure:
        """Return the files reachable from ``entries``, entries excluded.

        Only targets with a component-source extension are followed. Each
        normalized path is scanned at most once, so cycles terminate.
        """

        entry_files = tuple(entries)
        entry_paths = {item.normalized_path for item in entry_files}
        queue: deque[SourceFile] = deque(entry_files)
        scanned: set[str] = set()
        collected: dict[str, SourceFile] = {}
        unresolved: list[ImportEdge] = []

        while queue:
            current = queue.popleft()
            if current.normalized_path in scanned:
                continue
            scanned.add(current.normalized_path)

            for specifier in scan_import_specifiers(current.content):
                resolved = self._resolver.resolve_import(
                    index, current.normalized_path, specifier
                )
                target = resolved.target
                if target is None:
                    if resolved.candidates:
                        unresolved.append(resolved.edge)
                        self._logger.debug(
                            "import-unresolved",
                            source=current.normalized_path,
                            specifier=specifier,
                        )
                    continue
                if not self._resolver.has_source_extension(target.normalized_path):
                    continue
                if (
                    target.normalized_path not in entry_paths
                    and target.normalized_path not in collected
                ):
                    collected[target.normalized_path] = target
                if target.normalized_path not in scanned:
                    queue.append(target)

        files = tuple(collected[path] for path in sorted(collected))
        self._logger.debug(
            "dependency-closure",
            entries=[item.normalized_path for item in entry_files],
            files=[item.normalized_path for item in files],
            unresolved=len(unresolved),
        )
        return DependencyClosure(
            entries=entry_files,
            files=files,
            unresolved=tuple(unresolved),
        )
