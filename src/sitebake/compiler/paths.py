"""Path normalization and import-specifier resolution.

Resolution never touches the filesystem: :meth:`PathResolver.resolve` turns
an import specifier into an ordered candidate list and
:class:`ProjectIndex` matches candidates against the known files.
"""

from __future__ import annotations

import re
from typing import Iterable, Pattern, Sequence

from sitebake.core.config import CompilerSettings

from .models import ImportEdge, ProjectFile, ResolvedImport, SourceFile

__all__ = [
    "PathResolver",
    "ProjectIndex",
    "normalize_path",
    "resolve_relative",
]

# Suffixes that already name a concrete file and must not be expanded.
_ASSET_EXTENSIONS = frozenset(
    {
        "css",
        "scss",
        "sass",
        "less",
        "json",
        "svg",
        "png",
        "jpg",
        "jpeg",
        "gif",
        "webp",
        "avif",
        "ico",
        "md",
        "mdx",
        "mjs",
        "cjs",
    }
)
_SUFFIX_RE = re.compile(r"\.([A-Za-z0-9]+)$")


def normalize_path(path: str, *, source_root_prefix: str = "src/") -> str:
    """Return the forward-slash project path with the source root removed.

    The function strips leading ``./`` segments and the source-root prefix
    until neither applies, so applying it twice changes nothing.

    Example:
        >>> normalize_path("./src/app/page.tsx")
        'app/page.tsx'
        >>> normalize_path("app\\\\components\\\\Navbar.tsx")
        'app/components/Navbar.tsx'
    """

    normalized = path.replace("\\", "/")
    while True:
        if normalized.startswith("./"):
            normalized = normalized[2:]
        elif source_root_prefix and normalized.startswith(source_root_prefix):
            normalized = normalized[len(source_root_prefix) :]
        else:
            return normalized


def _directory(path: str) -> str:
    idx = path.rfind("/")
    return "" if idx == -1 else path[:idx]


def resolve_relative(from_path: str, specifier: str) -> str:
    """Apply ``specifier``'s ``.``/``..`` segments to ``from_path``'s directory.

    Example:
        >>> resolve_relative("app/about/page.tsx", "../components/Navbar")
        'app/components/Navbar'
    """

    if not specifier.startswith("."):
        return specifier

    stack = [part for part in _directory(from_path).split("/") if part]
    for part in specifier.split("/"):
        if not part or part == ".":
            continue
        if part == "..":
            if stack:
                stack.pop()
            continue
        stack.append(part)
    return "/".join(stack)


class ProjectIndex:
    """Lookup table from normalized path to :class:`SourceFile`.

    When two files normalize to the same path the first one wins.
    """

    def __init__(self, files: Iterable[SourceFile]) -> None:
        self._files: tuple[SourceFile, ...] = tuple(files)
        self._by_path: dict[str, SourceFile] = {}
        for item in self._files:
            self._by_path.setdefault(item.normalized_path, item)

    @property
    def files(self) -> tuple[SourceFile, ...]:
        return self._files

    def __contains__(self, normalized_path: object) -> bool:
        return normalized_path in self._by_path

    def __len__(self) -> int:
        return len(self._by_path)

    def get(self, normalized_path: str) -> SourceFile | None:
        return self._by_path.get(normalized_path)

    def first(self, candidates: Iterable[str]) -> SourceFile | None:
        """Return the file matching the earliest candidate, if any."""

        for candidate in candidates:
            match = self._by_path.get(candidate)
            if match is not None:
                return match
        return None

    def first_matching(self, pattern: Pattern[str]) -> SourceFile | None:
        for item in self._files:
            if pattern.search(item.normalized_path):
                return item
        return None

    def matching(self, pattern: Pattern[str]) -> tuple[SourceFile, ...]:
        return tuple(
            item for item in self._files if pattern.search(item.normalized_path)
        )


class PathResolver:
    """Turn import specifiers into ordered file-path candidates."""

    def __init__(self, settings: CompilerSettings | None = None) -> None:
        self._settings = settings or CompilerSettings()
        self._app_prefix = f"{self._settings.app_dir}/"

    @property
    def extensions(self) -> tuple[str, ...]:
        return self._settings.extensions

    def normalize(self, path: str) -> str:
        return normalize_path(
            path, source_root_prefix=self._settings.source_root_prefix
        )

    def index(self, files: Iterable[ProjectFile]) -> ProjectIndex:
        """Normalize every file and build a :class:`ProjectIndex`."""

        return ProjectIndex(
            SourceFile(file=item, normalized_path=self.normalize(item.path))
            for item in files
        )

    def has_source_extension(self, path: str) -> bool:
        match = _SUFFIX_RE.search(path)
        return bool(match) and match.group(1).lower() in self.extensions

    def _has_explicit_extension(self, path: str) -> bool:
        match = _SUFFIX_RE.search(path)
        if not match:
            return False
        suffix = match.group(1).lower()
        return suffix in self.extensions or suffix in _ASSET_EXTENSIONS

    def _root_variants(self, stripped: str) -> list[str]:
        if not stripped:
            return []
        if stripped.startswith(self._app_prefix):
            return [stripped, stripped[len(self._app_prefix) :]]
        return [stripped, f"{self._app_prefix}{stripped}"]

    def base_paths(self, from_path: str, specifier: str) -> list[str]:
        """Return resolved base paths before extension expansion."""

        bases: list[str] = []
        if specifier.startswith("."):
            bases.append(resolve_relative(from_path, specifier))
        elif any(specifier.startswith(p) for p in self._settings.alias_prefixes):
            prefix = next(
                p for p in self._settings.alias_prefixes if specifier.startswith(p)
            )
            bases.extend(self._root_variants(specifier[len(prefix) :]))
        elif specifier.startswith("/"):
            bases.extend(self._root_variants(specifier[1:]))
        elif specifier.startswith(self._app_prefix):
            bases.extend(
                [specifier, specifier[len(self._app_prefix) :]]
            )
        elif specifier.startswith("components/"):
            bases.extend([specifier, f"{self._app_prefix}{specifier}"])

        normalized = (self.normalize(base) for base in bases)
        return list(dict.fromkeys(path for path in normalized if path))

    def expand(self, base_path: str) -> list[str]:
        """Expand one base path into exact, extension and index candidates."""

        if self._has_explicit_extension(base_path):
            return [base_path]
        candidates = [base_path]
        candidates.extend(f"{base_path}.{ext}" for ext in self.extensions)
        candidates.extend(
            f"{base_path}/index.{ext}" for ext in self.extensions
        )
        return candidates

    def resolve(self, from_path: str, specifier: str) -> list[str]:
        """Return every candidate path for ``specifier`` in match order.

        Example:
            >>> PathResolver().resolve("app/page.tsx", "./Hero")[:3]
            ['app/Hero', 'app/Hero.tsx', 'app/Hero.jsx']
        """

        candidates: list[str] = []
        for base in self.base_paths(from_path, specifier):
            candidates.extend(self.expand(base))
        return list(dict.fromkeys(candidates))

    def resolve_import(
        self,
        index: ProjectIndex,
        from_path: str,
        specifier: str,
    ) -> ResolvedImport:
        """Resolve ``specifier`` against ``index``; no match is not an error."""

        candidates = tuple(self.resolve(from_path, specifier))
        return ResolvedImport(
            edge=ImportEdge(from_path=from_path, specifier=specifier),
            candidates=candidates,
            target=index.first(candidates),
        )

    def candidates_for(
        self, stems: Sequence[str], *, include_lowercase: bool = False
    ) -> list[str]:
        """Expand extension-less ``stems`` into file candidates."""

        paths: list[str] = []
        for stem in stems:
            variants = [stem]
            if include_lowercase:
                head, _, name = stem.rpartition("/")
                lowered = f"{head}/{name.lower()}" if head else name.lower()
                variants.append(lowered)
            for variant in variants:
                paths.extend(f"{variant}.{ext}" for ext in self.extensions)
        return list(dict.fromkeys(paths))
