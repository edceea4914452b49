"""Immutable data carriers shared by the compiler stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Iterator, Mapping

__all__ = [
    "Bundle",
    "BundlePart",
    "ChromeFragments",
    "CompileResult",
    "CompositionPlan",
    "DependencyClosure",
    "FragmentRole",
    "ImportEdge",
    "OutputDocument",
    "PageMetadata",
    "ProjectFile",
    "ResolvedImport",
    "SanitizedFragment",
    "SourceFile",
]


@dataclass(frozen=True, slots=True)
class ProjectFile:
    """One source unit as handed over by the upstream generator."""

    path: str
    content: str


@dataclass(frozen=True, slots=True)
class SourceFile:
    """A :class:`ProjectFile` paired with its normalized path."""

    file: ProjectFile
    normalized_path: str

    @property
    def path(self) -> str:
        return self.file.path

    @property
    def content(self) -> str:
        return self.file.content


@dataclass(frozen=True, slots=True)
class ImportEdge:
    """An import statement found in a file, prior to resolution."""

    from_path: str
    specifier: str


@dataclass(frozen=True, slots=True)
class ResolvedImport:
    """An :class:`ImportEdge` with the first matching file, if any."""

    edge: ImportEdge
    candidates: tuple[str, ...]
    target: SourceFile | None = None

    @property
    def resolved(self) -> bool:
        return self.target is not None


@dataclass(frozen=True, slots=True)
class DependencyClosure:
    """Files transitively reachable from a set of entry files.

    ``files`` never contains an entry file and is sorted by normalized path.
    """

    entries: tuple[SourceFile, ...]
    files: tuple[SourceFile, ...] = ()
    unresolved: tuple[ImportEdge, ...] = ()

    def __iter__(self) -> Iterator[SourceFile]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    @property
    def paths(self) -> tuple[str, ...]:
        return tuple(item.normalized_path for item in self.files)


@dataclass(frozen=True, slots=True)
class SanitizedFragment:
    """Runtime-only text of one source file."""

    text: str
    source_path: str | None = None


class FragmentRole(StrEnum):
    """Position of a fragment inside a bundle."""

    HEADER = "header"
    DEPENDENCY = "dependency"
    PAGE = "page"
    FOOTER = "footer"


@dataclass(frozen=True, slots=True)
class CompositionPlan:
    """How the synthesized entry view wraps the page's root view."""

    page_component: str
    render_header: bool = False
    render_footer: bool = False
    header_component: str = "Navbar"
    footer_component: str = "Footer"


@dataclass(frozen=True, slots=True)
class ChromeFragments:
    """Shared header and footer fragments reused by every page."""

    header: SanitizedFragment | None = None
    footer: SanitizedFragment | None = None


@dataclass(frozen=True, slots=True)
class BundlePart:
    role: FragmentRole
    fragment: SanitizedFragment


@dataclass(frozen=True, slots=True)
class Bundle:
    """Ordered fragments plus the synthesized composition logic."""

    parts: tuple[BundlePart, ...]
    composition: str
    plan: CompositionPlan

    @property
    def text(self) -> str:
        blocks = [part.fragment.text for part in self.parts]
        blocks.append(self.composition)
        return "\n\n".join(block for block in blocks if block)

    def fragments(self, role: FragmentRole) -> tuple[SanitizedFragment, ...]:
        return tuple(
            part.fragment for part in self.parts if part.role is role
        )


@dataclass(frozen=True, slots=True)
class PageMetadata:
    """Document-level presentation details for one page."""

    title: str
    html_class: str = ""
    body_class: str = ""
    dark: bool = False


@dataclass(frozen=True, slots=True)
class OutputDocument:
    """One finished HTML document and where it is served from."""

    route_path: str
    output_path: str
    html: str
    title: str = ""


@dataclass(frozen=True, slots=True)
class CompileResult:
    """Everything produced by one compile invocation."""

    documents: tuple[OutputDocument, ...]
    dependencies: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def as_mapping(self) -> dict[str, str]:
        """Return ``{output_path: html}`` for a deployment collaborator."""

        return {doc.output_path: doc.html for doc in self.documents}

    def document(self, route_path: str) -> OutputDocument:
        """Return the document served at ``route_path``.

        Raises:
            KeyError: If no document has that route.
        """

        for doc in self.documents:
            if doc.route_path == route_path:
                return doc
        raise KeyError(route_path)
