"""High-level compile orchestration for a whole project."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from types import MappingProxyType
from typing import Iterable, Mapping

from sitebake.core.config import AppConfig
from sitebake.core.logging import get_logger

from .bundle import BundleAssembler
from .chrome import (
    Chrome,
    ChromeResolver,
    extract_class_name,
    merge_class_names,
    uses_dark_theme,
)
from .dependencies import DependencyCollector
from .document import DocumentBuilder
from .errors import MissingEntryFileError
from .literals import extract_config_literal
from .models import (
    CompileResult,
    CompositionPlan,
    DependencyClosure,
    OutputDocument,
    PageMetadata,
    ProjectFile,
    SourceFile,
)
from .paths import PathResolver, ProjectIndex
from .sanitizer import detect_primary_export_name, sanitize_fragment

__all__ = [
    "FALLBACK_PAGE_COMPONENT",
    "PagePlan",
    "SitePlan",
    "SiteCompiler",
    "route_for_segments",
]

FALLBACK_PAGE_COMPONENT = "SubPage"

_ROUTE_GROUP_RE = re.compile(r"^\(.+\)$")


def route_for_segments(segments: str, *, strip_groups: bool = True) -> str:
    """Return the route-relative path for a sub-page directory.

    Example:
        >>> route_for_segments("(marketing)/pricing")
        'pricing'
    """

    parts = [part for part in segments.split("/") if part]
    if strip_groups:
        parts = [part for part in parts if not _ROUTE_GROUP_RE.match(part)]
    return "/".join(parts)


@dataclass(frozen=True, slots=True)
class PagePlan:
    """One page to emit: its entry file, route and dependency closure."""

    file: SourceFile
    route_path: str
    output_path: str
    title: str
    closure: DependencyClosure
    composition: CompositionPlan


@dataclass(frozen=True, slots=True)
class SitePlan:
    """Everything decided about a project before any document is rendered."""

    title: str
    chrome: Chrome
    layout: SourceFile | None
    metadata: PageMetadata
    styles: str
    config_literal: str
    config_source: str | None
    pages: tuple[PagePlan, ...]
    dependencies: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )


class SiteCompiler:
    """Compile a project's files into one document per page.

    Example:
        >>> files = [ProjectFile("app/page.tsx", "export default function Home() { return <main/>; }")]
        >>> result = SiteCompiler().compile(files, title="Demo")
        >>> [doc.output_path for doc in result.documents]
        ['index.html']
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        builder: DocumentBuilder | None = None,
    ) -> None:
        self._config = config or AppConfig()
        self._settings = self._config.compiler
        self._resolver = PathResolver(self._settings)
        self._chrome = ChromeResolver(self._resolver, self._settings)
        self._collector = DependencyCollector(self._resolver)
        self._assembler = BundleAssembler()
        self._builder = builder
        self._logger = get_logger(__name__, component="compiler")

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def resolver(self) -> PathResolver:
        return self._resolver

    def _document_builder(self) -> DocumentBuilder:
        if self._builder is None:
            self._builder = DocumentBuilder(self._config)
        return self._builder

    def site_title(self, title: str | None = None) -> str:
        for candidate in (title, self._config.title):
            if candidate and candidate.strip():
                return candidate.strip()
        return self._settings.default_title

    def find_home(self, index: ProjectIndex) -> SourceFile:
        """Return the home-page entry file.

        Raises:
            MissingEntryFileError: If the project has no home page.
        """

        app_dir = self._settings.app_dir
        home = index.first(self._resolver.candidates_for([f"{app_dir}/page"]))
        if home is None:
            raise MissingEntryFileError("Missing essential files: homepage")
        return home

    def find_layout(self, index: ProjectIndex) -> SourceFile | None:
        app_dir = self._settings.app_dir
        return index.first(self._resolver.candidates_for([f"{app_dir}/layout"]))

    def sub_pages(
        self, index: ProjectIndex, home: SourceFile
    ) -> list[tuple[SourceFile, str]]:
        """Return ``(file, route segments)`` for every non-home page."""

        extensions = "|".join(re.escape(ext) for ext in self._resolver.extensions)
        pattern = re.compile(
            rf"^{re.escape(self._settings.app_dir)}/(.+)/page\.(?:{extensions})$"
        )
        pages: list[tuple[SourceFile, str]] = []
        seen: set[str] = set()
        for item in sorted(index.matching(pattern), key=lambda f: f.normalized_path):
            if item.normalized_path == home.normalized_path:
                continue
            match = pattern.match(item.normalized_path)
            if match is None:
                continue
            segments = route_for_segments(
                match.group(1), strip_groups=self._settings.strip_route_groups
            )
            if not segments or segments in seen:
                self._logger.warning(
                    "page-route-conflict",
                    path=item.normalized_path,
                    route=f"/{segments}",
                )
                continue
            seen.add(segments)
            pages.append((item, segments))
        return pages

    def config_literal(self, index: ProjectIndex) -> tuple[str, str | None]:
        """Return the utility-CSS config literal and the file it came from.

        Falls back to the configured default literal when no config module
        exists or its literal cannot be extracted.
        """

        config_file = index.first(self._settings.config_file_candidates)
        if config_file is None:
            return self._settings.default_config_literal, None
        literal = extract_config_literal(config_file.content)
        if literal is None:
            self._logger.warning(
                "config-literal-fallback",
                path=config_file.normalized_path,
            )
            return self._settings.default_config_literal, config_file.normalized_path
        return literal, config_file.normalized_path

    def global_styles(self, index: ProjectIndex) -> str:
        css_file = index.first(self._settings.globals_css_candidates)
        return css_file.content if css_file is not None else ""

    def page_metadata(
        self,
        title: str,
        chrome: Chrome,
        layout: SourceFile | None,
    ) -> PageMetadata:
        layout_source = layout.content if layout is not None else ""
        header_source = chrome.header.file.content if chrome.header else None
        dark = uses_dark_theme(header_source, self._settings.dark_theme_markers)
        return PageMetadata(
            title=title,
            html_class=merge_class_names(
                extract_class_name(layout_source, "html"),
                "dark" if dark else None,
            ),
            body_class=extract_class_name(layout_source, "body"),
            dark=dark,
        )

    def _page_plan(
        self,
        index: ProjectIndex,
        chrome: Chrome,
        page: SourceFile,
        *,
        route_path: str,
        output_path: str,
        title: str,
    ) -> PagePlan:
        closure = self._collector.collect(index, [page, *chrome.files])
        fragment = sanitize_fragment(page.content, page.normalized_path)
        component = (
            detect_primary_export_name(page.content, fragment.text)
            or FALLBACK_PAGE_COMPONENT
        )
        composition = CompositionPlan(
            page_component=component,
            render_header=chrome.renders_header(page.content),
            render_footer=chrome.renders_footer(page.content),
        )
        return PagePlan(
            file=page,
            route_path=route_path,
            output_path=output_path,
            title=title,
            closure=closure,
            composition=composition,
        )

    def plan(
        self,
        files: Iterable[ProjectFile],
        title: str | None = None,
        dependencies: Mapping[str, str] | None = None,
    ) -> SitePlan:
        """Resolve pages, chrome, closures and metadata without rendering.

        Raises:
            MissingEntryFileError: If the project has no home page.
        """

        index = self._resolver.index(files)
        home = self.find_home(index)
        layout = self.find_layout(index)
        chrome = self._chrome.resolve(index, home=home, layout=layout)
        site_title = self.site_title(title)
        literal, config_source = self.config_literal(index)

        pages = [
            self._page_plan(
                index,
                chrome,
                home,
                route_path="/",
                output_path="index.html",
                title=site_title,
            )
        ]
        for page, segments in self.sub_pages(index, home):
            pages.append(
                self._page_plan(
                    index,
                    chrome,
                    page,
                    route_path=f"/{segments}",
                    output_path=f"{segments}/index.html",
                    title=f"{site_title} - {segments[:1].upper()}{segments[1:]}",
                )
            )

        return SitePlan(
            title=site_title,
            chrome=chrome,
            layout=layout,
            metadata=self.page_metadata(site_title, chrome, layout),
            styles=self.global_styles(index),
            config_literal=literal,
            config_source=config_source,
            pages=tuple(pages),
            dependencies=MappingProxyType(dict(dependencies or {})),
        )

    def render_page(self, site: SitePlan, page: PagePlan) -> OutputDocument:
        dependency_fragments = [
            sanitize_fragment(item.content, item.normalized_path)
            for item in page.closure
        ]
        bundle = self._assembler.assemble(
            site.chrome.fragments(),
            dependency_fragments,
            sanitize_fragment(page.file.content, page.file.normalized_path),
            page.composition,
        )
        metadata = PageMetadata(
            title=page.title,
            html_class=site.metadata.html_class,
            body_class=site.metadata.body_class,
            dark=site.metadata.dark,
        )
        return self._document_builder().build(
            bundle,
            metadata,
            site.styles,
            site.config_literal,
            route_path=page.route_path,
            output_path=page.output_path,
        )

    def compile(
        self,
        files: Iterable[ProjectFile],
        title: str | None = None,
        dependencies: Mapping[str, str] | None = None,
    ) -> CompileResult:
        """Compile ``files`` into one :class:`OutputDocument` per page.

        Args:
            files: Project files as produced upstream.
            title: Site title; falls back to the configured title.
            dependencies: Dependency-version map, passed through unchanged.

        Raises:
            MissingEntryFileError: If the project has no home page.
        """

        site = self.plan(files, title=title, dependencies=dependencies)
        documents = tuple(self.render_page(site, page) for page in site.pages)
        self._logger.info(
            "compile-complete",
            title=site.title,
            documents=len(documents),
            header=site.chrome.header.file.normalized_path if site.chrome.header else None,
            footer=site.chrome.footer.file.normalized_path if site.chrome.footer else None,
        )
        return CompileResult(documents=documents, dependencies=site.dependencies)
