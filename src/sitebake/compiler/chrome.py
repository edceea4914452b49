"""Shared header/footer resolution plus layout classes and theme."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable, Pattern, Sequence

from sitebake.core.config import CompilerSettings
from sitebake.core.logging import get_logger

from .dependencies import import_map
from .models import ChromeFragments, SanitizedFragment, SourceFile
from .paths import PathResolver, ProjectIndex
from .sanitizer import declares, detect_primary_export_name, sanitize

__all__ = [
    "Chrome",
    "ChromeResolver",
    "ChromeSlot",
    "FOOTER_SLOT",
    "HEADER_SLOT",
    "ResolvedChrome",
    "aliased_fragment",
    "component_tag_used",
    "extract_class_name",
    "merge_class_names",
    "normalize_class_tokens",
    "stub_fragment",
    "uses_dark_theme",
]


@dataclass(frozen=True, slots=True)
class ChromeSlot:
    """Expected name and lookup hints for one chrome view."""

    expected_name: str
    name_pattern: Pattern[str]


HEADER_SLOT = ChromeSlot(
    expected_name="Navbar",
    name_pattern=re.compile(r"\b(navbar|header|topbar|navigation|menu)\b", re.IGNORECASE),
)
FOOTER_SLOT = ChromeSlot(
    expected_name="Footer",
    name_pattern=re.compile(r"\bfooter\b", re.IGNORECASE),
)


@dataclass(frozen=True, slots=True)
class ResolvedChrome:
    """A chrome file and the local name it was imported under."""

    file: SourceFile
    local_name: str
    expected_name: str
    fragment: SanitizedFragment

    def used_by(self, page_source: str) -> bool:
        """Whether ``page_source`` already renders this view itself."""

        names = {self.expected_name, self.local_name}
        return any(component_tag_used(page_source, name) for name in names)


@dataclass(frozen=True, slots=True)
class Chrome:
    """Resolved header and footer for a whole project."""

    header: ResolvedChrome | None = None
    footer: ResolvedChrome | None = None

    @property
    def files(self) -> tuple[SourceFile, ...]:
        return tuple(item.file for item in (self.header, self.footer) if item)

    def fragments(self) -> ChromeFragments:
        return ChromeFragments(
            header=(
                self.header.fragment
                if self.header
                else stub_fragment(HEADER_SLOT.expected_name)
            ),
            footer=(
                self.footer.fragment
                if self.footer
                else stub_fragment(FOOTER_SLOT.expected_name)
            ),
        )

    def renders_header(self, page_source: str) -> bool:
        return self.header is not None and not self.header.used_by(page_source)

    def renders_footer(self, page_source: str) -> bool:
        return self.footer is not None and not self.footer.used_by(page_source)


def component_tag_used(source: str, name: str) -> bool:
    """Return whether ``source`` contains a ``<Name`` markup tag.

    Example:
        >>> component_tag_used("<main><Navbar /></main>", "Navbar")
        True
        >>> component_tag_used("<NavbarLinks />", "Navbar")
        False
    """

    return re.search(rf"<\s*{re.escape(name)}(?:\s|/|>)", source) is not None


def stub_fragment(name: str) -> SanitizedFragment:
    """Inert view used when a project has no header or footer."""

    return SanitizedFragment(text=f"function {name}() {{ return null; }}")


def aliased_fragment(file: SourceFile, expected_name: str) -> SanitizedFragment:
    """Sanitize ``file`` and bind ``expected_name`` to its primary export.

    Nothing is appended when the file already declares ``expected_name`` or
    no export name can be detected.
    """

    text = sanitize(file.content)
    if not declares(text, expected_name):
        export_name = detect_primary_export_name(file.content, text)
        if export_name and export_name != expected_name:
            text = f"{text}\n\nconst {expected_name} = {export_name};"
    return SanitizedFragment(text=text, source_path=file.normalized_path)


class ChromeResolver:
    """Locate the header and footer views of a project.

    Lookup order per view: the home page's imports (expected name first,
    then any local name matching the view's pattern), the layout file's
    imports, then conventional component paths.
    """

    def __init__(
        self,
        resolver: PathResolver,
        settings: CompilerSettings | None = None,
    ) -> None:
        self._resolver = resolver
        self._settings = settings or CompilerSettings()
        self._logger = get_logger(__name__, component="chrome")

    def resolve(
        self,
        index: ProjectIndex,
        *,
        home: SourceFile,
        layout: SourceFile | None = None,
    ) -> Chrome:
        return Chrome(
            header=self.resolve_slot(index, HEADER_SLOT, home=home, layout=layout),
            footer=self.resolve_slot(index, FOOTER_SLOT, home=home, layout=layout),
        )

    def resolve_slot(
        self,
        index: ProjectIndex,
        slot: ChromeSlot,
        *,
        home: SourceFile,
        layout: SourceFile | None = None,
    ) -> ResolvedChrome | None:
        for source in (home, layout):
            if source is None:
                continue
            found = self._from_imports(index, source, slot)
            if found is not None:
                file, local_name = found
                return self._finish(file, local_name, slot, origin=source.normalized_path)

        fallback = index.first(self.fallback_candidates(slot))
        if fallback is not None:
            return self._finish(fallback, slot.expected_name, slot, origin="fallback")

        self._logger.debug("chrome-stub", slot=slot.expected_name)
        return None

    def fallback_candidates(self, slot: ChromeSlot) -> list[str]:
        """Conventional file paths checked when no import names the view."""

        name = slot.expected_name
        app_dir = self._settings.app_dir
        return self._resolver.candidates_for(
            [f"components/{name}"], include_lowercase=True
        ) + self._resolver.candidates_for([f"{app_dir}/components/{name}"])

    def _from_imports(
        self,
        index: ProjectIndex,
        source: SourceFile,
        slot: ChromeSlot,
    ) -> tuple[SourceFile, str] | None:
        imports = import_map(source.content)

        specifier = imports.get(slot.expected_name)
        if specifier is not None:
            target = self._resolver.resolve_import(
                index, source.normalized_path, specifier
            ).target
            if target is not None:
                return target, slot.expected_name

        for local_name, specifier in imports.items():
            if not slot.name_pattern.search(local_name):
                continue
            target = self._resolver.resolve_import(
                index, source.normalized_path, specifier
            ).target
            if target is not None:
                return target, local_name
        return None

    def _finish(
        self,
        file: SourceFile,
        local_name: str,
        slot: ChromeSlot,
        *,
        origin: str,
    ) -> ResolvedChrome:
        fragment = aliased_fragment(file, slot.expected_name)
        self._logger.debug(
            "chrome-resolved",
            slot=slot.expected_name,
            path=file.normalized_path,
            local_name=local_name,
            origin=origin,
        )
        return ResolvedChrome(
            file=file,
            local_name=local_name,
            expected_name=slot.expected_name,
            fragment=fragment,
        )


_INTERPOLATION_RE = re.compile(r"\$\{[^}]+\}")
_CLASS_VALUE_RES = (
    re.compile(r'className\s*=\s*"([^"]*)"', re.IGNORECASE),
    re.compile(r"className\s*=\s*'([^']*)'", re.IGNORECASE),
    re.compile(r'className\s*=\s*\{\s*"([^"]*)"\s*\}', re.IGNORECASE),
    re.compile(r"className\s*=\s*\{\s*'([^']*)'\s*\}", re.IGNORECASE),
    re.compile(r"className\s*=\s*\{\s*`([\s\S]*?)`\s*\}", re.IGNORECASE),
)


def normalize_class_tokens(raw: str) -> str:
    """Collapse a class attribute value, dropping template interpolations."""

    text = _INTERPOLATION_RE.sub(" ", raw)
    text = re.sub(r"[{}]", " ", text)
    return " ".join(text.split())


def extract_class_name(source: str, tag: str) -> str:
    """Return the static ``className`` of the first ``<tag ...>`` in ``source``.

    Example:
        >>> extract_class_name('<html lang="en" className="scroll-smooth">', "html")
        'scroll-smooth'
    """

    match = re.search(rf"<{re.escape(tag)}\b[^>]*>", source, re.IGNORECASE)
    if not match:
        return ""
    opening = match.group(0)
    for pattern in _CLASS_VALUE_RES:
        value = pattern.search(opening)
        if value and value.group(1):
            return normalize_class_tokens(value.group(1))
    return ""


def merge_class_names(*values: str | None) -> str:
    """Join class strings keeping the first occurrence of each token."""

    tokens: Iterable[str] = (
        token for value in values if value for token in value.split()
    )
    return " ".join(dict.fromkeys(tokens))


def uses_dark_theme(source: str | None, markers: Sequence[str]) -> bool:
    if not source:
        return False
    return any(marker in source for marker in markers)
