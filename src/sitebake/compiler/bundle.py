"""Fragment ordering, collision aliasing and the synthesized entry view."""

from __future__ import annotations

from dataclasses import replace
import re
from typing import Sequence

from sitebake.core.logging import get_logger

from .errors import MissingPageFragmentError
from .models import (
    Bundle,
    BundlePart,
    ChromeFragments,
    CompositionPlan,
    FragmentRole,
    SanitizedFragment,
)
from .sanitizer import declared_names

__all__ = [
    "APP_COMPONENT",
    "BundleAssembler",
    "alias_suffix",
    "compose",
    "rename_identifier",
]

APP_COMPONENT = "SitebakeApp"

_SLUG_RE = re.compile(r"[^A-Za-z0-9]+")


def alias_suffix(source_path: str | None, position: int) -> str:
    """Deterministic identifier suffix for a renamed declaration."""

    if source_path:
        stem = source_path.rsplit(".", 1)[0]
        slug = _SLUG_RE.sub("_", stem).strip("_")
        if slug:
            return slug
    return f"fragment{position}"


_REFERENCE_TAIL = ("<", "/", "{", "(", "[", ",", "=", "?", ":", "&", "|", "!", ";", "...")
_REFERENCE_KEYWORD_RE = re.compile(
    r"\b(?:function|class|const|let|var|new|return|typeof|extends|case)$"
)
_REFERENCE_HEAD_RE = re.compile(r"^(?:\(|\.[A-Za-z_$]|;|\)|,|\}|\]|\s*=(?!=))")


def rename_identifier(text: str, old: str, new: str) -> str:
    """Rename ``old`` to ``new`` where it is used as an identifier.

    Occurrences are renamed only where the surrounding punctuation marks
    code rather than markup text. Member names and object keys keep their
    spelling.
    """

    pattern = re.compile(rf"(?<![\w$]){re.escape(old)}(?![\w$])")

    def _replace(match: re.Match[str]) -> str:
        before = text[: match.start()].rstrip()
        after = text[match.end() :]
        if before.endswith("...") or _REFERENCE_KEYWORD_RE.search(before):
            return new
        if before.endswith("."):
            return old
        stripped_after = after.lstrip()
        if (
            stripped_after.startswith(":")
            and not stripped_after.startswith("::")
            and not before.endswith("?")
        ):
            return old
        if before.endswith(_REFERENCE_TAIL) or not before:
            return new
        if _REFERENCE_HEAD_RE.match(after):
            return new
        return old

    return pattern.sub(_replace, text)


def compose(plan: CompositionPlan) -> str:
    """Return the entry view and the mount statement for ``plan``.

    Example:
        >>> print(compose(CompositionPlan(page_component="Home")))  # doctest: +NORMALIZE_WHITESPACE
        function SitebakeApp() {
          return (
            <React.Fragment>
              <Home />
            </React.Fragment>
          );
        }
        <BLANKLINE>
        ReactDOM.createRoot(document.getElementById('root')).render(<SitebakeApp />);
    """

    children: list[str] = []
    if plan.render_header:
        children.append(f"<{plan.header_component} />")
    children.append(f"<{plan.page_component} />")
    if plan.render_footer:
        children.append(f"<{plan.footer_component} />")
    body = "\n".join(f"      {child}" for child in children)
    return (
        f"function {APP_COMPONENT}() {{\n"
        "  return (\n"
        "    <React.Fragment>\n"
        f"{body}\n"
        "    </React.Fragment>\n"
        "  );\n"
        "}\n"
        "\n"
        "ReactDOM.createRoot(document.getElementById('root'))"
        f".render(<{APP_COMPONENT} />);"
    )


class BundleAssembler:
    """Concatenate fragments in a fixed order and synthesize the entry view."""

    def __init__(self) -> None:
        self._logger = get_logger(__name__, component="bundle")

    def assemble(
        self,
        chrome: ChromeFragments,
        dependencies: Sequence[SanitizedFragment],
        page: SanitizedFragment | None,
        plan: CompositionPlan,
    ) -> Bundle:
        """Build the bundle: header, dependencies, page, footer, composition.

        The page's top-level names always win. A header or footer declaring
        one of them is dropped when the page declares the view's own name and
        the entry view does not render it; otherwise the colliding
        declarations are renamed and the entry view renders the renamed view.
        A dependency declaring a top-level name already declared by the
        chrome, the page or an earlier dependency has that declaration
        renamed within its own fragment to ``Name__<path slug>``.

        Raises:
            MissingPageFragmentError: If ``page`` is ``None``.
        """

        if page is None:
            raise MissingPageFragmentError(
                "Cannot assemble a bundle without a page fragment"
            )

        reserved: set[str] = set(declared_names(page.text))
        reserved.add(APP_COMPONENT)
        page_names = frozenset(reserved)

        header, plan = self._place_chrome(
            chrome.header, "header", reserved, page_names, plan
        )
        footer, plan = self._place_chrome(
            chrome.footer, "footer", reserved, page_names, plan
        )

        parts: list[BundlePart] = []
        if header is not None:
            parts.append(BundlePart(FragmentRole.HEADER, header))
        for position, fragment in enumerate(dependencies):
            fragment = self._dealias(fragment, reserved, position)
            reserved.update(declared_names(fragment.text))
            parts.append(BundlePart(FragmentRole.DEPENDENCY, fragment))
        parts.append(BundlePart(FragmentRole.PAGE, page))
        if footer is not None:
            parts.append(BundlePart(FragmentRole.FOOTER, footer))

        return Bundle(parts=tuple(parts), composition=compose(plan), plan=plan)

    def _place_chrome(
        self,
        fragment: SanitizedFragment | None,
        slot: str,
        reserved: set[str],
        page_names: frozenset[str],
        plan: CompositionPlan,
    ) -> tuple[SanitizedFragment | None, CompositionPlan]:
        if fragment is None:
            return None, plan

        component_field = f"{slot}_component"
        component = getattr(plan, component_field)
        rendered = getattr(plan, f"render_{slot}")
        if component in page_names and not rendered:
            self._logger.warning(
                "chrome-dropped",
                slot=slot,
                source=fragment.source_path,
                name=component,
            )
            return None, plan

        renamed = component in reserved and component in declared_names(fragment.text)
        placed = self._dealias(fragment, reserved, 0)
        reserved.update(declared_names(placed.text))
        if renamed:
            suffix = alias_suffix(fragment.source_path, 0)
            plan = replace(plan, **{component_field: f"{component}__{suffix}"})
        return placed, plan

    def _dealias(
        self,
        fragment: SanitizedFragment,
        reserved: set[str],
        position: int,
    ) -> SanitizedFragment:
        collisions = [name for name in declared_names(fragment.text) if name in reserved]
        if not collisions:
            return fragment

        text = fragment.text
        suffix = alias_suffix(fragment.source_path, position)
        for name in collisions:
            alias = f"{name}__{suffix}"
            text = rename_identifier(text, name, alias)
            self._logger.warning(
                "fragment-alias",
                source=fragment.source_path,
                name=name,
                alias=alias,
            )
        return SanitizedFragment(text=text, source_path=fragment.source_path)
