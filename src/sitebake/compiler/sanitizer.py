"""Turn one component source file into a globally executable fragment.

All fragments of a page share one script scope, so module syntax and
type-only syntax are removed while every runtime declaration is kept.
Rewrites run in a fixed order: whole-statement removals first, inline
annotation removals last. Running :func:`sanitize` on its own output is a
no-op.
"""

from __future__ import annotations

import re
from typing import Callable

from .literals import find_balanced_end, find_statement_end
from .models import SanitizedFragment

__all__ = [
    "DEFAULT_EXPORT_NAME",
    "clean_css",
    "declared_names",
    "declares",
    "detect_primary_export_name",
    "sanitize",
    "sanitize_fragment",
]

DEFAULT_EXPORT_NAME = "DefaultExport"

_IDENT = r"[A-Za-z_$][\w$]*"

_DIRECTIVE_RE = re.compile(
    r"""^[ \t]*["']use (?:client|server|strict)["'][ \t]*;?[ \t]*(?:\n|$)""",
    re.MULTILINE,
)
_SIDE_EFFECT_IMPORT_RE = re.compile(
    r"""^[ \t]*import\s*["'][^"'\n]+["'][ \t]*;?[ \t]*(?:\n|$)""",
    re.MULTILINE,
)
_FROM_IMPORT_RE = re.compile(
    r"""^[ \t]*import\s+[^;'"]*?\bfrom\s*["'][^"'\n]+["'][ \t]*;?[ \t]*(?:\n|$)""",
    re.MULTILINE,
)

_REEXPORT_RES = (
    re.compile(
        r"""^[ \t]*export\s+(?:type\s+)?\{[^}]*\}(?:\s*from\s*["'][^"'\n]+["'])?[ \t]*;?[ \t]*(?:\n|$)""",
        re.MULTILINE,
    ),
    re.compile(
        rf"""^[ \t]*export\s+(?:type\s+)?\*(?:\s+as\s+{_IDENT})?\s+from\s*["'][^"'\n]+["'][ \t]*;?[ \t]*(?:\n|$)""",
        re.MULTILINE,
    ),
)
_EXPORT_REWRITES: tuple[tuple[re.Pattern[str], str], ...] = (
    (
        re.compile(r"^([ \t]*)export\s+default\s+(async\s+)?function\s*(\*?)\s*\(", re.MULTILINE),
        rf"\1\2function\3 {DEFAULT_EXPORT_NAME}(",
    ),
    (
        re.compile(r"^([ \t]*)export\s+default\s+class\s*\{", re.MULTILINE),
        rf"\1class {DEFAULT_EXPORT_NAME} {{",
    ),
    (
        re.compile(rf"^[ \t]*export\s+default\s+{_IDENT}[ \t]*;?[ \t]*(?:\n|$)", re.MULTILINE),
        "",
    ),
    (re.compile(r"^([ \t]*)export\s+default\s+", re.MULTILINE), r"\1"),
    (re.compile(r"^([ \t]*)export\s+(?=\S)", re.MULTILINE), r"\1"),
)

_INTERFACE_RE = re.compile(
    rf"^[ \t]*(?:declare\s+)?interface\s+{_IDENT}[^{{\n]*\{{", re.MULTILINE
)
_TYPE_ALIAS_RE = re.compile(
    rf"^[ \t]*(?:declare\s+)?type\s+{_IDENT}\s*(?:<[^=\n]*>)?\s*=", re.MULTILINE
)

_INLINE_REWRITES: tuple[tuple[re.Pattern[str], str], ...] = (
    # ({ a, b }: { a: string; b: number })
    (re.compile(r"\(\s*\{([^{}]+)\}\s*:\s*\{[^{}]*\}\s*\)"), r"({\1})"),
    # ({ a, b }: Props) and ({ a }: Readonly<Props>)
    (
        re.compile(r"\(\s*\{([^{}]+)\}\s*:\s*[A-Z][\w.]*(?:<[^<>()]*>)?\s*\)"),
        r"({\1})",
    ),
    (
        re.compile(
            r"\)\s*:\s*(?:JSX\.Element|React\.ReactElement|React\.ReactNode"
            r"|ReactElement|ReactNode)(?:\s*\|\s*null)?(?=\s*(?:\{|=>))"
        ),
        ")",
    ),
    (
        re.compile(r":\s*(?:React\.)?(?:FC|FunctionComponent)\b(?:<[^<>]*>)?"),
        "",
    ),
    (re.compile(rf"function\s+({_IDENT})\s*<[^<>()]+>\s*\("), r"function \1("),
)
_BLANK_RUN_RE = re.compile(r"\n{3,}")

_CSS_DIRECTIVE_RE = re.compile(r"@tailwind\s+[\w-]+;?\s*")

_DECLARATION_RE = re.compile(
    rf"^(?:async\s+)?(?:function\s*\*?\s*|class\s+|const\s+|let\s+|var\s+)({_IDENT})",
    re.MULTILINE,
)
_DEFAULT_FUNCTION_RE = re.compile(
    rf"export\s+default\s+(?:async\s+)?function\s*\*?\s*({_IDENT})"
)
_DEFAULT_CLASS_RE = re.compile(rf"export\s+default\s+class\s+({_IDENT})")
_DEFAULT_REF_RE = re.compile(
    rf"^[ \t]*export\s+default\s+({_IDENT})[ \t]*;?[ \t]*$", re.MULTILINE
)
_FIRST_DECLARATION_RE = re.compile(rf"\b(?:function|const|class)\s+({_IDENT})\b")
_ANONYMOUS_DEFAULT_RE = re.compile(r"export\s+default\s+(?:async\s+)?(?:function\s*\*?\s*\(|class\s*\{)")


def _remove_blocks(
    text: str,
    pattern: re.Pattern[str],
    find_end: Callable[[str, re.Match[str]], int | None],
) -> str:
    pieces: list[str] = []
    cursor = 0
    search_from = 0
    while True:
        match = pattern.search(text, search_from)
        if match is None:
            break
        end = find_end(text, match)
        if end is None:
            # Unterminated declaration; keep the rest verbatim.
            break
        if end < len(text) and text[end] == ";":
            end += 1
        while end < len(text) and text[end] in " \t":
            end += 1
        if end < len(text) and text[end] == "\n":
            end += 1
        pieces.append(text[cursor : match.start()])
        cursor = search_from = end
    pieces.append(text[cursor:])
    return "".join(pieces)


def _interface_end(text: str, match: re.Match[str]) -> int | None:
    closer = find_balanced_end(text, match.end() - 1)
    return None if closer is None else closer + 1


def _type_alias_end(text: str, match: re.Match[str]) -> int | None:
    return find_statement_end(text, match.end())


def sanitize(content: str) -> str:
    """Strip module and type-only syntax from a component source file.

    Example:
        >>> sanitize('import x from "y";\\nexport default function App() {}')
        'function App() {}'
    """

    text = content.replace("\r\n", "\n")
    text = _DIRECTIVE_RE.sub("", text)
    text = _SIDE_EFFECT_IMPORT_RE.sub("", text)
    text = _FROM_IMPORT_RE.sub("", text)
    for pattern in _REEXPORT_RES:
        text = pattern.sub("", text)
    for pattern, replacement in _EXPORT_REWRITES:
        text = pattern.sub(replacement, text)
    text = _remove_blocks(text, _INTERFACE_RE, _interface_end)
    text = _remove_blocks(text, _TYPE_ALIAS_RE, _type_alias_end)
    for pattern, replacement in _INLINE_REWRITES:
        text = pattern.sub(replacement, text)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


def sanitize_fragment(content: str, source_path: str | None = None) -> SanitizedFragment:
    return SanitizedFragment(text=sanitize(content), source_path=source_path)


def clean_css(css: str) -> str:
    """Drop ``@tailwind`` directives; the CDN runtime injects those layers."""

    return _CSS_DIRECTIVE_RE.sub("", css).strip()


def declared_names(fragment: str) -> tuple[str, ...]:
    """Return identifiers declared at column zero, in source order."""

    return tuple(dict.fromkeys(_DECLARATION_RE.findall(fragment)))


def declares(fragment: str, name: str) -> bool:
    pattern = rf"\b(?:function|const|let|var|class)\s+{re.escape(name)}\b"
    return re.search(pattern, fragment) is not None


def detect_primary_export_name(raw: str, sanitized: str) -> str | None:
    """Guess the binding a file's default export ends up as.

    Checks a named default-exported function or class, then an anonymous
    default export, then ``export default Name``, then the first
    declaration in the sanitized text.
    """

    for pattern in (_DEFAULT_FUNCTION_RE, _DEFAULT_CLASS_RE):
        match = pattern.search(raw)
        if match:
            return match.group(1)
    if _ANONYMOUS_DEFAULT_RE.search(raw):
        return DEFAULT_EXPORT_NAME
    match = _DEFAULT_REF_RE.search(raw)
    if match:
        return match.group(1)
    match = _FIRST_DECLARATION_RE.search(sanitized)
    if match:
        return match.group(1)
    return None
