"""Bracket-balancing micro-lexer for object and array literals.

Only the ``normal`` lexer state lets brackets change nesting depth; quoted
strings, template strings and comments are skipped whole. Template strings
are a single opaque region, so ``${...}`` interpolations are not parsed.
"""

from __future__ import annotations

from enum import StrEnum
import re
from typing import Iterator

__all__ = [
    "LexState",
    "extract_balanced",
    "extract_config_literal",
    "find_balanced_end",
    "find_statement_end",
    "iter_code",
]

_QUOTES = {"'": "single", '"': "double", "`": "template"}
_CONTINUATION_TAIL = frozenset("=|&,<?:({[+-*/")
_CONTINUATION_HEAD = frozenset("|&.?:)}]>")


class LexState(StrEnum):
    """States of the character-class scanner."""

    NORMAL = "normal"
    SINGLE = "single"
    DOUBLE = "double"
    TEMPLATE = "template"
    LINE_COMMENT = "line-comment"
    BLOCK_COMMENT = "block-comment"


def iter_code(source: str, start: int = 0) -> Iterator[tuple[int, str]]:
    """Yield ``(index, char)`` for every character in the normal state.

    Example:
        >>> "".join(ch for _, ch in iter_code("a('}')//x\\nb"))
        'a()\\nb'
    """

    state = LexState.NORMAL
    closing = ""
    escaped = False
    i = start
    length = len(source)
    while i < length:
        ch = source[i]
        nxt = source[i + 1] if i + 1 < length else ""

        if state is LexState.LINE_COMMENT:
            if ch == "\n":
                state = LexState.NORMAL
                yield i, ch
            i += 1
            continue
        if state is LexState.BLOCK_COMMENT:
            if ch == "*" and nxt == "/":
                state = LexState.NORMAL
                i += 2
                continue
            i += 1
            continue
        if state is not LexState.NORMAL:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == closing:
                state = LexState.NORMAL
            i += 1
            continue

        if ch == "/" and nxt == "/":
            state = LexState.LINE_COMMENT
            i += 2
            continue
        if ch == "/" and nxt == "*":
            state = LexState.BLOCK_COMMENT
            i += 2
            continue
        if ch in _QUOTES:
            state = LexState(_QUOTES[ch])
            closing = ch
            i += 1
            continue

        yield i, ch
        i += 1


def find_balanced_end(
    source: str,
    start: int,
    open_char: str = "{",
    close_char: str = "}",
) -> int | None:
    """Return the index of the closer matching the opener at ``start``.

    ``source[start]`` must be ``open_char``. ``None`` means the input ended
    before nesting returned to zero.
    """

    depth = 0
    for index, ch in iter_code(source, start):
        if ch == open_char:
            depth += 1
        elif ch == close_char:
            depth -= 1
            if depth == 0:
                return index
    return None


def extract_balanced(
    source: str,
    from_index: int,
    open_char: str = "{",
    close_char: str = "}",
) -> str | None:
    """Return the balanced literal beginning at the first ``open_char``.

    Args:
        source: Text to scan.
        from_index: Offset where the search for ``open_char`` starts.
        open_char: Opening bracket, ``{`` or ``[``.
        close_char: Matching closing bracket.

    Returns:
        The substring from the opener through its matching closer, or
        ``None`` when there is no opener or it is never closed.

    Example:
        >>> extract_balanced('x = { a: "}", b: [1] };', 0)
        '{ a: "}", b: [1] }'
    """

    start = source.find(open_char, from_index)
    if start == -1:
        return None
    end = find_balanced_end(source, start, open_char, close_char)
    if end is None:
        return None
    return source[start : end + 1]


def _last_significant(source: str, before: int) -> str:
    idx = before - 1
    while idx >= 0 and source[idx] in " \t\r":
        idx -= 1
    return source[idx] if idx >= 0 else ""


def _next_significant(source: str, after: int) -> str:
    idx = after
    while idx < len(source) and source[idx].isspace():
        idx += 1
    return source[idx] if idx < len(source) else ""


def find_statement_end(source: str, start: int) -> int:
    """Return the offset just past the statement that begins at ``start``.

    A statement ends at a ``;`` outside any bracket, or at a line break
    outside any bracket when neither side of the break continues the
    expression (a trailing ``=``/``|``/``&`` or a leading ``|``/``&``/``.``).
    Without either, the statement runs to the end of ``source``.
    """

    depth = 0
    for index, ch in iter_code(source, start):
        if ch in "({[":
            depth += 1
        elif ch in ")}]":
            depth = max(depth - 1, 0)
        elif depth == 0 and ch == ";":
            return index + 1
        elif depth == 0 and ch == "\n":
            if _last_significant(source, index) in _CONTINUATION_TAIL:
                continue
            if _next_significant(source, index) in _CONTINUATION_HEAD:
                continue
            return index
    return len(source)


_CONFIG_PREAMBLE = (
    re.compile(r"^import\s+type\s+.*$", re.MULTILINE),
    re.compile(r"^import\s+.*$", re.MULTILINE),
    re.compile(r"^type\s+.*$", re.MULTILINE),
)
_MODULE_EXPORTS_RE = re.compile(r"module\.exports\s*=")
_EXPORT_DEFAULT_OBJECT_RE = re.compile(r"export\s+default\s*\{")
_EXPORT_DEFAULT_REF_RE = re.compile(r"export\s+default\s+([A-Za-z_$][\w$]*)\s*;?")


def extract_config_literal(config_source: str) -> str | None:
    """Extract the object literal a config module exports.

    Recognizes ``module.exports = {...}``, ``export default {...}`` and
    ``export default name`` where ``name`` is bound by a ``const``/``let``/
    ``var`` declaration (optionally type-annotated).

    Example:
        >>> extract_config_literal("export default { darkMode: 'class' }")
        "{ darkMode: 'class' }"
    """

    text = config_source
    for pattern in _CONFIG_PREAMBLE:
        text = pattern.sub("", text)
    text = text.strip()

    match = _MODULE_EXPORTS_RE.search(text)
    if match:
        return extract_balanced(text, match.end())

    match = _EXPORT_DEFAULT_OBJECT_RE.search(text)
    if match:
        return extract_balanced(text, match.start())

    match = _EXPORT_DEFAULT_REF_RE.search(text)
    if match:
        name = re.escape(match.group(1))
        declaration = re.search(
            rf"(?:const|let|var)\s+{name}(?:\s*:\s*[\s\S]*?)?\s*=", text
        )
        if declaration:
            return extract_balanced(text, declaration.end())

    return None
