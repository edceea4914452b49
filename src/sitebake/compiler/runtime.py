"""Self-healing execution runtime for undefined symbols.

Documents embed a JavaScript rendition of this runtime (see
``resources/templates/runtime.js.j2``); :class:`ShimRuntime` is the same
state machine for Python callables, used to reason about and test retry
behaviour. Each :meth:`ShimRuntime.run` owns a fresh
:class:`ShimRegistry`, so runs never share shims.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass, field
from enum import StrEnum
import re
from typing import Any, Callable, Iterator, Mapping

from sitebake.core.config import RuntimeSettings
from sitebake.core.logging import get_logger

from .icons import load_icon_set

__all__ = [
    "BOUND_WINDOW_METHODS",
    "FontLoader",
    "GOOGLE_FONT_LOADERS",
    "Placeholder",
    "RuntimeOutcome",
    "RuntimeState",
    "SERIF_FONTS",
    "ShimEntry",
    "ShimKind",
    "ShimRegistry",
    "ShimRuntime",
    "ShimScope",
    "bootstrap_context",
    "missing_symbol",
    "render_error_panel",
]

GOOGLE_FONT_LOADERS: tuple[str, ...] = (
    "Inter",
    "Poppins",
    "Roboto",
    "Lato",
    "Montserrat",
    "Nunito",
    "Raleway",
    "Oswald",
    "Open_Sans",
    "Playfair_Display",
    "Merriweather",
    "Cormorant_Garamond",
    "DM_Sans",
    "Space_Grotesk",
    "Manrope",
    "Plus_Jakarta_Sans",
    "Work_Sans",
    "Libre_Baskerville",
    "PT_Sans",
    "Noto_Sans",
    "Source_Sans_3",
    "Bebas_Neue",
    "Crimson_Text",
    "Lora",
    "Outfit",
    "Urbanist",
    "Rubik",
    "Figtree",
)
SERIF_FONTS: frozenset[str] = frozenset(
    {
        "Playfair Display",
        "Merriweather",
        "Cormorant Garamond",
        "Libre Baskerville",
        "Crimson Text",
        "Lora",
        "DM Serif Display",
    }
)
# Window members that lose their receiver when read through the scope proxy.
BOUND_WINDOW_METHODS: tuple[str, ...] = (
    "setTimeout",
    "clearTimeout",
    "setInterval",
    "clearInterval",
    "requestAnimationFrame",
    "cancelAnimationFrame",
    "requestIdleCallback",
    "cancelIdleCallback",
    "addEventListener",
    "removeEventListener",
    "dispatchEvent",
    "matchMedia",
    "getComputedStyle",
    "fetch",
    "atob",
    "btoa",
    "open",
    "postMessage",
    "scroll",
    "scrollBy",
    "scrollTo",
    "focus",
    "blur",
    "print",
    "alert",
    "confirm",
    "prompt",
)

_MISSING_SYMBOL_RE = re.compile(r"""['"]?([A-Za-z_$][\w$]*)['"]? is not defined""")
_HOOK_NAME_RE = re.compile(r"^use[A-Z]")
_FONT_CLASS_RE = re.compile(r"[^a-z0-9_]+")
_FONT_WEIGHT_RE = re.compile(r"^\d{3}$")


class ShimKind(StrEnum):
    PLACEHOLDER = "placeholder"
    FONT_LOADER = "font-loader"
    UTILITY = "utility"


class RuntimeState(StrEnum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Placeholder:
    """Inert visual stand-in; renders an empty fallback icon description."""

    name: str

    def __call__(self, *args: Any, **props: Any) -> dict[str, Any]:
        return {"type": "svg", "fallback": self.name, "props": props}


@dataclass(frozen=True, slots=True)
class FontLoader:
    """Web-font loader derived from a loader name such as ``Open_Sans``."""

    name: str

    @property
    def family(self) -> str:
        return self.name.replace("_", " ").strip()

    @property
    def class_token(self) -> str:
        return "__font_" + _FONT_CLASS_RE.sub("_", self.name.lower())

    def stylesheet_url(self, weights: Any = None) -> str:
        values = weights if isinstance(weights, (list, tuple)) else [weights] if weights else []
        safe = [str(value).strip() for value in values if _FONT_WEIGHT_RE.match(str(value).strip())]
        query = "+".join(self.family.split())
        if safe:
            query += ":wght@" + ";".join(safe)
        return f"https://fonts.googleapis.com/css2?family={query}&display=swap"

    def __call__(self, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        options = options or {}
        fallback = "serif" if self.family in SERIF_FONTS else "sans-serif"
        variable = options.get("variable")
        return {
            "className": self.class_token,
            "variable": f"{self.class_token}_var" if isinstance(variable, str) and variable.strip() else "",
            "style": {"fontFamily": f'"{self.family}",{fallback}'},
        }


def _fallback_hook(*args: Any, **kwargs: Any) -> dict[str, Any]:
    return {}


def _fallback_utility(*args: Any, **kwargs: Any) -> None:
    return None


@dataclass(frozen=True, slots=True)
class ShimEntry:
    """A symbol name paired with the kind of stand-in created for it."""

    name: str
    kind: ShimKind = ShimKind.PLACEHOLDER

    def create(self) -> Any:
        if self.kind is ShimKind.FONT_LOADER:
            return FontLoader(self.name)
        if self.kind is ShimKind.UTILITY:
            return _fallback_hook if _HOOK_NAME_RE.match(self.name) else _fallback_utility
        return Placeholder(self.name)


class ShimRegistry:
    """Append-only set of shims registered during one run."""

    def __init__(self) -> None:
        self._entries: dict[str, ShimEntry] = {}
        self._values: dict[str, Any] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[ShimEntry, ...]:
        return tuple(self._entries.values())

    def register(self, entry: ShimEntry) -> bool:
        """Add ``entry``; returns ``False`` when the name is already registered."""

        if entry.name in self._entries:
            return False
        self._entries[entry.name] = entry
        self._values[entry.name] = entry.create()
        return True

    def value(self, name: str) -> Any:
        return self._values[name]


@dataclass(slots=True)
class ShimScope(MutableMapping[str, Any]):
    """Name lookup backed by bindings, then shims, then lazy fallbacks.

    The Python counterpart of the document runtime's scope proxy. Code run
    by :meth:`ShimRuntime.run` reads names through :meth:`resolve`, which
    raises the same ``"X is not defined"`` error the retry loop recovers
    from.
    """

    registry: ShimRegistry
    classify: Callable[[str], ShimEntry | None]
    lazy: bool = False
    bindings: dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Any:
        if name in self.bindings:
            return self.bindings[name]
        if name in self.registry:
            return self.registry.value(name)
        if self.lazy and name[:1].isupper():
            entry = self.classify(name)
            if entry is not None and self.registry.register(entry):
                return self.registry.value(name)
        raise KeyError(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.bindings[name] = value

    def __delitem__(self, name: str) -> None:
        del self.bindings[name]

    def __iter__(self) -> Iterator[str]:
        yield from self.bindings
        yield from (entry.name for entry in self.registry.entries if entry.name not in self.bindings)

    def __len__(self) -> int:
        return len(set(self.bindings) | {entry.name for entry in self.registry.entries})

    def __contains__(self, name: object) -> bool:
        return name in self.bindings or name in self.registry

    def resolve(self, name: str) -> Any:
        """Return the value bound to ``name``.

        Raises:
            NameError: If nothing binds ``name`` and no lazy fallback applies.
        """

        try:
            return self[name]
        except KeyError:
            raise NameError(f"name {name!r} is not defined") from None


def missing_symbol(error: BaseException) -> str | None:
    """Extract ``X`` from an ``"X is not defined"`` style error message.

    Example:
        >>> missing_symbol(NameError("name 'Hero' is not defined"))
        'Hero'
        >>> missing_symbol(ReferenceError("Hero is not defined"))
        'Hero'
    """

    match = _MISSING_SYMBOL_RE.search(str(error))
    return match.group(1) if match else None


def render_error_panel(error: BaseException | str) -> str:
    """Plain-text body of the in-document runtime error panel."""

    message = str(error) or error.__class__.__name__
    return f"Runtime Error\n\n{message}"


@dataclass(frozen=True, slots=True)
class RuntimeOutcome:
    """Result of one :meth:`ShimRuntime.run`."""

    state: RuntimeState
    attempts: int
    shims: tuple[ShimEntry, ...] = ()
    error: BaseException | None = None
    result: Any = None

    @property
    def succeeded(self) -> bool:
        return self.state is RuntimeState.SUCCEEDED

    @property
    def retries(self) -> int:
        return max(self.attempts - 1, 0)

    @property
    def error_panel(self) -> str | None:
        if self.error is None:
            return None
        return render_error_panel(self.error)


class ShimRuntime:
    """Bounded retry loop that registers one shim per undefined symbol.

    States move ``idle -> attempting -> succeeded | failed``. An attempt
    that fails with an ``"X is not defined"`` error registers a shim for
    ``X`` and tries again; any other error, a symbol that cannot be shimmed
    or exceeding ``max_retries`` ends in ``failed``.

    Example:
        >>> runtime = ShimRuntime()
        >>> runtime.run(lambda scope: scope.resolve("Hero")()).state
        <RuntimeState.SUCCEEDED: 'succeeded'>
    """

    def __init__(
        self,
        settings: RuntimeSettings | None = None,
        *,
        font_loaders: tuple[str, ...] = GOOGLE_FONT_LOADERS,
    ) -> None:
        self._settings = settings or RuntimeSettings()
        self._font_loaders = frozenset(font_loaders)
        self._state = RuntimeState.IDLE
        self._registry = ShimRegistry()
        self._logger = get_logger(__name__, component="runtime")

    @property
    def state(self) -> RuntimeState:
        return self._state

    @property
    def registry(self) -> ShimRegistry:
        return self._registry

    @property
    def max_retries(self) -> int:
        return self._settings.max_retries

    def classify(self, name: str) -> ShimEntry | None:
        """Return the shim to create for ``name``, or ``None`` when unrecoverable."""

        if name[:1].isupper():
            if "_" in name or name in self._font_loaders:
                return ShimEntry(name, ShimKind.FONT_LOADER)
            return ShimEntry(name, ShimKind.PLACEHOLDER)
        if self._settings.recover_lowercase:
            return ShimEntry(name, ShimKind.UTILITY)
        return None

    def scope(self, bindings: Mapping[str, Any] | None = None) -> ShimScope:
        return ShimScope(
            registry=self._registry,
            classify=self.classify,
            lazy=self._settings.lazy_fallbacks,
            bindings=dict(bindings or {}),
        )

    def run(
        self,
        execute: Callable[[ShimScope], Any],
        *,
        bindings: Mapping[str, Any] | None = None,
    ) -> RuntimeOutcome:
        """Execute ``execute(scope)`` with undefined-symbol recovery.

        Only lookups made while ``execute`` runs are retried. Lookups made
        later through the same scope, such as a view body rendered after
        mounting, can only be satisfied by lazy fallbacks.
        """

        self._registry = ShimRegistry()
        scope = self.scope(bindings)
        self._state = RuntimeState.ATTEMPTING
        attempts = 0

        while True:
            attempts += 1
            try:
                result = execute(scope)
            except Exception as exc:
                entry = self._recovery_for(exc, retries=attempts - 1)
                if entry is None:
                    self._state = RuntimeState.FAILED
                    self._logger.debug(
                        "runtime-failed",
                        attempts=attempts,
                        error=str(exc),
                    )
                    return RuntimeOutcome(
                        state=self._state,
                        attempts=attempts,
                        shims=self._registry.entries,
                        error=exc,
                    )
                self._logger.debug(
                    "shim-registered",
                    name=entry.name,
                    kind=str(entry.kind),
                    attempt=attempts,
                )
                continue

            self._state = RuntimeState.SUCCEEDED
            return RuntimeOutcome(
                state=self._state,
                attempts=attempts,
                shims=self._registry.entries,
                result=result,
            )

    def _recovery_for(self, error: Exception, *, retries: int) -> ShimEntry | None:
        name = missing_symbol(error)
        if name is None or retries >= self.max_retries:
            return None
        entry = self.classify(name)
        if entry is None or not self._registry.register(entry):
            return None
        return entry


def bootstrap_context(settings: RuntimeSettings | None = None) -> dict[str, Any]:
    """Values injected into the document's JavaScript runtime template."""

    settings = settings or RuntimeSettings()
    icon_set = load_icon_set()
    return {
        "max_retries": settings.max_retries,
        "lazy_fallbacks": settings.lazy_fallbacks,
        "recover_lowercase": settings.recover_lowercase,
        "font_loaders": list(GOOGLE_FONT_LOADERS),
        "serif_fonts": sorted(SERIF_FONTS),
        "bound_window_methods": list(BOUND_WINDOW_METHODS),
        "fallback_icon_path": icon_set.fallback_path,
        "icon_paths": dict(icon_set.paths),
        "icon_names": list(icon_set.names),
    }
