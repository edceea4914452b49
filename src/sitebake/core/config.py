"""Configuration models and loaders for :mod:`sitebake`."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from pathlib import Path
from typing import Any, Mapping

import tomllib
import tomlkit
from pydantic import BaseModel, Field, field_validator, model_validator

from sitebake.resources import read_resource_text

DEFAULTS_RESOURCE_NAME = "sitebake.defaults.toml"
USER_CONFIG_FILENAME = "sitebake.toml"


class CompilerSettings(BaseModel):
    """Knobs for path resolution, page discovery and config extraction."""

    source_root_prefix: str = Field(
        default="src/",
        description="Conventional source-root prefix stripped from paths.",
    )
    app_dir: str = Field(
        default="app",
        description="Top-level directory holding pages and the layout.",
    )
    extensions: tuple[str, ...] = Field(
        default=("tsx", "jsx", "ts", "js"),
        description="Component-source extensions in resolution order.",
    )
    alias_prefixes: tuple[str, ...] = Field(
        default=("@/", "~/"),
        description="Import prefixes meaning 'project root'.",
    )
    default_title: str = Field(
        default="My Website",
        description="Site title used when none is supplied.",
    )
    default_config_literal: str = Field(
        default="{}",
        description="Config object literal used when extraction fails.",
    )
    strip_route_groups: bool = Field(
        default=True,
        description="Drop '(group)' segments from sub-page route paths.",
    )
    globals_css_candidates: tuple[str, ...] = Field(
        default=("app/globals.css", "styles/globals.css"),
        description="Candidate paths for project-wide custom CSS.",
    )
    config_file_candidates: tuple[str, ...] = Field(
        default=(
            "tailwind.config.ts",
            "tailwind.config.js",
            "tailwind.config.mjs",
            "tailwind.config.cjs",
            "app/tailwind.config.ts",
            "app/tailwind.config.js",
            "app/tailwind.config.mjs",
            "app/tailwind.config.cjs",
        ),
        description="Candidate paths for the utility-CSS config module.",
    )
    dark_theme_markers: tuple[str, ...] = Field(
        default=("bg-gray-950", "bg-gray-900"),
        description="Class tokens in the header marking a dark theme.",
    )

    model_config = {
        "frozen": True,
        "str_strip_whitespace": True,
    }

    @field_validator("extensions")
    @classmethod
    def _normalize_extensions(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        normalized = tuple(
            dict.fromkeys(ext.strip().lstrip(".").lower() for ext in value)
        )
        if not normalized or not all(normalized):
            raise ValueError("At least one non-empty extension is required.")
        return normalized

    @field_validator("app_dir")
    @classmethod
    def _normalize_app_dir(cls, value: str) -> str:
        normalized = value.strip("/")
        if not normalized:
            raise ValueError("app_dir cannot be blank.")
        return normalized


class RuntimeSettings(BaseModel):
    """Behaviour of the in-document compatibility runtime."""

    max_retries: int = Field(
        default=10,
        ge=0,
        description="Retry ceiling for undefined-symbol recovery.",
    )
    lazy_fallbacks: bool = Field(
        default=True,
        description=(
            "Resolve unknown capitalized identifiers lazily through the "
            "registry proxy instead of waiting for a failed attempt."
        ),
    )
    recover_lowercase: bool = Field(
        default=False,
        description=(
            "Also recover undefined lower-case identifiers with no-op "
            "utility shims."
        ),
    )
    icon_library_path: Path | None = Field(
        default=None,
        description="Icon library bundle scanned for exact vector icons.",
    )

    model_config = {
        "frozen": True,
        "str_strip_whitespace": True,
    }

    @field_validator("icon_library_path", mode="before")
    @classmethod
    def _blank_path_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class CdnSettings(BaseModel):
    """External script locations referenced by generated documents."""

    css_runtime: str = Field(default="https://cdn.tailwindcss.com")
    react: str = Field(
        default="https://unpkg.com/react@18/umd/react.production.min.js"
    )
    react_dom: str = Field(
        default=(
            "https://unpkg.com/react-dom@18/umd/react-dom.production.min.js"
        )
    )
    transpiler: str = Field(
        default="https://unpkg.com/@babel/standalone@7/babel.min.js"
    )

    model_config = {
        "frozen": True,
        "str_strip_whitespace": True,
    }


class AppConfig(BaseModel):
    """Root configuration for the :mod:`sitebake` application."""

    log_level: str = Field(
        default="WARNING",
        description="Logging level for the application runtime.",
    )
    title: str | None = Field(
        default=None,
        description="Site title override applied to every build.",
    )
    compiler: CompilerSettings = Field(default_factory=CompilerSettings)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)
    cdn: CdnSettings = Field(default_factory=CdnSettings)

    model_config = {
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @model_validator(mode="after")
    def _post_process(self) -> "AppConfig":
        object.__setattr__(self, "log_level", self.log_level.upper())
        return self


def read_packaged_defaults_text() -> str:
    """Return the raw packaged defaults TOML content.

    Example:
        >>> read_packaged_defaults_text().startswith("#")
        True
    """

    return read_resource_text(DEFAULTS_RESOURCE_NAME)


def load_packaged_defaults() -> dict[str, Any]:
    """Load the packaged defaults as a plain dictionary.

    Example:
        >>> load_packaged_defaults()["runtime"]["max_retries"]
        10
    """

    return tomllib.loads(read_packaged_defaults_text())


def read_user_config(path: Path) -> dict[str, Any]:
    """Parse a user ``sitebake.toml``; a missing file yields an empty mapping."""

    if not path.is_file():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _deep_merge(
    base: Mapping[str, Any],
    overlay: Mapping[str, Any],
) -> dict[str, Any]:
    """Recursively merge ``overlay`` into ``base`` returning a new dict."""

    merged: dict[str, Any] = dict(base)
    for key, value in overlay.items():
        if (
            key in merged
            and isinstance(merged[key], MappingABC)
            and isinstance(value, MappingABC)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Extract configuration overrides from ``SITEBAKE_*`` variables."""

    overrides: dict[str, Any] = {}
    level = environ.get("SITEBAKE_LOG_LEVEL")
    if level:
        overrides["log_level"] = level
    title = environ.get("SITEBAKE_TITLE")
    if title:
        overrides["title"] = title
    return overrides


def load_config(
    *,
    defaults: Mapping[str, Any],
    user_config: Mapping[str, Any] | None = None,
    env_config: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """Load configuration according to the precedence stack.

    Args:
        defaults: Packaged defaults shipped with the application.
        user_config: Parsed user ``sitebake.toml`` content.
        env_config: Settings derived from environment variables.
        cli_overrides: Settings supplied via CLI flags.

    Returns:
        A validated :class:`AppConfig` instance.

    Raises:
        TypeError: If a section payload is not a mapping.
    """

    stack: dict[str, Any] = dict(defaults)
    for layer in (user_config, env_config, cli_overrides):
        if layer:
            stack = _deep_merge(stack, layer)

    for section in ("compiler", "runtime", "cdn"):
        value = stack.get(section)
        if value is not None and not isinstance(
            value, (MappingABC, BaseModel)
        ):
            raise TypeError(
                f"Unsupported {section} configuration payload: {value!r}"
            )

    return AppConfig(**stack)


def render_user_config(
    config: AppConfig,
    *,
    include_comments: bool = True,
) -> str:
    """Render a ``sitebake.toml`` for users to customize.

    Args:
        config: Configuration instance to serialize.
        include_comments: Whether to prepend precedence commentary.

    Returns:
        A TOML-formatted string ready to persist.
    """

    document = tomlkit.document()

    if include_comments:
        document.add(tomlkit.comment("Generated by sitebake init"))
        document.add(
            tomlkit.comment(
                "Precedence: CLI flags > env vars > sitebake.toml > defaults"
            )
        )
        document.add(tomlkit.comment("Environment overrides:"))
        document.add(tomlkit.comment("  SITEBAKE_LOG_LEVEL=info"))
        document.add(tomlkit.comment("  SITEBAKE_TITLE='My Website'"))
        document.add(tomlkit.nl())

    document["log_level"] = config.log_level
    if config.title:
        document["title"] = config.title

    compiler = config.compiler
    compiler_table = tomlkit.table()
    compiler_table["source_root_prefix"] = compiler.source_root_prefix
    compiler_table["app_dir"] = compiler.app_dir
    compiler_table["extensions"] = list(compiler.extensions)
    compiler_table["alias_prefixes"] = list(compiler.alias_prefixes)
    compiler_table["default_title"] = compiler.default_title
    compiler_table["default_config_literal"] = compiler.default_config_literal
    compiler_table["strip_route_groups"] = compiler.strip_route_groups
    compiler_table["globals_css_candidates"] = list(
        compiler.globals_css_candidates
    )
    compiler_table["config_file_candidates"] = list(
        compiler.config_file_candidates
    )
    compiler_table["dark_theme_markers"] = list(compiler.dark_theme_markers)
    document["compiler"] = compiler_table

    runtime = config.runtime
    runtime_table = tomlkit.table()
    runtime_table["max_retries"] = runtime.max_retries
    runtime_table["lazy_fallbacks"] = runtime.lazy_fallbacks
    runtime_table["recover_lowercase"] = runtime.recover_lowercase
    if runtime.icon_library_path is not None:
        runtime_table["icon_library_path"] = str(runtime.icon_library_path)
    document["runtime"] = runtime_table

    cdn_table = tomlkit.table()
    for key, value in config.cdn.model_dump().items():
        cdn_table[key] = value
    document["cdn"] = cdn_table

    return tomlkit.dumps(document)


__all__ = [
    "AppConfig",
    "CdnSettings",
    "CompilerSettings",
    "RuntimeSettings",
    "DEFAULTS_RESOURCE_NAME",
    "USER_CONFIG_FILENAME",
    "env_overrides",
    "load_config",
    "load_packaged_defaults",
    "read_packaged_defaults_text",
    "read_user_config",
    "render_user_config",
]
