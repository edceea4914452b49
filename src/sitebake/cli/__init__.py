"""Command-line interface primitives for :mod:`sitebake`.

This module exposes the Typer application behind the ``sitebake`` console
script: ``build`` compiles a project into static documents, ``inspect``
prints the compile plan and ``init`` seeds a ``sitebake.toml``.

Example:
    >>> import typer
    >>> from sitebake.cli import create_app
    >>> app = create_app()
    >>> isinstance(app, typer.Typer)
    True
"""

from __future__ import annotations

import os
from pathlib import Path
import tomllib
from typing import Any, Mapping

from pydantic import ValidationError
import typer

from sitebake.cli.init import init_config
from sitebake.compiler import SiteCompiler, SitePlan
from sitebake.compiler.errors import SitebakeError
from sitebake.core.config import (
    AppConfig,
    DEFAULTS_RESOURCE_NAME,
    USER_CONFIG_FILENAME,
    env_overrides,
    load_config,
    load_packaged_defaults,
    read_user_config,
)
from sitebake.core.logging import configure_logging, get_logger
from sitebake.output import write_documents
from sitebake.project import ProjectSource, load_project

_app_help = (
    "Compile generated component projects into self-contained HTML."
    "\n\n"
    "Use `sitebake build PROJECT` to write one document per page."
)


def _fail(message: str) -> typer.Exit:
    typer.secho(message, fg=typer.colors.RED, err=True)
    return typer.Exit(code=1)


def _user_config_path(source: Path, explicit: Path | None) -> Path | None:
    if explicit is not None:
        if not explicit.is_file():
            raise typer.BadParameter(
                f"Config file not found: {explicit}",
                param_hint="--config",
            )
        return explicit
    if source.is_dir():
        return source / USER_CONFIG_FILENAME
    return source.parent / USER_CONFIG_FILENAME


def resolve_config(
    source: Path,
    *,
    config_path: Path | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration for a command operating on ``source``.

    Raises:
        typer.Exit: If the config file or the merged settings are invalid.
    """

    path = _user_config_path(source, config_path)
    try:
        user_config = read_user_config(path) if path is not None else {}
        return load_config(
            defaults=load_packaged_defaults(),
            user_config=user_config,
            env_config=env_overrides(os.environ if environ is None else environ),
            cli_overrides=cli_overrides,
        )
    except tomllib.TOMLDecodeError as exc:
        raise _fail(f"Invalid config file {path}: {exc}") from exc
    except (ValidationError, TypeError) as exc:
        raise _fail(f"Invalid configuration: {exc}") from exc


def _cli_overrides(
    *,
    log_level: str | None = None,
    title: str | None = None,
) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if log_level:
        overrides["log_level"] = log_level
    if title:
        overrides["title"] = title
    return overrides


def _load(source: Path) -> ProjectSource:
    try:
        return load_project(source)
    except SitebakeError as exc:
        raise _fail(str(exc)) from exc


def _configure(
    level: str,
    log_dir: Path | None = None,
    **build_context: Any,
) -> None:
    try:
        configure_logging(level=level, log_dir=log_dir, build_context=build_context)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc


def _emit_plan(plan: SitePlan) -> None:
    typer.secho(f"Site: {plan.title}", bold=True)
    chrome = plan.chrome
    header = chrome.header.file.normalized_path if chrome.header else "(stub)"
    footer = chrome.footer.file.normalized_path if chrome.footer else "(stub)"
    typer.echo(f"  header: {header}")
    typer.echo(f"  footer: {footer}")
    typer.echo(f"  layout: {plan.layout.normalized_path if plan.layout else '(none)'}")
    typer.echo(f"  css config: {plan.config_source or '(default)'}")
    typer.echo("Pages:")
    for page in plan.pages:
        typer.echo(
            f"  - {page.route_path} -> {page.output_path} "
            f"({page.file.normalized_path}, component {page.composition.page_component})"
        )
        for path in page.closure.paths:
            typer.echo(f"      uses {path}")
        for edge in page.closure.unresolved:
            typer.echo(f"      unresolved {edge.specifier} (from {edge.from_path})")


def create_app() -> "typer.Typer":
    """Return the Typer application powering the ``sitebake`` CLI.

    Example:
        >>> import typer
        >>> from sitebake.cli import create_app
        >>> cli = create_app()
        >>> isinstance(cli, typer.Typer)
        True
    """

    app = typer.Typer(
        help=_app_help,
        no_args_is_help=True,
        rich_markup_mode="rich",
        invoke_without_command=False,
        cls=typer.core.TyperGroup,
    )

    @app.callback()
    def main_callback() -> None:
        """Top-level CLI callback ensuring subcommands are dispatched."""

        return None

    @app.command(
        "build",
        help="Compile a project directory or JSON payload into HTML documents.",
    )
    def build_command(  # noqa: PLR0913 - CLI surface area intentionally explicit
        source: Path = typer.Argument(
            ...,
            help="Project directory or JSON payload file.",
        ),
        out: Path = typer.Option(
            Path("dist"),
            "--out",
            "-o",
            help="Directory receiving the generated documents.",
        ),
        title: str | None = typer.Option(
            None,
            "--title",
            "-t",
            help="Site title (overrides the payload and config title).",
        ),
        config_file: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help=f"Path to a {USER_CONFIG_FILENAME} file.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Override the logging level (DEBUG/INFO/WARNING/ERROR).",
        ),
        archive: bool = typer.Option(
            False,
            "--zip",
            help="Also write a timestamped zip archive of the output.",
        ),
    ) -> None:
        config = resolve_config(
            source,
            config_path=config_file,
            cli_overrides=_cli_overrides(log_level=log_level, title=title),
        )
        _configure(config.log_level, out / "logs", source=str(source))
        logger = get_logger(__name__, command="build")

        project = _load(source)
        compiler = SiteCompiler(config)
        try:
            result = compiler.compile(
                project.files,
                title=title or project.title,
                dependencies=project.dependencies,
            )
            report = write_documents(result, out, archive=archive)
        except SitebakeError as exc:
            logger.error("build-failed", source=str(source), error=str(exc))
            raise _fail(f"Build failed: {exc}") from exc

        logger.info(
            "build-complete",
            source=str(source),
            output=str(out),
            documents=len(report.entries),
        )
        typer.secho("Build complete", fg=typer.colors.GREEN, bold=True)
        typer.echo(f"  output: {report.output_dir}")
        typer.echo(f"  manifest: {report.manifest_path}")
        for entry in report.entries:
            typer.echo(f"  - {entry.route} -> {entry.path} ({entry.bytes} bytes)")
        if report.archive_path is not None:
            typer.echo(f"  archive: {report.archive_path}")

    @app.command(
        "inspect",
        help="Print pages, chrome and dependency closures without writing.",
    )
    def inspect_command(
        source: Path = typer.Argument(
            ...,
            help="Project directory or JSON payload file.",
        ),
        config_file: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help=f"Path to a {USER_CONFIG_FILENAME} file.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Override the logging level (DEBUG/INFO/WARNING/ERROR).",
        ),
    ) -> None:
        config = resolve_config(
            source,
            config_path=config_file,
            cli_overrides=_cli_overrides(log_level=log_level),
        )
        _configure(config.log_level)

        project = _load(source)
        try:
            plan = SiteCompiler(config).plan(
                project.files,
                title=project.title,
                dependencies=project.dependencies,
            )
        except SitebakeError as exc:
            raise _fail(f"Inspect failed: {exc}") from exc
        _emit_plan(plan)

    @app.command(
        "init",
        help=f"Write a commented {USER_CONFIG_FILENAME} into a project.",
    )
    def init_command(
        path: Path = typer.Option(
            Path("."),
            "--path",
            "-p",
            help="Directory receiving the config file.",
        ),
        force: bool = typer.Option(
            False,
            "--force",
            "-f",
            help="Overwrite an existing config file.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Logging level stored in the file.",
        ),
    ) -> None:
        try:
            config, config_path, written = init_config(
                directory=path,
                force=force,
                log_level=log_level,
            )
        except (ValidationError, OSError) as exc:
            raise _fail(f"Failed to write config: {exc}") from exc

        if written:
            typer.secho("Config written", fg=typer.colors.GREEN, bold=True)
        else:
            typer.echo("Config exists; use --force to overwrite")
        typer.echo(f"  config: {config_path}")
        typer.echo(f"  defaults: packaged resource ({DEFAULTS_RESOURCE_NAME})")
        typer.echo(f"  log level: {config.log_level}")

    return app


__all__ = ["create_app", "resolve_config"]
