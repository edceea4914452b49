"""Helpers for the ``sitebake init`` command."""

from __future__ import annotations

from pathlib import Path

from sitebake.core.config import (
    AppConfig,
    USER_CONFIG_FILENAME,
    load_config,
    load_packaged_defaults,
    render_user_config,
)


def init_config(
    *,
    directory: Path,
    force: bool = False,
    log_level: str | None = None,
    title: str | None = None,
) -> tuple[AppConfig, Path, bool]:
    """Write a commented ``sitebake.toml`` into ``directory``.

    Args:
        directory: Project directory receiving the config file.
        force: Overwrite an existing config file.
        log_level: Optional override for the configured logging level.
        title: Optional site title stored in the file.

    Returns:
        The rendered configuration, the file path, and whether it was written.
    """

    overrides: dict[str, object] = {}
    if log_level:
        overrides["log_level"] = log_level
    if title:
        overrides["title"] = title

    config = load_config(
        defaults=load_packaged_defaults(),
        cli_overrides=overrides or None,
    )

    config_path = directory / USER_CONFIG_FILENAME
    if config_path.exists() and not force:
        return config, config_path, False

    directory.mkdir(parents=True, exist_ok=True)
    config_path.write_text(render_user_config(config), encoding="utf-8")
    return config, config_path, True


__all__ = ["init_config"]
