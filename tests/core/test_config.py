"""Tests for :mod:`sitebake.core.config`."""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest
from pydantic import ValidationError

from sitebake.core.config import (
    AppConfig,
    CompilerSettings,
    RuntimeSettings,
    env_overrides,
    load_config,
    load_packaged_defaults,
    read_user_config,
    render_user_config,
)


def test_packaged_defaults_match_model_defaults() -> None:
    config = load_config(defaults=load_packaged_defaults())

    assert config == AppConfig()
    assert config.log_level == "WARNING"
    assert config.compiler.extensions == ("tsx", "jsx", "ts", "js")
    assert config.runtime.max_retries == 10


def test_precedence_cli_over_env_over_user() -> None:
    defaults = load_packaged_defaults()
    user = {"log_level": "error", "title": "From file", "runtime": {"max_retries": 4}}
    env = env_overrides({"SITEBAKE_LOG_LEVEL": "info", "SITEBAKE_TITLE": "From env"})

    from_env = load_config(defaults=defaults, user_config=user, env_config=env)
    from_cli = load_config(
        defaults=defaults,
        user_config=user,
        env_config=env,
        cli_overrides={"log_level": "debug"},
    )

    assert from_env.log_level == "INFO"
    assert from_env.title == "From env"
    assert from_env.runtime.max_retries == 4
    assert from_env.runtime.lazy_fallbacks is True
    assert from_cli.log_level == "DEBUG"


def test_env_overrides_ignore_unrelated_and_empty_values() -> None:
    assert env_overrides({"SITEBAKE_LOG_LEVEL": "", "HOME": "/root"}) == {}


def test_non_mapping_section_is_rejected() -> None:
    with pytest.raises(TypeError):
        load_config(defaults=load_packaged_defaults(), user_config={"runtime": 3})


def test_invalid_values_fail_validation() -> None:
    with pytest.raises(ValidationError):
        RuntimeSettings(max_retries=-1)
    with pytest.raises(ValidationError):
        CompilerSettings(extensions=())
    with pytest.raises(ValidationError):
        CompilerSettings(app_dir="/")


def test_extensions_are_normalized() -> None:
    settings = CompilerSettings(extensions=(".TSX", "jsx", "tsx"))

    assert settings.extensions == ("tsx", "jsx")


def test_blank_icon_library_path_is_none() -> None:
    assert RuntimeSettings(icon_library_path="  ").icon_library_path is None


def test_read_user_config(tmp_path: Path) -> None:
    path = tmp_path / "sitebake.toml"

    assert read_user_config(path) == {}

    path.write_text('title = "Demo"\n[compiler]\napp_dir = "pages"\n', encoding="utf-8")

    assert read_user_config(path) == {"title": "Demo", "compiler": {"app_dir": "pages"}}


def test_render_user_config_round_trips() -> None:
    config = load_config(
        defaults=load_packaged_defaults(),
        cli_overrides={"title": "Demo", "runtime": {"icon_library_path": "/tmp/lucide.js"}},
    )

    rendered = render_user_config(config)
    parsed = tomllib.loads(rendered)

    assert rendered.startswith("# Generated by sitebake init")
    assert parsed["title"] == "Demo"
    assert parsed["runtime"]["icon_library_path"] == "/tmp/lucide.js"
    assert load_config(defaults=load_packaged_defaults(), user_config=parsed) == config


def test_render_user_config_without_comments() -> None:
    rendered = render_user_config(AppConfig(), include_comments=False)

    assert not rendered.startswith("#")
    assert "title" not in tomllib.loads(rendered)
