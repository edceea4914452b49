"""Tests for :mod:`sitebake.project`."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from sitebake.compiler.errors import ProjectLoadError
from sitebake.project import ProjectWalker, load_project, read_directory, read_payload


def _write(root: Path, relative: str, content: str | bytes) -> Path:
    target = root / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        target.write_bytes(content)
    else:
        target.write_text(content, encoding="utf-8")
    return target


def test_read_directory_collects_sources_and_dependencies(site_dir: Path) -> None:
    project = read_directory(site_dir)

    paths = {item.path for item in project.files}
    assert "src/app/page.tsx" in paths
    assert "src/components/Footer.tsx" in paths
    assert "tailwind.config.ts" in paths
    assert dict(project.dependencies) == {"react": "18.3.1"}
    assert project.title is None
    assert project.origin == site_dir.resolve()
    assert len(project) == len(paths)


def test_walker_skips_build_dirs_and_gitignored_paths(tmp_path: Path) -> None:
    _write(tmp_path, "app/page.tsx", "export default function Home() {}")
    _write(tmp_path, "node_modules/react/index.js", "module.exports = {};")
    _write(tmp_path, ".next/server/page.js", "")
    _write(tmp_path, ".gitignore", "*.log\nsecrets/\n")
    _write(tmp_path, "debug.log", "noise")
    _write(tmp_path, "secrets/key.ts", "export const key = 1;")
    _write(tmp_path, "app/.gitignore", "draft.tsx\n")
    _write(tmp_path, "app/draft.tsx", "export default function Draft() {}")
    _write(tmp_path, "draft.tsx", "export default function RootDraft() {}")

    root = tmp_path.resolve()
    paths = [path.relative_to(root).as_posix() for path in ProjectWalker(tmp_path).iter_paths()]

    assert paths == [".gitignore", "app/.gitignore", "app/page.tsx", "draft.tsx"]


def test_binary_and_non_utf8_files_are_skipped(tmp_path: Path) -> None:
    _write(tmp_path, "app/page.tsx", "export default function Home() {}")
    _write(tmp_path, "public/logo.png", b"\x89PNG\x00\x00\x00")
    _write(tmp_path, "legacy.txt", "caf\xe9".encode("latin-1"))

    project = read_directory(tmp_path)

    assert [item.path for item in project.files] == ["app/page.tsx"]


def test_invalid_package_manifest_yields_no_dependencies(tmp_path: Path) -> None:
    _write(tmp_path, "app/page.tsx", "")
    _write(tmp_path, "package.json", "{not json")

    assert dict(read_directory(tmp_path).dependencies) == {}


def test_read_payload(tmp_path: Path) -> None:
    payload = tmp_path / "project.json"
    payload.write_text(
        json.dumps(
            {
                "title": "Demo",
                "files": [{"path": "app/page.tsx", "content": "x"}],
                "dependencies": {"react": "18"},
            }
        ),
        encoding="utf-8",
    )

    project = load_project(payload)

    assert project.title == "Demo"
    assert [(item.path, item.content) for item in project.files] == [("app/page.tsx", "x")]
    assert dict(project.dependencies) == {"react": "18"}


@pytest.mark.parametrize(
    "body",
    [
        "{broken",
        json.dumps({"files": [{"path": "", "content": "x"}]}),
        json.dumps({"files": "app/page.tsx"}),
    ],
)
def test_invalid_payloads_raise(tmp_path: Path, body: str) -> None:
    payload = tmp_path / "project.json"
    payload.write_text(body, encoding="utf-8")

    with pytest.raises(ProjectLoadError, match="Invalid project payload"):
        read_payload(payload)


def test_load_project_rejects_missing_and_unsupported_inputs(tmp_path: Path) -> None:
    other = tmp_path / "notes.txt"
    other.write_text("hi", encoding="utf-8")

    with pytest.raises(ProjectLoadError, match="not found"):
        load_project(tmp_path / "missing")
    with pytest.raises(ProjectLoadError, match="Unsupported project input"):
        load_project(other)
