"""Tests for :mod:`sitebake.compiler.paths`."""

from __future__ import annotations

import pytest

from sitebake.compiler.models import ProjectFile
from sitebake.compiler.paths import PathResolver, normalize_path, resolve_relative
from sitebake.core.config import CompilerSettings


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("src/app/page.tsx", "app/page.tsx"),
        ("./src/app/page.tsx", "app/page.tsx"),
        ("app\\components\\Navbar.tsx", "app/components/Navbar.tsx"),
        ("./src/src/lib/util.ts", "lib/util.ts"),
        ("tailwind.config.ts", "tailwind.config.ts"),
    ],
)
def test_normalize_path(raw: str, expected: str) -> None:
    assert normalize_path(raw) == expected


def test_normalize_path_is_idempotent() -> None:
    for raw in ("./src/./src/app/page.tsx", "src\\app\\x.ts", "app/y.js"):
        once = normalize_path(raw)
        assert normalize_path(once) == once


@pytest.mark.parametrize(
    ("from_path", "specifier", "expected"),
    [
        ("app/page.tsx", "./components/Navbar", "app/components/Navbar"),
        ("app/about/page.tsx", "../components/Team", "app/components/Team"),
        ("app/a/b/c/page.tsx", "../../../lib/x", "app/lib/x"),
        ("app/a/b/page.tsx", "./../.././c", "app/c"),
        ("page.tsx", "../../outside", "outside"),
    ],
)
def test_resolve_relative_applies_segments(
    from_path: str, specifier: str, expected: str
) -> None:
    assert resolve_relative(from_path, specifier) == expected


def test_candidate_order_is_exact_then_extensions_then_index() -> None:
    resolver = PathResolver()

    candidates = resolver.resolve("app/page.tsx", "./Hero")

    assert candidates == [
        "app/Hero",
        "app/Hero.tsx",
        "app/Hero.jsx",
        "app/Hero.ts",
        "app/Hero.js",
        "app/Hero/index.tsx",
        "app/Hero/index.jsx",
        "app/Hero/index.ts",
        "app/Hero/index.js",
    ]


def test_explicit_extension_is_not_expanded() -> None:
    resolver = PathResolver()

    assert resolver.resolve("app/page.tsx", "./globals.css") == ["app/globals.css"]
    assert resolver.resolve("app/page.tsx", "./Hero.tsx") == ["app/Hero.tsx"]


def test_alias_prefix_tries_root_with_and_without_app_dir() -> None:
    resolver = PathResolver()

    bases = resolver.base_paths("app/page.tsx", "@/components/Footer")

    assert bases == ["components/Footer", "app/components/Footer"]
    assert resolver.base_paths("app/page.tsx", "~/app/lib/x") == ["app/lib/x", "lib/x"]


def test_root_absolute_and_bare_component_specifiers() -> None:
    resolver = PathResolver()

    assert resolver.base_paths("app/page.tsx", "/components/Nav") == [
        "components/Nav",
        "app/components/Nav",
    ]
    assert resolver.base_paths("app/page.tsx", "components/Nav") == [
        "components/Nav",
        "app/components/Nav",
    ]


def test_external_packages_have_no_candidates() -> None:
    resolver = PathResolver()

    assert resolver.resolve("app/page.tsx", "react") == []
    assert resolver.resolve("app/page.tsx", "framer-motion") == []


@pytest.mark.parametrize("depth", [0, 1, 2, 4])
def test_relative_resolution_finds_target_at_any_depth(depth: int) -> None:
    resolver = PathResolver()
    segments = [f"d{i}" for i in range(depth)]
    from_path = "/".join(["app", *segments, "page.tsx"])
    specifier = ("../" * depth or "./") + "components/Card"
    files = [
        ProjectFile(path="src/app/components/Card.tsx", content=""),
        ProjectFile(path=f"src/{from_path}", content=""),
    ]
    index = resolver.index(files)

    resolved = resolver.resolve_import(index, from_path, specifier)

    assert resolved.resolved
    assert resolved.target is not None
    assert resolver.normalize(resolved.target.path) == "app/components/Card.tsx"


def test_index_prefers_directory_index_after_extensions() -> None:
    resolver = PathResolver()
    index = resolver.index(
        [
            ProjectFile(path="app/ui/index.tsx", content="index"),
            ProjectFile(path="app/ui.ts", content="file"),
        ]
    )

    resolved = resolver.resolve_import(index, "app/page.tsx", "./ui")

    assert resolved.target is not None
    assert resolved.target.content == "file"


def test_unmatched_import_is_not_an_error() -> None:
    resolver = PathResolver()
    index = resolver.index([ProjectFile(path="app/page.tsx", content="")])

    resolved = resolver.resolve_import(index, "app/page.tsx", "./Missing")

    assert not resolved.resolved
    assert resolved.candidates[0] == "app/Missing"


def test_first_duplicate_normalized_path_wins() -> None:
    resolver = PathResolver()
    index = resolver.index(
        [
            ProjectFile(path="src/app/page.tsx", content="first"),
            ProjectFile(path="app/page.tsx", content="second"),
        ]
    )

    assert len(index) == 1
    found = index.get("app/page.tsx")
    assert found is not None and found.content == "first"


def test_custom_extensions_drive_candidates() -> None:
    resolver = PathResolver(CompilerSettings(extensions=(".JSX", "js")))

    assert resolver.resolve("app/page.jsx", "./A") == [
        "app/A",
        "app/A.jsx",
        "app/A.js",
        "app/A/index.jsx",
        "app/A/index.js",
    ]


def test_candidates_for_adds_lowercase_variant() -> None:
    resolver = PathResolver(CompilerSettings(extensions=("tsx",)))

    assert resolver.candidates_for(["components/Navbar"], include_lowercase=True) == [
        "components/Navbar.tsx",
        "components/navbar.tsx",
    ]
