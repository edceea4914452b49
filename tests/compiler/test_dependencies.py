"""Tests for :mod:`sitebake.compiler.dependencies`."""

from __future__ import annotations

from sitebake.compiler.dependencies import (
    DependencyCollector,
    import_map,
    scan_import_specifiers,
)
from sitebake.compiler.models import ProjectFile
from sitebake.compiler.paths import PathResolver


def _collect(files: dict[str, str], entries: list[str]):
    resolver = PathResolver()
    index = resolver.index(
        ProjectFile(path=path, content=content) for path, content in files.items()
    )
    entry_files = [index.get(path) for path in entries]
    assert all(entry_files)
    return DependencyCollector(resolver).collect(index, entry_files)


def test_scan_covers_from_side_effect_and_reexport_forms() -> None:
    source = (
        'import A from "./a";\n'
        "import { B,\n  C } from './b';\n"
        'import "./side.css";\n'
        'export * from "./barrel";\n'
        'export { D } from "./d";\n'
        'import A2 from "./a";\n'
    )

    assert scan_import_specifiers(source) == (
        "./a",
        "./b",
        "./side.css",
        "./barrel",
        "./d",
    )


def test_import_map_handles_default_named_and_aliases() -> None:
    source = (
        'import Nav from "./Nav";\n'
        'import { Footer as SiteFooter, Links } from "./chrome";\n'
        'import type { Props } from "./types";\n'
        'import * as Icons from "lucide-react";\n'
    )

    mapping = import_map(source)

    assert mapping == {
        "Nav": "./Nav",
        "SiteFooter": "./chrome",
        "Links": "./chrome",
        "Props": "./types",
    }


def test_cycle_terminates_and_excludes_entries() -> None:
    closure = _collect(
        {
            "app/page.tsx": 'import A from "./A";',
            "app/A.tsx": 'import B from "./B";',
            "app/B.tsx": 'import A from "./A";',
        },
        ["app/page.tsx"],
    )

    assert closure.paths == ("app/A.tsx", "app/B.tsx")


def test_cycle_through_entry_excludes_entry() -> None:
    closure = _collect(
        {
            "app/A.tsx": 'import B from "./B";',
            "app/B.tsx": 'import A from "./A";',
        },
        ["app/A.tsx"],
    )

    assert closure.paths == ("app/B.tsx",)


def test_page_importing_navbar_yields_exactly_that_file() -> None:
    closure = _collect(
        {
            "app/page.tsx": 'import Navbar from "./components/Navbar";',
            "app/components/Navbar.tsx": "export default function Navbar() {}",
        },
        ["app/page.tsx"],
    )

    assert closure.paths == ("app/components/Navbar.tsx",)
    assert closure.unresolved == ()


def test_non_source_targets_and_external_packages_are_ignored() -> None:
    closure = _collect(
        {
            "app/page.tsx": (
                'import "./globals.css";\n'
                'import data from "./data.json";\n'
                'import { motion } from "framer-motion";\n'
                'import Gone from "./Gone";\n'
            ),
            "app/globals.css": "body {}",
            "app/data.json": "{}",
        },
        ["app/page.tsx"],
    )

    assert closure.paths == ()
    assert [edge.specifier for edge in closure.unresolved] == ["./Gone"]


def test_output_is_sorted_and_deduplicated() -> None:
    closure = _collect(
        {
            "app/page.tsx": 'import Z from "./z/Z";\nimport A from "./a/A";',
            "app/about/page.tsx": 'import A from "../a/A";',
            "app/z/Z.tsx": 'import Shared from "@/lib/shared";',
            "app/a/A.tsx": 'import Shared from "@/lib/shared";',
            "lib/shared.ts": "export const Shared = 1;",
        },
        ["app/page.tsx", "app/about/page.tsx"],
    )

    assert closure.paths == ("app/a/A.tsx", "app/z/Z.tsx", "lib/shared.ts")
    assert len(closure) == 3


def test_barrel_reexports_are_followed() -> None:
    closure = _collect(
        {
            "app/page.tsx": 'import { Card } from "@/components/ui";',
            "components/ui/index.ts": 'export * from "./Card";',
            "components/ui/Card.tsx": "export function Card() {}",
        },
        ["app/page.tsx"],
    )

    assert closure.paths == ("components/ui/Card.tsx", "components/ui/index.ts")
