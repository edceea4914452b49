"""Shared pytest fixtures for compiler and CLI tests."""

from __future__ import annotations

import builtins
import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, Mapping

import pytest
import structlog

from sitebake.compiler.models import ProjectFile
from sitebake.compiler.runtime import RuntimeOutcome, ShimRuntime, ShimScope

HOME_PAGE = """\
"use client";
import Navbar from "./components/Navbar";
import Hero from "./components/Hero";
import { Footer } from "@/components/Footer";

export default function Home() {
  return (
    <main>
      <Hero />
    </main>
  );
}
"""

ABOUT_PAGE = """\
import Team from "../components/Team";

export default function About() {
  return (
    <section className="about">
      <Team />
    </section>
  );
}
"""

NAVBAR = """\
"use client";
import Link from "next/link";

interface NavbarProps {
  links?: string[];
}

export default function Navbar({ links }: NavbarProps) {
  return <nav className="bg-gray-950"><Link href="/">Home</Link></nav>;
}
"""

FOOTER = """\
export function Footer() {
  return <footer>(c) Demo</footer>;
}
"""

HERO = """\
import { Button } from "./ui/Button";

export default function Hero() {
  return <header><Button label="Go" /></header>;
}
"""

BUTTON = """\
type ButtonProps = { label: string };

export const Button = ({ label }: ButtonProps) => <button>{label}</button>;
"""

TEAM = """\
export default function Team() {
  return <ul><li>Ada</li></ul>;
}
"""

LAYOUT = """\
import "./globals.css";

export default function RootLayout({ children }: { children: React.ReactNode }) {
  return (
    <html lang="en" className="scroll-smooth">
      <body className={`antialiased ${font.className}`}>{children}</body>
    </html>
  );
}
"""

GLOBALS_CSS = """\
@tailwind base;
@tailwind components;
@tailwind utilities;

.brand { color: rebeccapurple; }
"""

TAILWIND_CONFIG = """\
import type { Config } from "tailwindcss";

const config: Config = {
  darkMode: "class",
  theme: { extend: { colors: { brand: "#663399" } } },
};

export default config;
"""


def _clear_root_handlers() -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        try:
            handler.close()
        except Exception:  # pragma: no cover - close failures are irrelevant
            pass


@pytest.fixture(autouse=True)
def reset_logging_state() -> Iterator[None]:
    """Ensure each test runs with a clean logging configuration."""

    _clear_root_handlers()
    structlog.contextvars.clear_contextvars()
    yield
    _clear_root_handlers()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def make_files() -> Callable[[Mapping[str, str]], list[ProjectFile]]:
    """Return a factory turning ``{path: content}`` into project files."""

    def _make(mapping: Mapping[str, str]) -> list[ProjectFile]:
        return [ProjectFile(path=path, content=content) for path, content in mapping.items()]

    return _make


@pytest.fixture
def site_sources() -> dict[str, str]:
    """A two-page project with chrome, nested sections and styling."""

    return {
        "src/app/page.tsx": HOME_PAGE,
        "src/app/about/page.tsx": ABOUT_PAGE,
        "src/app/layout.tsx": LAYOUT,
        "src/app/globals.css": GLOBALS_CSS,
        "src/app/components/Navbar.tsx": NAVBAR,
        "src/components/Footer.tsx": FOOTER,
        "src/app/components/Hero.tsx": HERO,
        "src/app/components/ui/Button.tsx": BUTTON,
        "src/app/components/Team.tsx": TEAM,
        "tailwind.config.ts": TAILWIND_CONFIG,
        "package.json": '{"name": "demo", "dependencies": {"react": "18.3.1"}}',
    }


@pytest.fixture
def site_files(
    site_sources: dict[str, str],
    make_files: Callable[[Mapping[str, str]], list[ProjectFile]],
) -> list[ProjectFile]:
    return make_files(site_sources)


@pytest.fixture
def site_dir(tmp_path: Path, site_sources: dict[str, str]) -> Path:
    """Materialize :func:`site_sources` as a project directory."""

    root = tmp_path / "site"
    for relative, content in site_sources.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def run_source() -> Callable[..., RuntimeOutcome]:
    """Return a driver running Python source through :meth:`ShimRuntime.run`.

    The shim scope serves as the source's ``locals``, so only names read at
    module level go through it. Function bodies look names up in globals.
    """

    def _run(
        runtime: ShimRuntime,
        source: str,
        *,
        bindings: Mapping[str, Any] | None = None,
    ) -> RuntimeOutcome:
        code = compile(source, "<bundle>", "exec")
        namespace: dict[str, Any] = {"__builtins__": builtins}

        def _execute(scope: ShimScope) -> None:
            exec(code, namespace, scope)

        return runtime.run(_execute, bindings=bindings)

    return _run
