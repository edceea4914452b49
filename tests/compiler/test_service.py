"""End-to-end tests for :class:`sitebake.compiler.service.SiteCompiler`."""

from __future__ import annotations

import re

import pytest

from sitebake.compiler.document import DocumentBuilder, decode_payload
from sitebake.compiler.errors import MissingEntryFileError
from sitebake.compiler.icons import IconCatalog
from sitebake.compiler.models import ProjectFile
from sitebake.compiler.service import (
    FALLBACK_PAGE_COMPONENT,
    SiteCompiler,
    route_for_segments,
)
from sitebake.core.config import AppConfig

_CODE_RE = re.compile(r'const source = window\.__sitebakeDecode\("([A-Za-z0-9+/=]*)"\)')


@pytest.fixture
def compiler() -> SiteCompiler:
    config = AppConfig()
    builder = DocumentBuilder(config, icon_catalog=IconCatalog.from_source(""))
    return SiteCompiler(config, builder=builder)


def _bundle_text(html: str) -> str:
    match = _CODE_RE.search(html)
    assert match is not None
    return decode_payload(match.group(1))


def test_two_page_project_yields_one_document_per_page(
    compiler: SiteCompiler, site_files: list[ProjectFile]
) -> None:
    result = compiler.compile(site_files, title="Demo")

    assert [doc.route_path for doc in result.documents] == ["/", "/about"]
    assert [doc.output_path for doc in result.documents] == [
        "index.html",
        "about/index.html",
    ]
    assert [doc.title for doc in result.documents] == ["Demo", "Demo - About"]

    home = _bundle_text(result.document("/").html)
    about = _bundle_text(result.document("/about").html)

    assert "function Home()" in home
    assert "function About()" not in home
    assert "function About()" in about
    assert "function Home()" not in about
    for text in (home, about):
        assert text.count("function Navbar(") == 1
        assert text.count("function Footer(") == 1
        assert "<Navbar />" in text
        assert "<Footer />" in text
    assert "function Hero()" in home
    assert "function Team()" in about
    assert "function Team()" not in home


def test_plan_resolves_chrome_closures_and_metadata(
    compiler: SiteCompiler, site_files: list[ProjectFile]
) -> None:
    site = compiler.plan(site_files, title="Demo")

    assert site.chrome.header is not None
    assert site.chrome.header.file.normalized_path == "app/components/Navbar.tsx"
    assert site.chrome.footer is not None
    assert site.chrome.footer.file.normalized_path == "components/Footer.tsx"
    assert site.layout is not None
    assert site.layout.normalized_path == "app/layout.tsx"

    home, about = site.pages
    assert home.composition.page_component == "Home"
    assert home.closure.paths == (
        "app/components/Hero.tsx",
        "app/components/ui/Button.tsx",
    )
    assert about.composition.page_component == "About"
    assert about.closure.paths == ("app/components/Team.tsx",)

    assert site.metadata.html_class == "scroll-smooth dark"
    assert site.metadata.body_class == "antialiased"
    assert site.metadata.dark is True
    assert site.config_source == "tailwind.config.ts"
    assert site.config_literal.startswith("{")
    assert "brand" in site.config_literal
    assert ".brand" in site.styles


def test_document_metadata_is_shared_by_all_pages(
    compiler: SiteCompiler, site_files: list[ProjectFile]
) -> None:
    result = compiler.compile(site_files, title="Demo")

    for document in result.documents:
        assert '<html lang="en" class="scroll-smooth dark">' in document.html
        assert '<body class="antialiased">' in document.html
        assert "@tailwind" not in document.html


def test_dependencies_pass_through_unchanged(
    compiler: SiteCompiler, make_files
) -> None:
    files = make_files({"app/page.tsx": "export default function Home() {}"})

    result = compiler.compile(files, dependencies={"react": "18.3.1"})

    assert result.as_mapping() == {"react": "18.3.1"}


def test_missing_home_page_is_fatal(compiler: SiteCompiler, make_files) -> None:
    files = make_files({"app/about/page.tsx": "export default function About() {}"})

    with pytest.raises(MissingEntryFileError, match="homepage"):
        compiler.compile(files)


def test_title_falls_back_to_config_then_default(make_files) -> None:
    files = make_files({"app/page.tsx": "export default function Home() {}"})
    builder = DocumentBuilder(icon_catalog=IconCatalog.from_source(""))

    configured = SiteCompiler(AppConfig(title="Configured"), builder=builder)
    default = SiteCompiler(builder=builder)

    assert configured.compile(files).documents[0].title == "Configured"
    assert default.compile(files).documents[0].title == "My Website"
    assert configured.compile(files, title="  Given ").documents[0].title == "Given"


def test_route_groups_and_conflicts(compiler: SiteCompiler, make_files) -> None:
    files = make_files(
        {
            "app/page.tsx": "export default function Home() {}",
            "app/(marketing)/pricing/page.tsx": "export default function Pricing() {}",
            "app/(a)/blog/page.tsx": "export default function GroupBlog() {}",
            "app/blog/page.tsx": "export default function Blog() {}",
            "app/(group)/page.tsx": "export default function Grouped() {}",
        }
    )

    site = compiler.plan(files)

    assert [(page.route_path, page.output_path) for page in site.pages] == [
        ("/", "index.html"),
        ("/blog", "blog/index.html"),
        ("/pricing", "pricing/index.html"),
    ]
    assert site.pages[1].file.normalized_path == "app/(a)/blog/page.tsx"


def test_unextractable_config_falls_back_to_default_literal(
    compiler: SiteCompiler, make_files
) -> None:
    files = make_files(
        {
            "app/page.tsx": "export default function Home() {}",
            "tailwind.config.js": "module.exports = require('./base');",
        }
    )

    site = compiler.plan(files)

    assert site.config_literal == "{}"
    assert site.config_source == "tailwind.config.js"


def test_anonymous_page_uses_fallback_component(
    compiler: SiteCompiler, make_files
) -> None:
    files = make_files(
        {
            "app/page.tsx": "export default function Home() {}",
            "app/docs/page.tsx": "export default () => <main>Docs</main>;",
        }
    )

    docs = compiler.plan(files).pages[1]

    assert docs.route_path == "/docs"
    assert docs.title == "My Website - Docs"
    assert docs.composition.page_component == FALLBACK_PAGE_COMPONENT


@pytest.mark.parametrize(
    ("segments", "strip", "expected"),
    [
        ("about", True, "about"),
        ("(marketing)/pricing", True, "pricing"),
        ("(marketing)/pricing", False, "(marketing)/pricing"),
        ("docs//intro/", True, "docs/intro"),
        ("(only)", True, ""),
    ],
)
def test_route_for_segments(segments: str, strip: bool, expected: str) -> None:
    assert route_for_segments(segments, strip_groups=strip) == expected


def test_page_owned_footer_name_does_not_clash_with_chrome(
    compiler: SiteCompiler, make_files
) -> None:
    files = make_files(
        {
            "app/page.tsx": (
                "const Footer = () => <small>page</small>;\n"
                "export default function Home() { return <main/>; }\n"
            ),
            "components/Footer.tsx": "export function Footer() {\n  return <footer/>;\n}\n",
        }
    )

    text = _bundle_text(compiler.compile(files).documents[0].html)

    assert text.count("const Footer =") == 1
    assert "function Footer(" not in text
    assert "function Footer__components_Footer()" in text
    assert "<Footer__components_Footer />" in text
