"""Project-to-static-document compiler.

Example:
    >>> from sitebake.compiler import ProjectFile, SiteCompiler
    >>> compiler = SiteCompiler()
    >>> isinstance(compiler.resolver.normalize("src/app/page.tsx"), str)
    True
"""

from __future__ import annotations

from .bundle import BundleAssembler, compose
from .chrome import Chrome, ChromeResolver
from .dependencies import DependencyCollector
from .document import DocumentBuilder
from .errors import (
    CompilerError,
    MissingEntryFileError,
    MissingPageFragmentError,
    ProjectLoadError,
    SitebakeError,
)
from .icons import IconCatalog
from .literals import extract_balanced, extract_config_literal
from .models import (
    Bundle,
    CompileResult,
    CompositionPlan,
    DependencyClosure,
    OutputDocument,
    PageMetadata,
    ProjectFile,
    SanitizedFragment,
)
from .paths import PathResolver, ProjectIndex, normalize_path
from .runtime import RuntimeState, ShimRuntime
from .sanitizer import sanitize
from .service import PagePlan, SiteCompiler, SitePlan

__all__ = [
    "Bundle",
    "BundleAssembler",
    "Chrome",
    "ChromeResolver",
    "CompileResult",
    "CompilerError",
    "CompositionPlan",
    "DependencyClosure",
    "DependencyCollector",
    "DocumentBuilder",
    "IconCatalog",
    "MissingEntryFileError",
    "MissingPageFragmentError",
    "OutputDocument",
    "PageMetadata",
    "PagePlan",
    "PathResolver",
    "ProjectFile",
    "ProjectIndex",
    "ProjectLoadError",
    "RuntimeState",
    "SanitizedFragment",
    "ShimRuntime",
    "SiteCompiler",
    "SitePlan",
    "SitebakeError",
    "compose",
    "extract_balanced",
    "extract_config_literal",
    "normalize_path",
    "sanitize",
]
