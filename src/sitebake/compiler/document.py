"""Render assembled bundles into self-contained HTML documents.

The bundle text and the utility-CSS config literal are embedded as base64
and decoded in the browser, so no script content ever passes through the
document's markup escaping. The compatibility runtime is rendered from
``resources/templates/runtime.js.j2``.
"""

from __future__ import annotations

import base64
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined
from markupsafe import Markup

from sitebake import __version__
from sitebake.core.config import AppConfig
from sitebake.core.logging import get_logger

from .icons import IconCatalog
from .models import Bundle, OutputDocument, PageMetadata
from .runtime import bootstrap_context
from .sanitizer import clean_css

__all__ = [
    "DOCUMENT_TEMPLATE",
    "DocumentBuilder",
    "decode_payload",
    "encode_payload",
    "template_environment",
]

DOCUMENT_TEMPLATE = "document.html.j2"


def encode_payload(text: str) -> str:
    """Base64-encode UTF-8 ``text`` for embedding in a script tag.

    Example:
        >>> encode_payload("<b>")
        'PGI+'
    """

    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_payload(encoded: str) -> str:
    return base64.b64decode(encoded.encode("ascii")).decode("utf-8")


def _style_safe(css: str) -> Markup:
    # A literal closing tag would end the style element early.
    return Markup(css.replace("</style", "<\\/style").replace("</STYLE", "<\\/STYLE"))


def template_environment() -> Environment:
    """Jinja2 environment over the packaged document templates."""

    return Environment(
        loader=PackageLoader("sitebake", "resources/templates"),
        autoescape=True,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


class DocumentBuilder:
    """Wrap a :class:`Bundle` into one complete :class:`OutputDocument`."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        icon_catalog: IconCatalog | None = None,
        environment: Environment | None = None,
    ) -> None:
        self._config = config or AppConfig()
        if icon_catalog is None:
            icon_catalog = IconCatalog.from_path(self._config.runtime.icon_library_path)
        self._icons = icon_catalog
        self._environment = environment or template_environment()
        self._runtime = bootstrap_context(self._config.runtime)
        self._logger = get_logger(__name__, component="document")

    @property
    def icon_catalog(self) -> IconCatalog:
        return self._icons

    def context(
        self,
        bundle: Bundle,
        metadata: PageMetadata,
        styles: str = "",
        config_literal: str | None = None,
    ) -> dict[str, Any]:
        """Template variables for one document."""

        code = bundle.text
        return {
            "title": metadata.title,
            "version": __version__,
            "html_class": metadata.html_class,
            "body_class": metadata.body_class,
            "dark": metadata.dark,
            "config_b64": encode_payload(config_literal) if config_literal else "",
            "cdn": self._config.cdn,
            "css": _style_safe(clean_css(styles or "")),
            "code_b64": encode_payload(code),
            "runtime": self._runtime,
            "icon_assignments": Markup(self._icons.assignments(code)),
        }

    def render(
        self,
        bundle: Bundle,
        metadata: PageMetadata,
        styles: str = "",
        config_literal: str | None = None,
    ) -> str:
        template = self._environment.get_template(DOCUMENT_TEMPLATE)
        return template.render(
            **self.context(bundle, metadata, styles, config_literal)
        )

    def build(
        self,
        bundle: Bundle,
        metadata: PageMetadata,
        styles: str = "",
        config_literal: str | None = None,
        *,
        route_path: str = "/",
        output_path: str = "index.html",
    ) -> OutputDocument:
        """Render ``bundle`` and return the document served at ``route_path``.

        Args:
            bundle: Assembled fragments and composition for one page.
            metadata: Title, root classes and theme for the document.
            styles: Project CSS; utility-CSS at-directives are stripped.
            config_literal: Utility-CSS config object literal, if any.
            route_path: Route the document is served from.
            output_path: Relative file path handed to the publisher.
        """

        html = self.render(bundle, metadata, styles, config_literal)
        self._logger.info(
            "document-built",
            route=route_path,
            path=output_path,
            bytes=len(html.encode("utf-8")),
            fragments=len(bundle.parts),
        )
        return OutputDocument(
            route_path=route_path,
            output_path=output_path,
            html=html,
            title=metadata.title,
        )
