"""Pipeline steps that build and prepare the document tree."""

import logging
from typing import Optional
from urllib.parse import urljoin

from ...extraction.dom import DocumentTree
from ..base import EventEmitter, ExtractionContext

logger = logging.getLogger(__name__)

# Left as they are when absolutizing
_NON_PATH_PREFIXES = ("javascript:", "#", "data:", "mailto:", "tel:")


class ParseStep:
    """Parse ``ctx.html`` into ``ctx.tree``."""

    name = "parse"

    def execute(
        self,
        ctx: ExtractionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ExtractionContext:
        ctx.tree = DocumentTree(ctx.html)
        return ctx


class AbsolutizeStep:
    """
    Pipeline step that rewrites relative ``src`` and ``href`` values
    against the page URL.

    Values that cannot be resolved are left untouched and reported as
    warnings.
    """

    name = "absolutize"

    def execute(
        self,
        ctx: ExtractionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ExtractionContext:
        for element in ctx.tree.soup.find_all(lambda tag: tag.has_attr("src") or tag.has_attr("href")):
            for attr in ("src", "href"):
                value = element.get(attr)
                if not isinstance(value, str):
                    continue
                value = value.strip()
                if not value or value.lower().startswith(_NON_PATH_PREFIXES):
                    continue
                if value.lower().startswith(("http://", "https://")):
                    continue
                try:
                    element[attr] = urljoin(ctx.url, value)
                except ValueError:
                    message = f"Could not absolutize {attr}={value!r} on {ctx.url}"
                    logger.warning(message)
                    ctx.warnings.append(message)
        return ctx
