"""Pipeline steps for media normalization and thumbnail selection."""

import logging
from typing import Optional

from ...extraction.dom import DocumentTree
from ...extraction.media import MediaNormalizer, find_thumbnail
from ..base import EventEmitter, ExtractionContext

logger = logging.getLogger(__name__)


class NormalizeMediaStep:
    """Re-emit every image, video and embed in ctx.fragment as a canonical tag."""

    name = "normalize_media"

    def __init__(self, normalizer: MediaNormalizer) -> None:
        self._normalizer = normalizer

    def execute(
        self,
        ctx: ExtractionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ExtractionContext:
        tree = DocumentTree(ctx.fragment)
        changed = self._normalizer.normalize(tree)
        ctx.fragment = tree.to_html()
        logger.debug(f"{ctx.label}: normalized {changed} media element(s)")
        return ctx


class ThumbnailStep:
    """Pick a representative image from the final output."""

    name = "thumbnail"

    def execute(
        self,
        ctx: ExtractionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ExtractionContext:
        if ctx.output:
            ctx.thumbnail = find_thumbnail(ctx.output, ctx.url)
        return ctx
