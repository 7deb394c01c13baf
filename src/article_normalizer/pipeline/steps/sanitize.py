"""Pipeline step that sanitizes the serialized fragment."""

import logging
from typing import Optional

from ...errors import SanitizeError
from ...models.events import EventType, ExtractionEvent
from ...security.sanitizer import Sanitizer
from ..base import EventEmitter, ExtractionContext

logger = logging.getLogger(__name__)


class SanitizeStep:
    """
    Pipeline step that runs ctx.fragment through the allowlist sanitizer.

    Extra allowed tags come from the rule when there is one. If the
    sanitizer fails, its script-free fallback is used when it has content;
    otherwise the error propagates and the article fails.
    """

    name = "sanitize"

    def __init__(self, sanitizer: Sanitizer) -> None:
        self._sanitizer = sanitizer

    def execute(
        self,
        ctx: ExtractionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ExtractionContext:
        extra_tags = ctx.rule.allowed_tags if ctx.rule is not None else None
        try:
            ctx.fragment = self._sanitizer.clean(ctx.fragment, extra_tags)
        except SanitizeError as e:
            if not e.fallback_html:
                raise
            logger.warning(f"{ctx.label}: {e}; using script-free fallback")
            ctx.warnings.append(str(e))
            ctx.fragment = e.fallback_html
            if emit:
                emit(ExtractionEvent(type=EventType.SANITIZE_FALLBACK, url=ctx.url, message=str(e)))
        return ctx
