"""Pipeline step that applies a site rule."""

import logging
from collections.abc import Iterable
from typing import Optional

from ...errors import RuleError
from ...extraction.rule_engine import apply_rule, serialize_roots
from ...models.config import DEFAULT_LAZY_ATTRS
from ...models.events import EventType, ExtractionEvent
from ..base import EventEmitter, ExtractionContext

logger = logging.getLogger(__name__)


class ApplyRuleStep:
    """
    Pipeline step that isolates the article with ``ctx.rule``.

    Reads ctx.tree, writes ctx.roots and the serialized ctx.fragment.
    Removal selectors that fail to parse are skipped and reported.

    Example:
        step = ApplyRuleStep(lazy_attrs=config.lazy_attrs)
        ctx = step.execute(ctx)
    """

    name = "apply_rule"

    def __init__(self, lazy_attrs: Iterable[str] = DEFAULT_LAZY_ATTRS) -> None:
        self._lazy_attrs = tuple(lazy_attrs)

    def execute(
        self,
        ctx: ExtractionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ExtractionContext:
        if ctx.rule is None:
            raise RuleError(f"No rule for {ctx.url}")

        seen = len(ctx.warnings)
        ctx.roots = apply_rule(ctx.tree, ctx.rule, self._lazy_attrs, warnings=ctx.warnings)
        ctx.fragment = serialize_roots(ctx.roots)

        if emit:
            for warning in ctx.warnings[seen:]:
                emit(ExtractionEvent(type=EventType.SELECTOR_SKIPPED, url=ctx.url, message=warning))

        logger.debug(f"{ctx.label}: {len(ctx.roots)} root(s) via {ctx.rule.locator_description}")
        return ctx
