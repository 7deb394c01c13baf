"""Pipeline steps for the output string passes."""

import logging
from collections.abc import Iterable
from typing import Optional

from ...errors import InvalidSelectorError
from ...extraction.dom import DocumentTree
from ...extraction.formatter import FormatOptions, format_output
from ..base import EventEmitter, ExtractionContext

logger = logging.getLogger(__name__)


def _options_for(ctx: ExtractionContext, options: Optional[FormatOptions]) -> FormatOptions:
    if options is not None:
        return options
    return FormatOptions.from_rule(ctx.rule) if ctx.rule is not None else FormatOptions()


class FormatStep:
    """
    Pipeline step that turns ctx.fragment into the final ctx.output.

    Uses the given options, or derives them from ctx.rule.
    """

    name = "format"

    def __init__(self, options: Optional[FormatOptions] = None) -> None:
        self._options = options

    def execute(
        self,
        ctx: ExtractionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ExtractionContext:
        ctx.output = format_output(ctx.fragment, _options_for(ctx, self._options))
        return ctx


class PruneStep:
    """
    Pipeline step that removes whatever still matches a removal selector
    in ctx.output.

    Stages after the first removal can create new matches, such as a
    promoted lazy source or a child lifted out of an unwrapped tag. The
    output is only re-serialized when something was removed.
    """

    name = "prune"

    def __init__(
        self,
        general_selectors: Iterable[str] = (),
        options: Optional[FormatOptions] = None,
    ) -> None:
        self._general_selectors = tuple(general_selectors)
        self._options = options

    def execute(
        self,
        ctx: ExtractionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ExtractionContext:
        selectors = self._general_selectors + tuple(ctx.remove_selectors)
        if ctx.rule is not None:
            selectors += tuple(ctx.rule.remove_selectors)
        if not selectors or not ctx.output:
            return ctx

        tree = DocumentTree(ctx.output)
        removed = 0
        for selector in selectors:
            try:
                removed += tree.remove(selector)
            except InvalidSelectorError:
                # Already reported when the selector first ran
                continue
        if removed:
            pretty = _options_for(ctx, self._options).pretty_print
            ctx.output = format_output(tree.to_html(), FormatOptions(pretty_print=pretty))
            logger.debug(f"{ctx.label}: pruned {removed} late match(es)")
        return ctx
