"""Pipeline steps for the generic (rule-less) path."""

import logging
from collections.abc import Iterable
from typing import Optional

from ...errors import InvalidSelectorError
from ...extraction.dom import inner_html
from ..base import EventEmitter, ExtractionContext

logger = logging.getLogger(__name__)


class RemoveSelectorsStep:
    """
    Remove unwanted elements from the whole document.

    Runs the engine-wide selectors first, then ``ctx.remove_selectors``.
    Invalid selectors are skipped with a warning.
    """

    name = "remove_selectors"

    def __init__(self, general_selectors: Iterable[str] = ()) -> None:
        self._general_selectors = tuple(general_selectors)

    def execute(
        self,
        ctx: ExtractionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ExtractionContext:
        for selector in self._general_selectors + tuple(ctx.remove_selectors):
            try:
                ctx.tree.remove(selector)
            except InvalidSelectorError as e:
                logger.warning(f"{ctx.label}: skipping removal selector: {e}")
                ctx.warnings.append(str(e))
        return ctx


class SerializeBodyStep:
    """Serialize the children of ``<body>`` (or the whole fragment) into ctx.fragment."""

    name = "serialize_body"

    def execute(
        self,
        ctx: ExtractionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ExtractionContext:
        ctx.fragment = inner_html(ctx.tree.body())
        return ctx
