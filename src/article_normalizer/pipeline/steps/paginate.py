"""Pipeline step that merges continuation pages."""

import logging
from typing import Optional

from ...extraction.pagination import Deadline, PaginationAssembler
from ...http.protocols import PageFetcher
from ...models.events import EventType, ExtractionEvent
from ..base import EventEmitter, ExtractionContext

logger = logging.getLogger(__name__)


class PaginateStep:
    """
    Pipeline step that follows "next page" links and appends their bodies.

    Only runs when the page is recognized as paginated. Failed fetches
    keep whatever was merged so far and are recorded as warnings.

    Example:
        step = PaginateStep(PaginationAssembler(config.pagination), client, Deadline(30))
        ctx = await step.execute(ctx)
        # ctx.pages is the number of merged pages
    """

    name = "paginate"

    def __init__(
        self,
        assembler: PaginationAssembler,
        fetcher: PageFetcher,
        deadline: Optional[Deadline] = None,
    ) -> None:
        self._assembler = assembler
        self._fetcher = fetcher
        self._deadline = deadline

    async def execute(
        self,
        ctx: ExtractionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ExtractionContext:
        outcome = await self._assembler.assemble(ctx.tree, ctx.url, self._fetcher, self._deadline)
        if outcome is None:
            return ctx

        ctx.pages = outcome.total_pages
        ctx.warnings.extend(outcome.warnings)
        if emit:
            emit(
                ExtractionEvent(
                    type=EventType.PAGES_MERGED,
                    url=ctx.url,
                    pages=ctx.pages,
                    message=f"Merged {ctx.pages} pages ({outcome.stopped_reason.value})",
                )
            )
        return ctx
