"""Multi-page article assembly."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional
from urllib.parse import urldefrag, urljoin

from bs4 import Tag
from bs4.element import PageElement

from ..errors import FetchError
from ..http.protocols import PageFetcher
from ..models.config import PaginationConfig
from .dom import DocumentTree

logger = logging.getLogger(__name__)


class Deadline:
    """
    Wall-clock budget for one article.

    Example:
        deadline = Deadline(30.0)
        timeout = deadline.bound(20.0)  # never more than what is left
        if deadline.expired:
            ...
    """

    def __init__(self, seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds

    @classmethod
    def unlimited(cls) -> "Deadline":
        return cls(None)

    @property
    def remaining(self) -> Optional[float]:
        """Seconds left, or None without a limit."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining
        return remaining is not None and remaining <= 0

    def bound(self, timeout: float) -> float:
        """Clamp a per-request timeout to the time left."""
        remaining = self.remaining
        return timeout if remaining is None else min(timeout, remaining)


class PaginationPhase(str, Enum):
    HAS_NEXT_PAGE = "has_next_page"
    DONE = "done"


class StopReason(str, Enum):
    """Why the pagination loop ended."""

    NO_NEXT_LINK = "no_next_link"
    EMPTY_HREF = "empty_href"
    BAD_HREF = "bad_href"
    CYCLE = "cycle"
    PAGE_CAP = "page_cap"
    DEADLINE = "deadline"
    FETCH_FAILED = "fetch_failed"
    EMPTY_PAGE = "empty_page"


@dataclass
class PaginationState:
    """Loop state for one article; discarded once assembly finishes."""

    current_url: str
    next_link: Optional[Tag]
    collected: list[PageElement] = field(default_factory=list)
    visited: set[str] = field(default_factory=set)
    pages_fetched: int = 0
    phase: PaginationPhase = PaginationPhase.HAS_NEXT_PAGE


@dataclass
class PaginationOutcome:
    """
    Result of assembling a paginated article.

    Attributes:
        pages_fetched: Continuation pages fetched (the first page not included)
        stopped_reason: Why the loop ended
        warnings: Recoverable problems, such as a failed page fetch
    """

    pages_fetched: int
    stopped_reason: StopReason
    warnings: list[str] = field(default_factory=list)

    @property
    def total_pages(self) -> int:
        return self.pages_fetched + 1


def _visit_key(url: str) -> str:
    return urldefrag(url)[0]


class PaginationAssembler:
    """
    Follows "next page" links and merges continuation pages into the first.

    Pages are fetched one at a time. Whatever was collected before the loop
    stops is kept, whatever the reason.

    Example:
        assembler = PaginationAssembler(config.pagination)
        outcome = await assembler.assemble(tree, url, fetcher, Deadline(30))
        if outcome:
            logger.info(f"Merged {outcome.total_pages} pages")
    """

    def __init__(self, config: Optional[PaginationConfig] = None, fetch_timeout: float = 20.0) -> None:
        self.config = config or PaginationConfig()
        self.fetch_timeout = fetch_timeout

    def detect(self, tree: DocumentTree) -> bool:
        """True when the container, the body marker and a next link are all present."""
        return all(
            tree.select_one(selector) is not None
            for selector in (
                self.config.container_selector,
                self.config.body_marker_selector,
                self.config.next_link_selector,
            )
        )

    async def _fetch(self, fetcher: PageFetcher, url: str, deadline: Deadline) -> str:
        timeout = deadline.bound(self.fetch_timeout)
        try:
            return await asyncio.wait_for(fetcher.fetch(url, timeout=timeout), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise FetchError(url, f"timed out after {timeout:.1f}s") from e

    async def _advance(
        self,
        state: PaginationState,
        fetcher: PageFetcher,
        deadline: Deadline,
        warnings: list[str],
    ) -> Optional[StopReason]:
        """Fetch the next page into ``state``; return a reason when the loop must stop."""
        if state.next_link is None:
            return StopReason.NO_NEXT_LINK
        href = (state.next_link.get("href") or "").strip()
        if not href:
            return StopReason.EMPTY_HREF

        try:
            next_url = urljoin(state.current_url, href)
            key = _visit_key(next_url)
        except ValueError as e:
            logger.warning(f"Pagination stopped: bad next link {href!r} on {state.current_url}: {e}")
            warnings.append(f"Bad next link {href!r}: {e}")
            return StopReason.BAD_HREF
        if key in state.visited:
            logger.debug(f"Pagination cycle at {next_url}")
            return StopReason.CYCLE
        if state.pages_fetched + 1 >= self.config.max_pages:
            warnings.append(f"Stopped at page cap ({self.config.max_pages}) before {next_url}")
            return StopReason.PAGE_CAP
        if deadline.expired:
            warnings.append(f"Deadline expired before {next_url}")
            return StopReason.DEADLINE

        try:
            html = await self._fetch(fetcher, next_url, deadline)
        except FetchError as e:
            logger.warning(f"Pagination stopped: {e}")
            warnings.append(str(e))
            return StopReason.FETCH_FAILED
        if not html or not html.strip():
            warnings.append(f"Empty page at {next_url}")
            return StopReason.EMPTY_PAGE

        state.visited.add(key)
        state.pages_fetched += 1
        page = DocumentTree(html)
        # Looked up before the body is moved out, since the link usually sits inside it
        state.next_link = page.select_one(self.config.next_link_selector)
        body = page.select_one(self.config.append_target_selector)
        if body is not None:
            state.collected.extend(child.extract() for child in list(body.contents))
        state.current_url = next_url
        logger.debug(f"Fetched page {state.pages_fetched + 1}: {next_url}")
        return None

    async def assemble(
        self,
        tree: DocumentTree,
        page_url: str,
        fetcher: PageFetcher,
        deadline: Optional[Deadline] = None,
    ) -> Optional[PaginationOutcome]:
        """
        Merge every continuation page into ``tree``.

        Args:
            tree: First page, modified in place
            page_url: URL of the first page, used to resolve next links
            fetcher: Page fetcher
            deadline: Budget for the whole article

        Returns:
            PaginationOutcome, or None when the page is not paginated
        """
        if not self.detect(tree):
            return None

        deadline = deadline or Deadline.unlimited()
        state = PaginationState(
            current_url=page_url,
            next_link=tree.select_one(self.config.next_link_selector),
            visited={_visit_key(page_url)},
        )
        warnings: list[str] = []
        reason: Optional[StopReason] = None
        while state.phase is PaginationPhase.HAS_NEXT_PAGE:
            reason = await self._advance(state, fetcher, deadline, warnings)
            if reason is not None:
                state.phase = PaginationPhase.DONE

        target = tree.select_one(self.config.append_target_selector)
        if target is not None:
            for node in state.collected:
                target.append(node)
        tree.remove(self.config.pager_selector)

        logger.info(f"Assembled {state.pages_fetched + 1} page(s) for {page_url} ({reason.value})")
        return PaginationOutcome(pages_fetched=state.pages_fetched, stopped_reason=reason, warnings=warnings)
