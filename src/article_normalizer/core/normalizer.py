"""ArticleNormalizer: fetch and extract articles with a streaming event API."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Iterable
from types import TracebackType
from typing import Callable, Optional

from ..concurrency import WorkerPool
from ..errors import FetchError
from ..extraction.pagination import Deadline
from ..http import AsyncHttpClient, PageFetcher
from ..models.config import EngineConfig
from ..models.events import EventType, ExtractionEvent
from ..models.results import ErrorKind, ExtractionResult, ExtractionStats
from ..pipeline.base import EventEmitter
from ..rules import RuleRepository, YamlRuleRepository, domain_key
from ..security.sanitizer import Sanitizer
from .engine import extract_article, process_generic_html

logger = logging.getLogger(__name__)


class ArticleNormalizer:
    """
    Primary API for batch extraction.

    Owns the page fetcher, the rule repository, the sanitizer and a worker
    pool. Articles are extracted concurrently up to
    ``config.max_concurrent``; the synchronous rule path runs in the pool.

    Example:
        async with ArticleNormalizer(EngineConfig(max_concurrent=10)) as normalizer:
            async for event in normalizer.run(urls):
                if event.type == EventType.ARTICLE_FAILED:
                    print(f"Error: {event.url} - {event.error}")

        print(f"Stats: {normalizer.stats.to_dict()}")
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        fetcher: Optional[PageFetcher] = None,
        rules: Optional[RuleRepository] = None,
        sanitizer: Optional[Sanitizer] = None,
    ):
        """
        Initialize the normalizer.

        Args:
            config: Engine configuration (defaults if None)
            fetcher: Page fetcher; an AsyncHttpClient is created and owned if None
            rules: Rule repository; loaded from ``config.rules_file`` or the
                bundled rules if None
            sanitizer: Shared sanitizer (built from config if None)
        """
        self.config = config or EngineConfig()
        self._fetcher = fetcher
        self._owned_client: Optional[AsyncHttpClient] = None
        self._rules = rules
        self._sanitizer = sanitizer or Sanitizer(self.config.allowed_embed_hosts)
        self._pool: Optional[WorkerPool] = None
        self._cancelled = False
        self._stats = ExtractionStats()

    @property
    def stats(self) -> ExtractionStats:
        """Get current extraction statistics."""
        return self._stats

    @property
    def rules(self) -> Optional[RuleRepository]:
        return self._rules

    def cancel(self) -> None:
        """
        Request graceful cancellation of :meth:`run`.

        Articles already finished are reported, the rest are cancelled and
        a CANCELLED event is emitted.
        """
        self._cancelled = True

    async def __aenter__(self) -> ArticleNormalizer:
        """Enter async context and initialize components."""
        if self._rules is None:
            if self.config.rules_file is not None:
                self._rules = YamlRuleRepository.from_file(self.config.rules_file)
            else:
                self._rules = YamlRuleRepository.bundled()

        if self._fetcher is None:
            self._owned_client = AsyncHttpClient.from_config(self.config.network)
            await self._owned_client.__aenter__()
            self._fetcher = self._owned_client

        self._pool = WorkerPool(max_workers=self.config.cpu_workers, max_concurrent=self.config.max_concurrent)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context and cleanup resources."""
        if self._owned_client:
            await self._owned_client.__aexit__(exc_type, exc_val, exc_tb)
            self._owned_client = None
            self._fetcher = None

        if self._pool:
            self._pool.shutdown(wait=True)
            self._pool = None

    def _require_started(self) -> tuple[PageFetcher, WorkerPool]:
        if self._fetcher is None or self._pool is None:
            raise RuntimeError("ArticleNormalizer not initialized. Use 'async with' context manager.")
        return self._fetcher, self._pool

    async def extract_url(
        self,
        url: str,
        *,
        generic: bool = False,
        remove_selectors: Iterable[str] = (),
        emit: Optional[EventEmitter] = None,
    ) -> ExtractionResult:
        """
        Fetch one page and extract its article.

        Args:
            url: Page URL
            generic: Use the generic path even if a rule exists
            remove_selectors: Extra selectors removed on the generic path
            emit: Optional event callback

        Returns:
            ExtractionResult; fetch failures come back as ``ErrorKind.FETCH``
        """
        fetcher, pool = self._require_started()
        key = domain_key(url, self.config.multi_tenant_hosts)
        deadline = Deadline(self.config.network.article_deadline)

        async with pool.slot():
            if emit:
                emit(ExtractionEvent(type=EventType.ARTICLE_STARTED, url=url))
            try:
                html = await fetcher.fetch(url, timeout=deadline.bound(self.config.network.timeout))
            except FetchError as e:
                logger.warning(f"[{key}] {e}")
                result = ExtractionResult.failure(url, ErrorKind.FETCH, str(e), key)
            else:
                if generic:
                    result = await process_generic_html(
                        html,
                        url,
                        remove_selectors,
                        self._sanitizer.allowed_embed_hosts,
                        fetcher=fetcher,
                        config=self.config,
                        deadline=deadline,
                        emit=emit,
                    )
                    result.domain_key = key
                else:
                    rule = self._rules.rule_for(key) if self._rules is not None else None
                    result = await pool.run_cpu_bound(
                        extract_article,
                        html,
                        rule,
                        url,
                        config=self.config,
                        sanitizer=self._sanitizer,
                        domain_key=key,
                        emit=emit,
                    )

        self._stats.record(result)
        return result

    async def extract_many(
        self,
        urls: Iterable[str],
        *,
        generic: bool = False,
        remove_selectors: Iterable[str] = (),
    ) -> list[ExtractionResult]:
        """
        Extract several articles concurrently.

        Returns:
            One result per URL, in input order
        """
        _, pool = self._require_started()
        selectors = tuple(remove_selectors)
        start = time.monotonic()

        async def _extract(url: str) -> ExtractionResult:
            return await self.extract_url(url, generic=generic, remove_selectors=selectors)

        # extract_url holds its own concurrency slot
        results = list(await asyncio.gather(*(_extract(url) for url in urls)))
        self._stats.duration_seconds += time.monotonic() - start
        logger.info(f"Extracted {len(results)} article(s) with up to {pool.max_concurrent} in flight")
        return results

    async def run(
        self,
        urls: Iterable[str],
        *,
        generic: bool = False,
        remove_selectors: Iterable[str] = (),
    ) -> AsyncIterator[ExtractionEvent]:
        """
        Extract articles, yielding events as each one finishes.

        Yields:
            ExtractionEvent objects: STARTED, per-article events in
            completion order, then COMPLETED or CANCELLED

        Example:
            async for event in normalizer.run(urls):
                match event.type:
                    case EventType.ARTICLE_COMPLETED:
                        print(f"{event.current}/{event.total} {event.url}")
                    case EventType.COMPLETED:
                        print("Done!")
        """
        self._require_started()
        url_list = list(urls)
        selectors = tuple(remove_selectors)
        start = time.monotonic()

        yield ExtractionEvent(
            type=EventType.STARTED,
            total=len(url_list),
            message=f"Extracting {len(url_list)} article(s)",
        )

        async def _one(url: str) -> tuple[ExtractionResult, list[ExtractionEvent]]:
            events: list[ExtractionEvent] = []
            result = await self.extract_url(url, generic=generic, remove_selectors=selectors, emit=events.append)
            return result, events

        tasks = [asyncio.ensure_future(_one(url)) for url in url_list]
        try:
            for current, future in enumerate(asyncio.as_completed(tasks), start=1):
                result, events = await future
                for event in events:
                    yield event

                if result.ok:
                    yield ExtractionEvent(
                        type=EventType.ARTICLE_COMPLETED,
                        url=result.url,
                        current=current,
                        total=len(url_list),
                        pages=result.pages,
                    )
                elif result.error_kind == ErrorKind.NO_RULE:
                    yield ExtractionEvent(
                        type=EventType.ARTICLE_SKIPPED,
                        url=result.url,
                        current=current,
                        total=len(url_list),
                        message=result.error,
                    )
                elif not any(event.is_error for event in events):
                    yield ExtractionEvent(
                        type=EventType.ARTICLE_FAILED,
                        url=result.url,
                        current=current,
                        total=len(url_list),
                        error=result.error or "extraction produced no content",
                    )

                if self._cancelled:
                    yield ExtractionEvent(type=EventType.CANCELLED, message="Extraction cancelled by user")
                    return

            yield ExtractionEvent(
                type=EventType.COMPLETED,
                message=(
                    f"Extraction completed: {self._stats.articles_succeeded} succeeded, "
                    f"{self._stats.articles_without_rule} without rule, "
                    f"{self._stats.articles_failed} failed"
                ),
            )
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            self._stats.duration_seconds += time.monotonic() - start


def extract_blocking(
    url: str,
    config: Optional[EngineConfig] = None,
    *,
    generic: bool = False,
    remove_selectors: Iterable[str] = (),
    on_event: Callable[[ExtractionEvent], None] | None = None,
    **kwargs: object,
) -> ExtractionResult:
    """
    Blocking single-URL extraction with optional event callback.

    WARNING: Do not call from within an existing event loop. Use
    ArticleNormalizer instead.

    Args:
        url: Page URL
        config: Engine configuration (defaults if None)
        generic: Use the generic path
        remove_selectors: Extra selectors removed on the generic path
        on_event: Optional callback for events
        **kwargs: Passed to ArticleNormalizer (fetcher, rules, sanitizer)

    Returns:
        ExtractionResult
    """
    try:
        asyncio.get_running_loop()
        raise RuntimeError("extract_blocking() called from async context. Use 'async with ArticleNormalizer()' instead.")
    except RuntimeError as e:
        if "no running event loop" not in str(e).lower():
            raise

    async def _run() -> ExtractionResult:
        async with ArticleNormalizer(config, **kwargs) as normalizer:  # type: ignore[arg-type]
            return await normalizer.extract_url(
                url,
                generic=generic,
                remove_selectors=remove_selectors,
                emit=on_event,
            )

    return asyncio.run(_run())
