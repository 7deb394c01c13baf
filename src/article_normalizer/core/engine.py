"""Single-article extraction: the rule path and the generic path."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Optional

from ..extraction.formatter import FormatOptions
from ..extraction.media import MediaNormalizer
from ..extraction.pagination import Deadline, PaginationAssembler
from ..http.protocols import PageFetcher
from ..models.config import EngineConfig
from ..models.results import ErrorKind, ExtractionResult
from ..models.rules import ExtractionRule
from ..pipeline.base import EventEmitter, ExtractionContext, ExtractionPipeline, ExtractionStep
from ..pipeline.steps import (
    AbsolutizeStep,
    ApplyRuleStep,
    FormatStep,
    NormalizeMediaStep,
    PaginateStep,
    ParseStep,
    PruneStep,
    RemoveSelectorsStep,
    SanitizeStep,
    SerializeBodyStep,
    ThumbnailStep,
)
from ..security.sanitizer import Sanitizer

logger = logging.getLogger(__name__)

# Output passes of the generic path
GENERIC_FORMAT = FormatOptions(reduce_br=3, pretty_print=True)


def build_rule_pipeline(
    rule: ExtractionRule,
    config: EngineConfig,
    sanitizer: Sanitizer,
) -> ExtractionPipeline:
    """Steps of the rule path: isolate, sanitize, normalize media, format."""
    normalizer = MediaNormalizer(
        config.lazy_attrs,
        config.allowed_embed_hosts,
        convert_imgur=rule.imgur_to_img,
        imgur_any_blockquote=rule.imgur_to_img,
    )
    return ExtractionPipeline(
        steps=[
            ParseStep(),
            ApplyRuleStep(config.lazy_attrs),
            SanitizeStep(sanitizer),
            NormalizeMediaStep(normalizer),
            FormatStep(),
            PruneStep(),
            ThumbnailStep(),
        ]
    )


def build_generic_pipeline(
    config: EngineConfig,
    sanitizer: Sanitizer,
    fetcher: Optional[PageFetcher] = None,
    deadline: Optional[Deadline] = None,
) -> ExtractionPipeline:
    """
    Steps of the generic path.

    Pagination only runs when a fetcher is given.
    """
    steps: list[ExtractionStep] = [ParseStep(), AbsolutizeStep()]
    if fetcher is not None:
        assembler = PaginationAssembler(config.pagination, fetch_timeout=config.network.timeout)
        steps.append(PaginateStep(assembler, fetcher, deadline))
    steps.extend(
        [
            RemoveSelectorsStep(config.general_remove_selectors),
            SerializeBodyStep(),
            SanitizeStep(sanitizer),
            NormalizeMediaStep(
                MediaNormalizer(
                    config.lazy_attrs,
                    sanitizer.allowed_embed_hosts,
                    unwrap_anchors=True,
                    remove_empty_paragraphs=True,
                )
            ),
            FormatStep(GENERIC_FORMAT),
            PruneStep(config.general_remove_selectors, GENERIC_FORMAT),
            ThumbnailStep(),
        ]
    )
    return ExtractionPipeline(steps=steps)


def extract_article(
    html: Optional[str],
    rule: Optional[ExtractionRule],
    page_url: str,
    *,
    config: Optional[EngineConfig] = None,
    sanitizer: Optional[Sanitizer] = None,
    domain_key: Optional[str] = None,
    emit: Optional[EventEmitter] = None,
) -> ExtractionResult:
    """
    Extract the article body of a page using its site rule.

    Never raises for bad input or a broken rule: failures come back as a
    result with empty ``html`` and ``error_kind`` set.

    Args:
        html: Raw page HTML
        rule: Site rule; ``None`` gives a ``NO_RULE`` result
        page_url: URL the page was fetched from
        config: Engine configuration (defaults if None)
        sanitizer: Shared sanitizer (built from config if None)
        domain_key: Rule key, used in log messages
        emit: Optional event callback

    Returns:
        ExtractionResult

    Example:
        rule = ExtractionRule(main_selector="article", remove_selectors=("aside",))
        result = extract_article(html, rule, "https://example.com/a/1.html")
        if result.ok:
            print(result.html)
    """
    config = config or EngineConfig()
    if rule is None:
        label = domain_key or page_url
        logger.info(f"No rule for {label}")
        return ExtractionResult.failure(page_url, ErrorKind.NO_RULE, f"No rule for {label}", domain_key)

    sanitizer = sanitizer or Sanitizer(config.allowed_embed_hosts)
    pipeline = build_rule_pipeline(rule, config, sanitizer)
    ctx = ExtractionContext(
        url=page_url,
        html=html or "",
        rule=rule,
        domain_key=domain_key,
        allowed_embed_hosts=sanitizer.allowed_embed_hosts,
    )
    ctx = pipeline.run(ctx, emit)
    if not ctx.error and not ctx.output:
        logger.info(f"{ctx.label}: extraction produced no content")
    return ctx.to_result()


async def process_generic_html(
    html: Optional[str],
    page_url: str,
    remove_selectors: Iterable[str] = (),
    allowed_embed_hosts: Optional[Iterable[str]] = None,
    *,
    fetcher: Optional[PageFetcher] = None,
    config: Optional[EngineConfig] = None,
    deadline: Optional[Deadline] = None,
    emit: Optional[EventEmitter] = None,
) -> ExtractionResult:
    """
    Clean a whole page for which no site rule exists.

    Relative URLs are resolved against ``page_url``; when a fetcher is given
    and the page is paginated, continuation pages are merged in first. The
    caller's ``remove_selectors`` are dropped from the document, then it is
    sanitized, its media normalized and the output tidied.

    Args:
        html: Raw page HTML
        page_url: URL the page was fetched from
        remove_selectors: Extra selectors to remove
        allowed_embed_hosts: Overrides ``config.allowed_embed_hosts``
        fetcher: Page fetcher for continuation pages
        config: Engine configuration (defaults if None)
        deadline: Budget for the whole article (from config if None)
        emit: Optional event callback

    Returns:
        ExtractionResult
    """
    config = config or EngineConfig()
    hosts = config.allowed_embed_hosts if allowed_embed_hosts is None else allowed_embed_hosts
    sanitizer = Sanitizer(hosts)
    if deadline is None:
        deadline = Deadline(config.network.article_deadline)

    pipeline = build_generic_pipeline(config, sanitizer, fetcher, deadline)
    ctx = ExtractionContext(
        url=page_url,
        html=html or "",
        remove_selectors=tuple(remove_selectors),
        allowed_embed_hosts=sanitizer.allowed_embed_hosts,
    )
    ctx = await pipeline.run_async(ctx, emit)
    return ctx.to_result()


def process_generic_html_blocking(
    html: Optional[str],
    page_url: str,
    remove_selectors: Iterable[str] = (),
    allowed_embed_hosts: Optional[Iterable[str]] = None,
    **kwargs: object,
) -> ExtractionResult:
    """
    Blocking wrapper around :func:`process_generic_html`.

    WARNING: Do not call from within an existing event loop. Await
    process_generic_html() instead.
    """
    try:
        asyncio.get_running_loop()
        raise RuntimeError(
            "process_generic_html_blocking() called from async context. Await process_generic_html() instead."
        )
    except RuntimeError as e:
        if "no running event loop" not in str(e).lower():
            raise

    return asyncio.run(
        process_generic_html(html, page_url, remove_selectors, allowed_embed_hosts, **kwargs)  # type: ignore[arg-type]
    )
