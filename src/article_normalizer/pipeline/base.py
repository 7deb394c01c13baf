"""Base classes for the extraction pipeline."""

from __future__ import annotations

import inspect
import logging
import re
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Union, runtime_checkable

from bs4 import Tag

from ..errors import EmptyRootError, FetchError, InvalidSelectorError, RuleError, SanitizeError
from ..extraction.dom import DocumentTree
from ..models.config import DEFAULT_ALLOWED_EMBED_HOSTS
from ..models.events import EventType, ExtractionEvent
from ..models.results import ErrorKind, ExtractionResult
from ..models.rules import ExtractionRule

logger = logging.getLogger(__name__)

# Type alias for event emitter function
EventEmitter = Callable[[ExtractionEvent], None]


@dataclass
class ExtractionContext:
    """
    State for one article, accumulated as it moves through the pipeline.

    Attributes:
        url: Page URL
        html: Raw page HTML
        rule: Site rule (rule path only)
        domain_key: Rule key of the page, for log messages
        remove_selectors: Extra selectors removed on the generic path
        allowed_embed_hosts: Hosts whose scripts and iframes are kept
        tree: Working document tree
        roots: Article roots found by the rule
        fragment: Serialized fragment between string stages
        output: Final HTML
        pages: Pages merged into the article
        error: Error message if a step failed
        error_kind: Classification of ``error``
    """

    url: str
    html: str

    rule: Optional[ExtractionRule] = None
    domain_key: Optional[str] = None
    remove_selectors: tuple[str, ...] = ()
    allowed_embed_hosts: frozenset[str] = DEFAULT_ALLOWED_EMBED_HOSTS

    # Content (accumulated through pipeline)
    tree: Optional[DocumentTree] = None
    roots: list[Tag] = field(default_factory=list)
    fragment: str = ""
    output: str = ""
    thumbnail: str = ""
    pages: int = 1
    warnings: list[str] = field(default_factory=list)

    # Status
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def label(self) -> str:
        """Site and page, for log messages."""
        return f"[{self.domain_key}] {self.url}" if self.domain_key else self.url

    def to_result(self) -> ExtractionResult:
        return ExtractionResult(
            url=self.url,
            html="" if self.error else self.output,
            error_kind=self.error_kind,
            error=self.error,
            warnings=list(self.warnings),
            pages=self.pages,
            thumbnail="" if self.error else self.thumbnail,
            domain_key=self.domain_key,
        )


@runtime_checkable
class ExtractionStep(Protocol):
    """
    Protocol for pipeline steps.

    Each step receives the ExtractionContext, processes it, and returns
    the (possibly modified) context. Steps doing I/O may return an
    awaitable instead; such pipelines must be run with
    :meth:`ExtractionPipeline.run_async`.

    Error Handling Contract:
    - Raise an ``ExtractionError`` subclass for expected failures
    - Append to ``ctx.warnings`` for problems that do not stop extraction
    - The pipeline catches exceptions, sets ctx.error and stops

    Example implementation:
        class SerializeBodyStep:
            name = "serialize_body"

            def execute(self, ctx, emit=None):
                ctx.fragment = inner_html(ctx.tree.body())
                return ctx
    """

    name: str

    def execute(
        self,
        ctx: ExtractionContext,
        emit: Optional[EventEmitter] = None,
    ) -> Union[ExtractionContext, Awaitable[ExtractionContext]]:
        """
        Execute this pipeline step.

        Args:
            ctx: The article context with accumulated state
            emit: Optional callback to emit events

        Returns:
            The (possibly modified) context
        """
        ...


def classify_error(error: BaseException) -> ErrorKind:
    """Map a step failure onto an ErrorKind."""
    if isinstance(error, EmptyRootError):
        return ErrorKind.EMPTY_ROOT
    if isinstance(error, InvalidSelectorError):
        return ErrorKind.INVALID_SELECTOR
    if isinstance(error, FetchError):
        return ErrorKind.FETCH
    if isinstance(error, SanitizeError):
        return ErrorKind.SANITIZE
    if isinstance(error, (RuleError, re.error)):
        return ErrorKind.INVALID_RULE
    return ErrorKind.UNEXPECTED


@dataclass
class ExtractionPipeline:
    """
    Pipeline for processing a single article through multiple steps.

    Steps are executed in order. If a step raises, the error is recorded
    in ctx.error and ctx.error_kind and processing stops; the caller gets
    an empty-html result instead of an exception.

    Example:
        pipeline = ExtractionPipeline(steps=[
            ParseStep(),
            ApplyRuleStep(lazy_attrs),
            SanitizeStep(sanitizer),
            NormalizeMediaStep(normalizer),
            FormatStep(),
        ])

        ctx = pipeline.run(ExtractionContext(url=url, html=html, rule=rule))
        if ctx.error:
            logger.error(f"Failed: {ctx.error}")
    """

    steps: list[ExtractionStep]

    def _fail(
        self,
        ctx: ExtractionContext,
        step: ExtractionStep,
        error: Exception,
        emit: Optional[EventEmitter],
    ) -> None:
        ctx.error = f"{step.name}: {error}"
        ctx.error_kind = classify_error(error)
        ctx.output = ""
        if ctx.error_kind == ErrorKind.UNEXPECTED:
            logger.exception(f"{ctx.label}: unexpected failure in {step.name}")
        else:
            logger.warning(f"{ctx.label}: {ctx.error}")

        if emit:
            emit(
                ExtractionEvent(
                    type=EventType.ARTICLE_FAILED,
                    url=ctx.url,
                    error=ctx.error,
                )
            )

    def run(
        self,
        ctx: ExtractionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ExtractionContext:
        """
        Execute every step synchronously.

        Raises:
            TypeError: If a step is asynchronous
        """
        for step in self.steps:
            try:
                result = step.execute(ctx, emit)
            except Exception as e:
                self._fail(ctx, step, e, emit)
                break
            if inspect.isawaitable(result):
                if inspect.iscoroutine(result):
                    result.close()
                raise TypeError(f"Step {step.name!r} is asynchronous; use run_async()")
            ctx = result
        return ctx

    async def run_async(
        self,
        ctx: ExtractionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ExtractionContext:
        """Execute every step, awaiting asynchronous ones."""
        for step in self.steps:
            try:
                result = step.execute(ctx, emit)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                self._fail(ctx, step, e, emit)
                break
            ctx = result
        return ctx

    def add_step(self, step: ExtractionStep) -> "ExtractionPipeline":
        """
        Add a step to the pipeline (fluent API).

        Args:
            step: The step to add

        Returns:
            Self for chaining
        """
        self.steps.append(step)
        return self
