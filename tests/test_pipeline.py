"""Tests for the extraction pipeline and its steps."""

import re
from unittest.mock import AsyncMock, MagicMock

import pytest
from article_normalizer.errors import (
    EmptyRootError,
    FetchError,
    InvalidSelectorError,
    RuleError,
    SanitizeError,
)
from article_normalizer.extraction.formatter import FormatOptions
from article_normalizer.extraction.pagination import PaginationAssembler
from article_normalizer.models.events import EventType
from article_normalizer.models.results import ErrorKind
from article_normalizer.models.rules import ExtractionRule
from article_normalizer.pipeline import ExtractionContext, ExtractionPipeline, classify_error
from article_normalizer.pipeline.steps import (
    PaginateStep,
    ParseStep,
    PruneStep,
    SanitizeStep,
    SerializeBodyStep,
)


class FailingStep:
    name = "failing"

    def __init__(self, error):
        self.error = error

    def execute(self, ctx, emit=None):
        raise self.error


class TestClassifyError:
    """Step failures map onto result kinds."""

    @pytest.mark.parametrize(
        "error,kind",
        [
            (EmptyRootError("article"), ErrorKind.EMPTY_ROOT),
            (InvalidSelectorError("div[", "bad"), ErrorKind.INVALID_SELECTOR),
            (FetchError("https://example.com/", "HTTP 500"), ErrorKind.FETCH),
            (SanitizeError("boom"), ErrorKind.SANITIZE),
            (RuleError("bad rule"), ErrorKind.INVALID_RULE),
            (re.error("bad pattern"), ErrorKind.INVALID_RULE),
            (KeyError("x"), ErrorKind.UNEXPECTED),
        ],
    )
    def test_mapping(self, error, kind):
        assert classify_error(error) == kind


class TestExtractionPipeline:
    """Step sequencing and failure handling."""

    def test_runs_steps_in_order(self):
        ctx = ExtractionContext(url="https://example.com/", html="<body><p>hi</p></body>")
        ctx = ExtractionPipeline(steps=[ParseStep(), SerializeBodyStep()]).run(ctx)
        assert ctx.error is None
        assert ctx.fragment == "<p>hi</p>"

    def test_failure_stops_and_emits(self):
        after = MagicMock()
        after.name = "after"
        events = []
        ctx = ExtractionContext(url="https://example.com/", html="")

        pipeline = ExtractionPipeline(steps=[FailingStep(EmptyRootError("article")), after])
        ctx = pipeline.run(ctx, emit=events.append)

        assert ctx.error.startswith("failing: ")
        assert ctx.error_kind == ErrorKind.EMPTY_ROOT
        after.execute.assert_not_called()
        assert [event.type for event in events] == [EventType.ARTICLE_FAILED]
        assert ctx.to_result().html == ""

    def test_sync_run_rejects_async_step(self):
        step = PaginateStep(PaginationAssembler(), AsyncMock())
        ctx = ExtractionContext(url="https://example.com/", html="<p>x</p>")
        with pytest.raises(TypeError, match="run_async"):
            ExtractionPipeline(steps=[step]).run(ctx)

    @pytest.mark.asyncio
    async def test_run_async_awaits_steps(self):
        ctx = ExtractionContext(url="https://example.com/", html="<body><p>only page</p></body>")
        pipeline = ExtractionPipeline(steps=[ParseStep()]).add_step(PaginateStep(PaginationAssembler(), AsyncMock()))
        pipeline.add_step(SerializeBodyStep())

        ctx = await pipeline.run_async(ctx)

        assert ctx.error is None
        assert ctx.pages == 1
        assert "only page" in ctx.fragment


class TestSanitizeStep:
    """Sanitizer fallback handling."""

    def test_uses_fallback(self):
        sanitizer = MagicMock()
        sanitizer.clean.side_effect = SanitizeError("boom", fallback_html="<p>safe</p>")
        events = []
        ctx = ExtractionContext(url="https://example.com/", html="", fragment="<p>safe</p><script></script>")

        ctx = SanitizeStep(sanitizer).execute(ctx, events.append)

        assert ctx.fragment == "<p>safe</p>"
        assert len(ctx.warnings) == 1
        assert events[0].type == EventType.SANITIZE_FALLBACK

    def test_no_fallback_fails(self):
        sanitizer = MagicMock()
        sanitizer.clean.side_effect = SanitizeError("boom")
        ctx = ExtractionContext(url="https://example.com/", html="", fragment="<script></script>")

        ctx = ExtractionPipeline(steps=[SanitizeStep(sanitizer)]).run(ctx)

        assert ctx.error_kind == ErrorKind.SANITIZE


class TestPruneStep:
    """Late matches of removal selectors."""

    def test_removes_late_matches(self):
        rule = ExtractionRule(main_selector="article", remove_selectors=("img[src$='.gif']",))
        ctx = ExtractionContext(
            url="https://example.com/", html="", rule=rule, output='<p>t</p>\n<img src="anim.gif">'
        )
        ctx = PruneStep().execute(ctx)
        assert ctx.output == "<p>t</p>"

    def test_untouched_without_matches(self):
        output = "<p>\n  t\n</p>"
        ctx = ExtractionContext(url="https://example.com/", html="", remove_selectors=("nav",), output=output)
        assert PruneStep(options=FormatOptions(pretty_print=True)).execute(ctx).output == output

    def test_invalid_selector_ignored(self):
        ctx = ExtractionContext(url="https://example.com/", html="", remove_selectors=("div[",), output="<p>t</p>")
        assert PruneStep().execute(ctx).output == "<p>t</p>"
