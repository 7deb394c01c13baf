"""Tests for configuration, rule, result and event models."""

from pathlib import Path

import pytest
from article_normalizer.models import (
    DEFAULT_ALLOWED_EMBED_HOSTS,
    DEFAULT_LAZY_ATTRS,
    CustomLocator,
    EngineConfig,
    ErrorKind,
    EventType,
    ExtractionEvent,
    ExtractionResult,
    ExtractionRule,
    ExtractionStats,
)
from pydantic import ValidationError


class TestEngineConfig:
    """Engine configuration."""

    def test_defaults(self):
        config = EngineConfig()
        assert config.allowed_embed_hosts == DEFAULT_ALLOWED_EMBED_HOSTS
        assert config.lazy_attrs == DEFAULT_LAZY_ATTRS
        assert config.max_concurrent == 5
        assert config.network.timeout == 20.0
        assert config.pagination.max_pages == 20
        assert "blog.livedoor.jp" in config.multi_tenant_hosts

    def test_hosts_normalized(self):
        config = EngineConfig(allowed_embed_hosts=[" Platform.Twitter.com ", ""])
        assert config.allowed_embed_hosts == frozenset({"platform.twitter.com"})

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            EngineConfig(unknown=True)

    def test_invalid_values(self):
        with pytest.raises(ValidationError):
            EngineConfig(max_concurrent=0)
        with pytest.raises(ValidationError):
            EngineConfig(network={"timeout": -1})

    def test_yaml_round_trip(self):
        config = EngineConfig(
            allowed_embed_hosts=["www.youtube.com", "platform.twitter.com"],
            pagination={"max_pages": 5},
            network={"timeout": 15, "proxy": "http://proxy:8080"},
            rules_file=Path("sites.yaml"),
        )
        loaded = EngineConfig.from_yaml(config.to_yaml())
        assert loaded == config

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("max_concurrent: 2\nnetwork:\n  max_retries: 0\n", encoding="utf-8")
        config = EngineConfig.from_yaml_file(path)
        assert config.max_concurrent == 2
        assert config.network.max_retries == 0

    def test_empty_yaml(self):
        assert EngineConfig.from_yaml("") == EngineConfig()


class TestExtractionRule:
    """Rule model."""

    def test_minimal(self):
        rule = ExtractionRule(main_selector="article")
        assert rule.remove_selectors == ()
        assert rule.allowed_tags is None
        assert rule.locator_description == "article"

    def test_custom_locator_from_dict(self):
        rule = ExtractionRule(main_selector={"custom": "next_after_heading", "params": {"heading": "h6", "text": "t"}})
        assert isinstance(rule.main_selector, CustomLocator)
        assert rule.locator_description == "next_after_heading(heading='h6', text='t')"

    def test_allowed_tags_lowercased(self):
        assert ExtractionRule(main_selector="a", allowed_tags=["IFRAME", " "]).allowed_tags == ("iframe",)

    def test_frozen(self):
        rule = ExtractionRule(main_selector="article")
        with pytest.raises(ValidationError):
            rule.main_selector = "div"

    def test_unknown_field(self):
        with pytest.raises(ValidationError):
            ExtractionRule(main_selector="article", formatPage=True)

    def test_reduce_br_positive(self):
        with pytest.raises(ValidationError):
            ExtractionRule(main_selector="article", reduce_br=0)


class TestResultsAndStats:
    """Results and batch statistics."""

    def test_ok(self):
        assert ExtractionResult(url="u", html="<p>a</p>").ok
        assert not ExtractionResult(url="u").ok
        assert not ExtractionResult.failure("u", ErrorKind.FETCH, "boom").ok

    def test_stats(self):
        stats = ExtractionStats()
        stats.record(ExtractionResult(url="a", html="<p>a</p>", pages=3, warnings=["w"]))
        stats.record(ExtractionResult.failure("b", ErrorKind.NO_RULE, "no rule"))
        stats.record(ExtractionResult.failure("c", ErrorKind.FETCH, "boom"))
        stats.record(ExtractionResult(url="d"))

        assert stats.articles_attempted == 4
        assert stats.articles_succeeded == 1
        assert stats.articles_without_rule == 1
        assert stats.articles_failed == 2
        assert stats.pages_fetched == 3
        assert stats.warnings == 1
        assert stats.failures_by_kind == {"no_rule": 1, "fetch": 1, "empty": 1}
        assert stats.success_rate == 25.0
        assert stats.to_dict()["success_rate"] == 25.0

    def test_empty_stats(self):
        assert ExtractionStats().success_rate == 0.0


class TestEvents:
    """Event model."""

    def test_progress(self):
        event = ExtractionEvent(type=EventType.ARTICLE_COMPLETED, current=1, total=4)
        assert event.progress_percent == 25.0
        assert not event.is_error

    def test_no_progress(self):
        assert ExtractionEvent(type=EventType.STARTED).progress_percent is None

    def test_error(self):
        assert ExtractionEvent(type=EventType.ARTICLE_FAILED, error="x").is_error

    def test_timestamp_is_utc(self):
        assert ExtractionEvent(type=EventType.STARTED).timestamp.tzinfo is not None
