"""Tests for rule lookup."""

import pytest
from article_normalizer.errors import RuleError
from article_normalizer.models.rules import CustomLocator, ExtractionRule
from article_normalizer.rules import RuleRepository, YamlRuleRepository, domain_key


class TestDomainKey:
    """Rule keys from URLs."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://example.com/a/1.html", "example.com"),
            ("https://www.Example.com/a/1.html", "example.com"),
            ("https://m.example.com/", "example.com"),
            ("https://AMP.example.com/a", "example.com"),
            ("https://news.example.com/a", "news.example.com"),
            ("https://www.m.example.com/", "m.example.com"),
            ("http://blog.livedoor.jp/itsoku/archives/1.html", "blog.livedoor.jp/itsoku"),
            ("http://blog.livedoor.jp/", "blog.livedoor.jp"),
            ("not a url", ""),
        ],
    )
    def test_domain_key(self, url, expected):
        assert domain_key(url) == expected

    def test_custom_multi_tenant_hosts(self):
        assert domain_key("https://blogs.example.org/alice/post", {"blogs.example.org"}) == "blogs.example.org/alice"
        assert domain_key("http://blog.livedoor.jp/itsoku/1.html", set()) == "blog.livedoor.jp"


class TestYamlRuleRepository:
    """Loading and lookup."""

    YAML = """
example.com:
  main_selector: div.entry
  remove_selectors:
    - aside
  reduce_br: 3
Blog.Livedoor.jp/itsoku:
  main_selector:
    custom: next_after_heading
    params:
      heading: h6
      text: Updates
"""

    def test_from_yaml(self):
        rules = YamlRuleRepository.from_yaml(self.YAML)
        assert len(rules) == 2
        rule = rules.rule_for("example.com")
        assert rule.main_selector == "div.entry"
        assert rule.remove_selectors == ("aside",)
        assert rule.reduce_br == 3

    def test_keys_case_insensitive(self):
        rules = YamlRuleRepository.from_yaml(self.YAML)
        assert "blog.livedoor.jp/itsoku" in rules
        assert isinstance(rules.rule_for("BLOG.livedoor.jp/itsoku").main_selector, CustomLocator)
        assert rules.keys() == ["blog.livedoor.jp/itsoku", "example.com"]

    def test_unknown_site(self):
        assert YamlRuleRepository.from_yaml(self.YAML).rule_for("other.com") is None

    def test_satisfies_protocol(self):
        assert isinstance(YamlRuleRepository({}), RuleRepository)

    def test_invalid_rule(self):
        with pytest.raises(RuleError, match="example.com"):
            YamlRuleRepository.from_yaml("example.com:\n  main_selector: div\n  unknown_field: 1\n")

    def test_not_a_mapping(self):
        with pytest.raises(RuleError):
            YamlRuleRepository.from_yaml("- a\n- b\n")

    def test_invalid_yaml(self):
        with pytest.raises(RuleError):
            YamlRuleRepository.from_yaml("example.com: [unclosed")

    def test_empty_document(self):
        assert len(YamlRuleRepository.from_yaml("")) == 0

    def test_yaml_round_trip(self):
        rules = YamlRuleRepository(
            {
                "example.com": ExtractionRule(main_selector="div.entry", allowed_tags=[]),
                "other.com": ExtractionRule(main_selector=CustomLocator(custom="next_after_heading", params={"heading": "h2", "text": "t"})),
            }
        )
        loaded = YamlRuleRepository.from_yaml(rules.to_yaml())
        assert loaded.keys() == rules.keys()
        assert loaded.rule_for("example.com") == rules.rule_for("example.com")
        assert loaded.rule_for("other.com") == rules.rule_for("other.com")

    def test_from_file(self, tmp_path):
        path = tmp_path / "sites.yaml"
        path.write_text(self.YAML, encoding="utf-8")
        assert len(YamlRuleRepository.from_file(path)) == 2

    def test_bundled_rules(self):
        rules = YamlRuleRepository.bundled()
        assert "jin115.com" in rules
        assert rules.rule_for("jin115.com").remove_selectors == ("table",)
        assert isinstance(rules.rule_for("moez-m.com").main_selector, CustomLocator)
        assert rules.rule_for("blog.livedoor.jp/itsoku") is not None
