"""Tests for rule application and custom root locators."""

import pytest
from article_normalizer.errors import EmptyRootError, InvalidSelectorError, RuleError
from article_normalizer.extraction.dom import DocumentTree
from article_normalizer.extraction.rule_engine import apply_rule, locate_roots, serialize_roots
from article_normalizer.models.rules import CustomLocator, ExtractionRule
from article_normalizer.rules import available_locators, register_locator, run_locator


def run(html, **rule_fields):
    tree = DocumentTree(html)
    warnings = []
    roots = apply_rule(tree, ExtractionRule(**rule_fields), warnings=warnings)
    return serialize_roots(roots), warnings


class TestLocateRoots:
    """Root resolution."""

    def test_empty_root_raises(self):
        with pytest.raises(EmptyRootError):
            locate_roots(DocumentTree("<p>x</p>"), ExtractionRule(main_selector="article"))

    def test_invalid_main_selector_raises(self):
        with pytest.raises(InvalidSelectorError):
            locate_roots(DocumentTree("<p>x</p>"), ExtractionRule(main_selector="div["))

    def test_nested_roots_emitted_once(self):
        html, _ = run('<div class="c"><div class="c">x</div></div>', main_selector="div.c")
        assert html == '<div class="c">x</div>'

    def test_selector_group_keeps_document_order(self):
        html, _ = run("<h1>t</h1><section>b</section><footer>f</footer>", main_selector="section, h1")
        assert html == "t\nb"


class TestRemoveSelectors:
    """Removal inside the roots."""

    def test_removed_selectors_have_no_matches(self):
        selectors = ("table", 'div[id*="ad"]', "aside")
        tree = DocumentTree(
            '<article><p>keep</p><table><tr><td>x</td></tr></table><div id="top-ad">ad</div>'
            "<aside>side</aside></article>"
        )
        roots = apply_rule(tree, ExtractionRule(main_selector="article", remove_selectors=selectors))
        for selector in selectors:
            assert all(root.select(selector) == [] for root in roots)
        assert serialize_roots(roots) == "<p>keep</p>"

    def test_invalid_selector_skipped_with_warning(self):
        html, warnings = run(
            "<article><p>keep</p><aside>x</aside></article>",
            main_selector="article",
            remove_selectors=('div[id*="ad"]. div[class*="ad"]', "aside"),
        )
        assert html == "<p>keep</p>"
        assert len(warnings) == 1
        assert "Invalid selector" in warnings[0]

    def test_outside_root_untouched(self):
        tree = DocumentTree("<aside>outside</aside><article><aside>in</aside><p>a</p></article>")
        apply_rule(tree, ExtractionRule(main_selector="article", remove_selectors=("aside",)))
        assert "outside" in tree.to_html()


class TestTransforms:
    """Optional structural transforms."""

    def test_anchor_unwrap(self):
        html, _ = run(
            '<div class="c"><a href="https://x.com/big.jpg"><img src="t.jpg"></a>'
            '<a href="https://x.com/page">link</a></div>',
            main_selector="div.c",
            anchor_unwrap="a",
        )
        assert html.startswith('<img src="https://x.com/big.jpg"')
        assert '<a href="https://x.com/page">link</a>' in html

    def test_lazy_src_promotion(self):
        html, _ = run(
            '<article><img src="dummy.gif" data-lazy-src="real.jpg" alt="a" class="lazy"></article>',
            main_selector="article",
            lazy_src_attr="data-lazy-src",
        )
        assert html == '<img src="real.jpg" alt="a">'

    def test_iframe_src_fix(self):
        html, _ = run(
            '<article><iframe src="//www.youtube.com/embed/x"></iframe></article>',
            main_selector="article",
            iframe_src_fix=True,
        )
        assert html == '<iframe src="https://www.youtube.com/embed/x"></iframe>'

    def test_simplify_video(self):
        html, _ = run(
            '<article><div class="wp-video"><video class="wp-video-shortcode">'
            '<source type="video/mp4" src="https://x.com/v.mp4?_=1"><a href="https://x.com/v.mp4">dl</a>'
            "</video></div></article>",
            main_selector="article",
            simplify_video="div.wp-video",
        )
        assert html == '<video src="https://x.com/v.mp4?_=1" controls></video>'

    def test_remove_empty_tag(self):
        html, _ = run(
            '<article><p></p><p> </p><p><img src="a.jpg"></p><p>t</p></article>',
            main_selector="article",
            remove_empty_tag="p",
        )
        assert html == '<p><img src="a.jpg"></p><p>t</p>'

    def test_noscript_iframe_promoted(self):
        html, _ = run(
            '<article><noscript><iframe data-src="https://www.youtube.com/embed/x"></iframe></noscript>'
            "<noscript><p>enable js</p></noscript></article>",
            main_selector="article",
        )
        assert html == '<iframe src="https://www.youtube.com/embed/x" data-src="https://www.youtube.com/embed/x"></iframe>'

    def test_same_rule_same_result(self):
        source = '<article><a href="https://x.com/b.jpg"><img src="t.jpg"></a><p>x</p></article>'
        first, _ = run(source, main_selector="article", anchor_unwrap="a")
        second, _ = run(source, main_selector="article", anchor_unwrap="a")
        assert first == second


class TestCustomLocators:
    """Named root locators."""

    HTML = (
        "<div><h6>Other</h6><p>no</p>"
        '<h6> 今日の更新画像 </h6><p><img src="a.jpg"></p>'
        "<h6>今日の更新画像</h6><div>not a p</div></div>"
    )

    def test_next_after_heading(self):
        rule = ExtractionRule(
            main_selector={
                "custom": "next_after_heading",
                "params": {"heading": "h6", "text": "今日の更新画像", "sibling": "p"},
            }
        )
        roots = locate_roots(DocumentTree(self.HTML), rule)
        assert len(roots) == 1
        assert serialize_roots(roots) == '<img src="a.jpg">'

    def test_no_heading_is_empty_root(self):
        rule = ExtractionRule(main_selector=CustomLocator(custom="next_after_heading", params={"heading": "h6", "text": "x"}))
        with pytest.raises(EmptyRootError):
            locate_roots(DocumentTree(self.HTML), rule)

    def test_unknown_locator(self):
        with pytest.raises(RuleError, match="Unknown custom locator"):
            run_locator(DocumentTree("").soup, CustomLocator(custom="nope"))

    def test_bad_params(self):
        with pytest.raises(RuleError, match="Bad params"):
            run_locator(DocumentTree("").soup, CustomLocator(custom="next_after_heading", params={"level": 6}))

    def test_register_locator(self):
        @register_locator("first_table")
        def first_table(root):
            table = root.find("table")
            return [table] if table is not None else []

        assert "first_table" in available_locators()
        roots = run_locator(DocumentTree("<table><tr><td>1</td></tr></table>").soup, CustomLocator(custom="first_table"))
        assert len(roots) == 1
