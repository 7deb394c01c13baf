"""Tests for media resolution and canonical media tags."""

import pytest
from article_normalizer.extraction.dom import DocumentTree
from article_normalizer.extraction.media import (
    MARKER_CLASS,
    MediaCandidate,
    MediaKind,
    MediaNormalizer,
    convert_imgur_embeds,
    find_thumbnail,
    is_media_url,
    remove_empty_paragraphs,
    resolve_media_url,
)


def first(html, selector):
    return DocumentTree(html).select_one(selector)


class TestIsMediaUrl:
    """Media URL pattern."""

    @pytest.mark.parametrize(
        "url",
        ["a.jpg", "https://x.com/b.JPEG", "c.png?w=100", "d.gif", "e.webp", "f.mp4", "g.webm?x=1"],
    )
    def test_media(self, url):
        assert is_media_url(url)

    @pytest.mark.parametrize("url", ["", None, "https://x.com/page", "a.jpg.html", "https://x.com/jpg"])
    def test_not_media(self, url):
        assert not is_media_url(url)

    def test_kind_from_url(self):
        assert MediaCandidate.from_url("clip.mp4?_=1").kind == MediaKind.VIDEO
        assert MediaCandidate.from_url("pic.png").kind == MediaKind.IMAGE


class TestResolveMediaUrl:
    """Source priority."""

    def test_lazy_attribute_beats_src(self):
        img = first('<img src="placeholder.gif" data-src="real.jpg">', "img")
        assert resolve_media_url(img).url == "real.jpg"

    def test_lazy_attribute_must_look_like_media(self):
        img = first('<img src="b.png" data-src="loading">', "img")
        assert resolve_media_url(img).url == "b.png"

    def test_lazy_attribute_order(self):
        img = first('<img data-original="c.jpg" data-lazy-src="b.jpg">', "img")
        assert resolve_media_url(img, ["data-original", "data-lazy-src"]).url == "c.jpg"

    def test_anchor_href_to_media(self):
        anchor = first('<a href="https://x.com/big.jpg"><img src="thumb.jpg"></a>', "a")
        assert resolve_media_url(anchor).url == "https://x.com/big.jpg"

    def test_anchor_query_parameter(self):
        anchor = first('<a href="https://r.example/out?u=https://cdn.example/p.png"><img src="t.gif"></a>', "a")
        assert resolve_media_url(anchor).url == "https://cdn.example/p.png"

    def test_anchor_falls_back_to_descendant(self):
        anchor = first('<a href="https://x.com/page"><img data-src="inner.jpg"></a>', "a")
        assert resolve_media_url(anchor).url == "inner.jpg"

    def test_anchor_text_url(self):
        anchor = first('<a href="https://x.com/page">https://cdn.example/pic.jpg</a>', "a")
        assert resolve_media_url(anchor).url == "https://cdn.example/pic.jpg"

    def test_data_uri_never_returned(self):
        img = first('<img src="data:image/png;base64,AAAA">', "img")
        assert resolve_media_url(img) is None

    def test_nothing_usable(self):
        assert resolve_media_url(first("<img>", "img")) is None
        assert resolve_media_url(first('<a href="https://x.com/page">read more</a>', "a")) is None


class TestNormalizer:
    """Canonical media tags."""

    @pytest.fixture
    def normalizer(self):
        return MediaNormalizer(unwrap_anchors=True, remove_empty_paragraphs=True)

    def test_image_becomes_canonical(self, normalizer):
        html = normalizer.normalize_html('<img src="placeholder.gif" data-src="a.jpg" alt="cat" width="10">')
        assert html.startswith('<img src="a.jpg" alt="cat"')
        assert MARKER_CLASS in html
        assert 'loading="lazy"' in html
        assert 'referrerpolicy="no-referrer"' in html
        assert 'width="' not in html

    def test_image_without_source_removed(self, normalizer):
        assert normalizer.normalize_html("<p>text<img></p>") == "<p>text</p>"

    def test_inline_data_image_kept(self, normalizer):
        html = '<p>hi<img src="data:image/png;base64,AAAA"></p>'
        assert normalizer.normalize_html(html) == html

    def test_linked_image_unwrapped(self, normalizer):
        html = normalizer.normalize_html('<p><a href="https://x.com/big.jpg"><img src="t.jpg"></a></p>')
        assert html.startswith('<img src="https://x.com/big.jpg"')
        assert "<a" not in html
        assert "<p" not in html

    def test_link_to_page_kept(self, normalizer):
        html = normalizer.normalize_html('<p><a href="https://x.com/article">more</a></p>')
        assert html == '<p><a href="https://x.com/article">more</a></p>'

    def test_paragraph_with_text_kept(self, normalizer):
        html = normalizer.normalize_html('<p>caption <img src="a.jpg"></p>')
        assert html.startswith("<p>caption ")
        assert '<img src="a.jpg"' in html

    def test_video_from_source(self, normalizer):
        html = normalizer.normalize_html('<video poster="p.jpg"><source src="clip.mp4" type="video/mp4"></video>')
        assert html.startswith('<video src="clip.mp4" class="normalized-media" controls loading="lazy" playsinline ')
        assert "<source" not in html

    def test_video_without_source_removed(self, normalizer):
        assert normalizer.normalize_html("<p>a</p><video></video>") == "<p>a</p>"

    def test_image_url_to_video(self, normalizer):
        assert normalizer.normalize_html('<img src="clip.mp4">').startswith('<video src="clip.mp4"')

    def test_iframe_from_allowed_host_made_responsive(self):
        normalizer = MediaNormalizer(allowed_embed_hosts={"www.youtube.com", "platform.twitter.com"})
        html = normalizer.normalize_html(
            '<iframe src="https://www.youtube.com/embed/x" width="560" height="315"></iframe>'
            '<iframe src="https://platform.twitter.com/embed/Tweet.html?id=1" width="550"></iframe>'
        )
        assert 'width="100%"' in html
        assert "aspect-ratio" in html
        assert 'width="550"' in html

    def test_empty_paragraphs_removed(self):
        tree = DocumentTree('<p> </p><p><br></p><p><a href="https://x.com/">x</a></p><p>t</p>')
        assert remove_empty_paragraphs(tree) == 2
        assert tree.to_html() == '<p><a href="https://x.com/">x</a></p><p>t</p>'

    @pytest.mark.parametrize(
        "html",
        [
            '<p><a href="https://x.com/big.jpg"><img src="t.jpg"></a></p><p></p>',
            '<div class="wp-video"><video><source src="v.mp4"></video></div><p>caption <img data-src="a.png"></p>',
            '<a href="https://r.example/out?u=https://cdn.example/p.png">https://cdn.example/p.png</a>',
            '<blockquote class="imgur-embed-pub" data-id="abcde"></blockquote><p>x</p>',
        ],
    )
    def test_normalizing_twice_is_a_no_op(self, normalizer, html):
        once = normalizer.normalize_html(html)
        assert normalizer.normalize_html(once) == once


class TestImgur:
    """imgur embed conversion."""

    def test_blockquote_embed(self):
        tree = DocumentTree(
            '<blockquote class="imgur-embed-pub" lang="en" data-id="abcde">'
            '<a href="//imgur.com/abcde">view</a></blockquote>'
            '<script async src="//s.imgur.com/min/embed.js" charset="utf-8"></script>'
        )
        assert convert_imgur_embeds(tree) == 1
        html = tree.to_html()
        assert '<img src="https://i.imgur.com/abcde.jpg"' in html
        assert "embed.js" not in html
        assert "blockquote" not in html

    def test_iframe_embed(self):
        tree = DocumentTree('<iframe src="https://imgur.com/a1b2c3/embed"></iframe>')
        assert convert_imgur_embeds(tree) == 1
        assert '<img src="https://i.imgur.com/a1b2c3.jpg"' in tree.to_html()

    def test_album_id_not_converted(self):
        tree = DocumentTree('<blockquote class="imgur-embed-pub" data-id="a/xyzzy"></blockquote>')
        assert convert_imgur_embeds(tree) == 0

    def test_plain_blockquote_needs_opt_in(self):
        html = '<blockquote data-id="abcde">quote</blockquote>'
        assert convert_imgur_embeds(DocumentTree(html)) == 0
        tree = DocumentTree(html)
        assert convert_imgur_embeds(tree, any_blockquote=True) == 1
        assert '<img src="https://i.imgur.com/abcde.jpg"' in tree.to_html()

    def test_default_normalizer_keeps_plain_blockquote(self):
        html = '<blockquote data-id="abcde12">quote</blockquote>'
        assert MediaNormalizer().normalize_html(html) == html

    def test_normalizer_can_skip_imgur(self):
        normalizer = MediaNormalizer(convert_imgur=False)
        html = '<blockquote data-id="abcde">quote</blockquote>'
        assert normalizer.normalize_html(html) == html


class TestFindThumbnail:
    """Thumbnail selection."""

    def test_second_to_last_of_many(self):
        html = '<img src="/a.jpg"><img src="/b.jpg"><img src="/c.jpg">'
        assert find_thumbnail(html, "https://example.com/post/1") == "https://example.com/b.jpg"

    def test_last_of_two(self):
        html = '<img src="a.jpg"><img src="b.jpg">'
        assert find_thumbnail(html, "https://example.com/post/1") == "https://example.com/post/b.jpg"

    def test_skips_logos_and_inline_images(self):
        html = '<img src="/logo.png"><img src="data:image/png;base64,AAAA"><img src="/photo.jpg">'
        assert find_thumbnail(html, "https://example.com/") == "https://example.com/photo.jpg"

    def test_no_images(self):
        assert find_thumbnail("<p>text</p>", "https://example.com/") == ""
