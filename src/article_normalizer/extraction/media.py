"""Media URL resolution and canonical media tags."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union
from urllib.parse import parse_qsl, urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

from ..models.config import DEFAULT_ALLOWED_EMBED_HOSTS, DEFAULT_LAZY_ATTRS
from .dom import DocumentTree, parse_html, select, text_of

logger = logging.getLogger(__name__)

MEDIA_RE = re.compile(r"\.(jpe?g|png|gif|webp|mp4|webm|mov|m4v)(\?.*)?$", re.IGNORECASE)
VIDEO_RE = re.compile(r"\.(mp4|webm|mov|m4v)(\?.*)?$", re.IGNORECASE)
IMGUR_ID_RE = re.compile(r"imgur\.com/([a-zA-Z0-9]{5,})")
IMGUR_BARE_ID_RE = re.compile(r"^[a-zA-Z0-9]{5,}$")
BARE_URL_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)

# Placed on every canonical tag; tags carrying it are never processed again
MARKER_CLASS = "normalized-media"

IMAGE_STYLE = "max-width:100%;height:auto;display:block;"
VIDEO_STYLE = "width:100%;height:auto;display:block;"
IFRAME_STYLE = "aspect-ratio: 16 / 9; width: 100%; height: auto;"

# Tweet iframes size themselves
SELF_SIZING_HOSTS = frozenset({"platform.twitter.com"})

MEDIA_TAGS = ["img", "video", "source"]
UNWRAP_SELECTOR = "a, p, div.wp-video"
EMPTY_PARAGRAPH_KEEP = ["a", "img", "video", "iframe", "input"]


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class MediaCandidate:
    """A resolved media URL and the element it replaces."""

    url: str
    kind: MediaKind
    element: Optional[Tag] = field(default=None, compare=False, repr=False)

    @classmethod
    def from_url(cls, url: str, element: Optional[Tag] = None) -> "MediaCandidate":
        kind = MediaKind.VIDEO if VIDEO_RE.search(url) else MediaKind.IMAGE
        return cls(url=url, kind=kind, element=element)


def is_media_url(url: Optional[str]) -> bool:
    """True when ``url`` ends in an image or video extension, query string allowed."""
    return bool(url) and MEDIA_RE.search(url.strip()) is not None


def _path_is_media(url: str) -> bool:
    # Redirect links such as /out?u=x.jpg must not count as media themselves
    try:
        return MEDIA_RE.search(urlsplit(url).path) is not None
    except ValueError:
        return False


def _is_data_uri(url: str) -> bool:
    return url.lower().startswith("data:")


def _attr(element: Tag, name: str) -> str:
    value = element.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return (value or "").strip()


def _hostname(url: str) -> str:
    try:
        return (urlsplit(url.strip()).hostname or "").lower()
    except ValueError:
        return ""


def is_normalized(element: Tag) -> bool:
    """True when the element already carries the marker class."""
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return MARKER_CLASS in classes


def _lazy_source(element: Tag, lazy_attrs: Iterable[str]) -> Optional[str]:
    for attr in lazy_attrs:
        value = _attr(element, attr)
        if value and is_media_url(value):
            return value
    return None


def _direct_source(element: Tag) -> Optional[str]:
    if element.name == "a":
        href = _attr(element, "href")
        if href and not _is_data_uri(href) and _path_is_media(href):
            return href
        return None
    src = _attr(element, "src")
    if src and not _is_data_uri(src):
        return src
    return None


def _query_source(element: Tag) -> Optional[str]:
    href = _attr(element, "href")
    if not href:
        return None
    try:
        params = parse_qsl(urlsplit(href).query)
    except ValueError:
        return None
    for _, value in params:
        value = value.strip()
        if value.lower().startswith("http") and is_media_url(value):
            return value
    return None


def _text_source(element: Tag) -> Optional[str]:
    text = text_of(element)
    if BARE_URL_RE.match(text) and is_media_url(text):
        return text
    return None


def resolve_media_url(
    element: Tag,
    lazy_attrs: Iterable[str] = DEFAULT_LAZY_ATTRS,
) -> Optional[MediaCandidate]:
    """
    Find the real media URL behind an element.

    Signals are tried in order and the first hit wins:

    1. lazy-loading attributes whose value looks like media
    2. ``src`` (``href`` for anchors, which must point at media); never ``data:``
    3. for anchors, URL-valued query parameters that point at media
    4. the first ``img``/``video``/``source`` descendant, resolved the same way
    5. for anchors, a bare media URL written as the link text

    Args:
        element: Element to resolve
        lazy_attrs: Lazy-loading attribute names in priority order

    Returns:
        MediaCandidate, or None when nothing usable was found
    """
    lazy_attrs = tuple(lazy_attrs)
    url = _lazy_source(element, lazy_attrs) or _direct_source(element)

    if not url and element.name == "a":
        url = _query_source(element)

    if not url and element.name not in ("img", "source"):
        descendant = element.find(MEDIA_TAGS)
        if descendant is not None:
            nested = resolve_media_url(descendant, lazy_attrs)
            url = nested.url if nested else None

    if not url and element.name == "a":
        url = _text_source(element)

    if not url:
        return None
    return MediaCandidate.from_url(url, element)


def build_media_tag(
    soup: BeautifulSoup,
    url: str,
    kind: MediaKind = MediaKind.IMAGE,
    alt: Optional[str] = None,
) -> Tag:
    """Create a canonical ``img`` or ``video`` tag carrying the marker class."""
    if kind == MediaKind.VIDEO:
        tag = soup.new_tag("video")
        tag["src"] = url
        tag["controls"] = ""
        tag["playsinline"] = ""
        tag["style"] = VIDEO_STYLE
    else:
        tag = soup.new_tag("img")
        tag["src"] = url
        if alt:
            tag["alt"] = alt
        tag["style"] = IMAGE_STYLE
    tag["loading"] = "lazy"
    tag["referrerpolicy"] = "no-referrer"
    tag["class"] = [MARKER_CLASS]
    return tag


def _soup_of(tree: Union[DocumentTree, BeautifulSoup]) -> BeautifulSoup:
    return tree.soup if isinstance(tree, DocumentTree) else tree


def convert_imgur_embeds(tree: Union[DocumentTree, BeautifulSoup], any_blockquote: bool = False) -> int:
    """
    Replace imgur blockquote and iframe embeds by canonical images.

    Only ``blockquote.imgur-embed-pub`` counts as an embed unless
    ``any_blockquote`` is set, for sites known to strip that class. The
    imgur ``embed.js`` loader is removed as well.

    Returns:
        Number of embeds converted
    """
    soup = _soup_of(tree)
    converted = 0

    for iframe in select(soup, 'iframe[src*="imgur.com"]'):
        match = IMGUR_ID_RE.search(_attr(iframe, "src"))
        if match:
            image_id = match.group(1)
            iframe.replace_with(build_media_tag(soup, f"https://i.imgur.com/{image_id}.jpg", alt=f"imgur {image_id}"))
            converted += 1

    blockquote_selector = "blockquote[data-id]" if any_blockquote else "blockquote.imgur-embed-pub[data-id]"
    for blockquote in select(soup, blockquote_selector):
        if blockquote.decomposed:
            continue
        image_id = _attr(blockquote, "data-id")
        if not IMGUR_BARE_ID_RE.match(image_id):
            continue
        blockquote.replace_with(build_media_tag(soup, f"https://i.imgur.com/{image_id}.jpg", alt=f"imgur {image_id}"))
        converted += 1

    for script in select(soup, 'script[src*="imgur.com"]'):
        if _attr(script, "src").split("?")[0].endswith("embed.js"):
            script.decompose()

    return converted


def normalize_videos(tree: Union[DocumentTree, BeautifulSoup], lazy_attrs: Iterable[str] = DEFAULT_LAZY_ATTRS) -> int:
    """Collapse ``video`` elements and their ``source`` children into canonical videos."""
    soup = _soup_of(tree)
    lazy_attrs = tuple(lazy_attrs)
    changed = 0
    for video in select(soup, "video"):
        if video.decomposed or is_normalized(video):
            continue
        url = _lazy_source(video, lazy_attrs) or _direct_source(video)
        if not url:
            source = video.find("source", src=True)
            url = _attr(source, "src") if source is not None else ""
        if not url or _is_data_uri(url):
            video.decompose()
        else:
            video.replace_with(build_media_tag(soup, url, MediaKind.VIDEO))
        changed += 1
    return changed


def unwrap_anchored_media(tree: Union[DocumentTree, BeautifulSoup], lazy_attrs: Iterable[str] = DEFAULT_LAZY_ATTRS) -> int:
    """
    Replace links and bare wrappers around media by the media itself.

    Anchors are replaced whenever they resolve to a media URL. Paragraphs
    and video wrappers are replaced only when they hold no text and exactly
    one image or video.
    """
    soup = _soup_of(tree)
    lazy_attrs = tuple(lazy_attrs)
    unwrapped = 0
    # Innermost first, so a wrapper sees its children already unwrapped
    for element in reversed(select(soup, UNWRAP_SELECTOR)):
        if element.decomposed or element.parent is None:
            continue
        if element.find("iframe") is not None:
            continue

        if element.name != "a":
            if text_of(element) or len(element.find_all(["img", "video"])) != 1:
                continue

        candidate = resolve_media_url(element, lazy_attrs)
        if candidate is None or not is_media_url(candidate.url):
            continue
        element.replace_with(build_media_tag(soup, candidate.url, candidate.kind))
        unwrapped += 1
    return unwrapped


def normalize_iframes(
    tree: Union[DocumentTree, BeautifulSoup],
    allowed_embed_hosts: Iterable[str] = DEFAULT_ALLOWED_EMBED_HOSTS,
) -> int:
    """Make iframes from allowed hosts responsive."""
    soup = _soup_of(tree)
    allowed = {host.lower() for host in allowed_embed_hosts}
    changed = 0
    for iframe in select(soup, "iframe[src]"):
        host = _hostname(_attr(iframe, "src"))
        if not host or host not in allowed or host in SELF_SIZING_HOSTS:
            continue
        iframe["width"] = "100%"
        iframe["height"] = "auto"
        iframe["style"] = IFRAME_STYLE
        changed += 1
    return changed


def normalize_images(tree: Union[DocumentTree, BeautifulSoup], lazy_attrs: Iterable[str] = DEFAULT_LAZY_ATTRS) -> int:
    """
    Re-emit every image as a canonical tag.

    Images without a usable URL are removed, except inline ``data:image``
    images, which are left for the formatter. An image whose URL is a video
    becomes a canonical video.
    """
    soup = _soup_of(tree)
    lazy_attrs = tuple(lazy_attrs)
    changed = 0
    for img in select(soup, "img"):
        if img.decomposed or is_normalized(img):
            continue
        candidate = resolve_media_url(img, lazy_attrs)
        if candidate is None:
            if _attr(img, "src").lower().startswith("data:image"):
                continue
            logger.debug(f"Removing image without usable source: {img.attrs}")
            img.decompose()
        else:
            img.replace_with(build_media_tag(soup, candidate.url, candidate.kind, alt=_attr(img, "alt") or None))
        changed += 1
    return changed


def remove_empty_paragraphs(tree: Union[DocumentTree, BeautifulSoup]) -> int:
    """Remove paragraphs with no text and no media, links or embeds."""
    soup = _soup_of(tree)
    removed = 0
    for paragraph in reversed(select(soup, "p")):
        if paragraph.decomposed:
            continue
        if not text_of(paragraph) and paragraph.find(EMPTY_PARAGRAPH_KEEP) is None:
            paragraph.decompose()
            removed += 1
    return removed


class MediaNormalizer:
    """
    Rewrites every media element of a tree into canonical form.

    Example:
        normalizer = MediaNormalizer(unwrap_anchors=True, remove_empty_paragraphs=True)
        tree = DocumentTree(clean_html)
        normalizer.normalize(tree)
    """

    def __init__(
        self,
        lazy_attrs: Iterable[str] = DEFAULT_LAZY_ATTRS,
        allowed_embed_hosts: Iterable[str] = DEFAULT_ALLOWED_EMBED_HOSTS,
        *,
        convert_imgur: bool = True,
        imgur_any_blockquote: bool = False,
        unwrap_anchors: bool = False,
        remove_empty_paragraphs: bool = False,
    ) -> None:
        self.lazy_attrs = tuple(lazy_attrs)
        self.allowed_embed_hosts = frozenset(host.lower() for host in allowed_embed_hosts)
        self.convert_imgur = convert_imgur
        self.imgur_any_blockquote = imgur_any_blockquote
        self.unwrap_anchors = unwrap_anchors
        self.remove_empty_paragraphs = remove_empty_paragraphs

    def normalize(self, tree: Union[DocumentTree, BeautifulSoup]) -> int:
        """
        Normalize media in place.

        Returns:
            Number of elements changed
        """
        changed = 0
        if self.convert_imgur:
            changed += convert_imgur_embeds(tree, self.imgur_any_blockquote)
        changed += normalize_videos(tree, self.lazy_attrs)
        if self.unwrap_anchors:
            changed += unwrap_anchored_media(tree, self.lazy_attrs)
        changed += normalize_iframes(tree, self.allowed_embed_hosts)
        changed += normalize_images(tree, self.lazy_attrs)
        if self.remove_empty_paragraphs:
            changed += remove_empty_paragraphs(tree)
        return changed

    def normalize_html(self, html: str) -> str:
        """Normalize an HTML fragment and serialize it again."""
        tree = DocumentTree(html)
        self.normalize(tree)
        return tree.to_html()


_THUMBNAIL_SKIP = ("logo", "icon", "video.twimg.com/amplify_video")


def find_thumbnail(html: Union[str, BeautifulSoup], page_url: str) -> str:
    """
    Pick a representative image for an article.

    Logos, icons and inline images are skipped. With more than two candidates
    the second-to-last wins, since trailing images are usually share banners.

    Returns:
        Absolute image URL, or "" when the article has no usable image
    """
    soup = html if isinstance(html, BeautifulSoup) else parse_html(html)
    candidates: list[str] = []
    for img in soup.find_all("img"):
        src = _attr(img, "src")
        if not src:
            continue
        lower = src.lower()
        if lower.startswith("data:") or any(marker in lower for marker in _THUMBNAIL_SKIP):
            continue
        try:
            candidates.append(urljoin(page_url, src))
        except ValueError:
            logger.warning(f"Invalid image src {src!r} on page {page_url}")

    if not candidates:
        return ""
    if len(candidates) > 2:
        return candidates[-2]
    return candidates[-1]
