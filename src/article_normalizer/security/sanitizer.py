"""Allowlist-based HTML sanitization.

This is the single security boundary of the engine: every fragment that
reaches the output has passed through :meth:`Sanitizer.clean`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from urllib.parse import urlparse

import bleach
from bleach.css_sanitizer import CSSSanitizer

from ..errors import SanitizeError
from ..extraction.dom import parse_html, promote_noscript_iframes
from ..models.config import DEFAULT_ALLOWED_EMBED_HOSTS

logger = logging.getLogger(__name__)

BASE_ALLOWED_TAGS = frozenset(
    {
        "a",
        "abbr",
        "article",
        "aside",
        "b",
        "blockquote",
        "br",
        "caption",
        "center",
        "cite",
        "code",
        "dd",
        "del",
        "details",
        "div",
        "dl",
        "dt",
        "em",
        "figcaption",
        "figure",
        "font",
        "footer",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "hr",
        "i",
        "img",
        "ins",
        "kbd",
        "li",
        "mark",
        "ol",
        "p",
        "picture",
        "pre",
        "q",
        "rp",
        "rt",
        "ruby",
        "s",
        "section",
        "small",
        "source",
        "span",
        "strike",
        "strong",
        "sub",
        "summary",
        "sup",
        "table",
        "tbody",
        "td",
        "tfoot",
        "th",
        "thead",
        "time",
        "tr",
        "u",
        "ul",
        "video",
    }
)

# Extra tags kept when a rule does not say otherwise
DEFAULT_EXTRA_TAGS = ("iframe", "script", "noscript")

# Needed by the canonical media tags
STRUCTURAL_ATTRIBUTES = frozenset({"src", "alt", "href", "controls", "playsinline", "referrerpolicy"})

PRESENTATION_ATTRIBUTES = frozenset(
    {
        "class",
        "id",
        "style",
        "title",
        "width",
        "height",
        "loading",
        "type",
        "poster",
        "muted",
        "loop",
        "lang",
        "dir",
        "colspan",
        "rowspan",
        "datetime",
        "cite",
        "allow",
        "allowfullscreen",
        "frameborder",
    }
)

ALLOWED_PROTOCOLS = frozenset({"http", "https", "mailto", "data"})

ALLOWED_CSS_PROPERTIES = frozenset(
    {
        "aspect-ratio",
        "background-color",
        "color",
        "display",
        "font-size",
        "font-weight",
        "height",
        "margin",
        "max-width",
        "text-align",
        "width",
    }
)

# Disallowed tags whose content is dropped along with the tag; any other
# disallowed tag is unwrapped and keeps its text.
DROP_CONTENT_TAGS = frozenset(
    {
        "applet",
        "button",
        "canvas",
        "embed",
        "form",
        "frame",
        "frameset",
        "head",
        "iframe",
        "link",
        "math",
        "meta",
        "noscript",
        "object",
        "script",
        "select",
        "style",
        "svg",
        "template",
        "textarea",
        "title",
    }
)

_ACTIVE_BLOCK_RE = re.compile(r"<(script|iframe)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_ACTIVE_TAG_RE = re.compile(r"</?(?:script|iframe)\b[^>]*>", re.IGNORECASE)


def strip_active_content(html: str) -> str:
    """Remove every script and iframe, with content, using plain regexes."""
    html = _ACTIVE_BLOCK_RE.sub("", html or "")
    return _ACTIVE_TAG_RE.sub("", html).strip()


def _allow_attribute(tag: str, name: str, value: str) -> bool:
    if name in STRUCTURAL_ATTRIBUTES or name in PRESENTATION_ATTRIBUTES:
        return True
    # Lazy-loading sources and embed ids are read after sanitization
    return name.startswith("data-")


class Sanitizer:
    """
    Strips every tag and attribute outside the allowlist.

    Example:
        sanitizer = Sanitizer(allowed_embed_hosts={"platform.twitter.com"})
        clean = sanitizer.clean(dirty_html, extra_allowed_tags=["iframe"])
    """

    def __init__(
        self,
        allowed_embed_hosts: Iterable[str] = DEFAULT_ALLOWED_EMBED_HOSTS,
        base_tags: Iterable[str] = BASE_ALLOWED_TAGS,
        css_properties: Iterable[str] = ALLOWED_CSS_PROPERTIES,
    ) -> None:
        """
        Initialize the sanitizer.

        Args:
            allowed_embed_hosts: Hosts whose <script src> may survive
            base_tags: Tags always allowed
            css_properties: CSS properties kept in style attributes
        """
        self.allowed_embed_hosts = frozenset(host.lower() for host in allowed_embed_hosts)
        self._base_tags = frozenset(base_tags)
        self._css_sanitizer = CSSSanitizer(allowed_css_properties=frozenset(css_properties))

    def allowed_tags(self, extra_allowed_tags: Iterable[str] | None = None) -> frozenset[str]:
        """Base allowlist plus the extra tags (defaults when ``None``)."""
        extra = DEFAULT_EXTRA_TAGS if extra_allowed_tags is None else extra_allowed_tags
        return self._base_tags | {tag.lower() for tag in extra}

    def is_allowed_script(self, src: str | None) -> bool:
        """True when a script source points at an allowed embed host."""
        if not src:
            return False
        try:
            hostname = urlparse(src.strip()).hostname
        except ValueError:
            return False
        return bool(hostname) and hostname.lower() in self.allowed_embed_hosts

    def _drop_unsafe_containers(self, html: str, allowed: frozenset[str]) -> str:
        soup = parse_html(html)
        if "noscript" in allowed:
            # bleach would escape the markup inside a kept noscript into text
            promote_noscript_iframes(soup)
        for element in soup.find_all(True):
            if element.decomposed:
                continue
            name = element.name.lower()
            if name in DROP_CONTENT_TAGS and name not in allowed:
                element.decompose()
            elif name == "script" and not self.is_allowed_script(element.get("src")):
                element.decompose()
        return str(soup)

    def clean(self, raw_html: str, extra_allowed_tags: Iterable[str] | None = None) -> str:
        """
        Sanitize an HTML fragment.

        Args:
            raw_html: Untrusted HTML fragment
            extra_allowed_tags: Tags allowed on top of the base set
                (``None`` means iframe, script and noscript)

        Returns:
            Sanitized HTML

        Raises:
            SanitizeError: On unexpected parser failure; ``fallback_html``
                holds the input with scripts and iframes removed
        """
        allowed = self.allowed_tags(extra_allowed_tags)
        try:
            prepared = self._drop_unsafe_containers(raw_html or "", allowed)
            cleaned = bleach.clean(
                prepared,
                tags=allowed,
                attributes=_allow_attribute,
                protocols=ALLOWED_PROTOCOLS,
                strip=True,
                strip_comments=True,
                css_sanitizer=self._css_sanitizer,
            )
        except Exception as e:
            raise SanitizeError(str(e), fallback_html=strip_active_content(raw_html)) from e
        return cleaned.strip()

    def sanitize(self, raw_html: str, extra_allowed_tags: Iterable[str] | None = None) -> str:
        """Like :meth:`clean`, but returns the safe fallback instead of raising."""
        try:
            return self.clean(raw_html, extra_allowed_tags)
        except SanitizeError as e:
            logger.warning(f"{e}; using script-free fallback")
            return e.fallback_html
