"""Document tree adapter over BeautifulSoup.

All components query and mutate HTML through :class:`DocumentTree` or the
helpers in this module, so selector errors and serialization rules live in a
single place.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.dammit import EntitySubstitution
from bs4.element import Comment, PageElement
from bs4.formatter import HTMLFormatter
from soupsieve import SelectorSyntaxError

from ..errors import InvalidSelectorError

logger = logging.getLogger(__name__)


# Serialized ahead of every other attribute, which follow in name order
LEADING_ATTRIBUTES = ("src", "href")


def _attribute_order(name: str) -> tuple[int, str]:
    if name in LEADING_ATTRIBUTES:
        return LEADING_ATTRIBUTES.index(name), ""
    return len(LEADING_ATTRIBUTES), name


class _CanonicalOrderFormatter(HTMLFormatter):
    """
    HTMLFormatter with a fixed attribute order.

    The order does not depend on how a tag was built, so a tag re-serialized
    by the sanitizer comes out the same as the one the media normalizer made.
    """

    def attributes(self, tag: Tag):
        if tag.attrs is None:
            return []
        return [
            (key, None if self.empty_attributes_are_booleans and value == "" else value)
            for key, value in sorted(tag.attrs.items(), key=lambda item: _attribute_order(item[0]))
        ]


# HTML5 serialization: no "/>" on void elements, bare boolean attributes,
# only &, < and > escaped so non-ASCII text passes through untouched.
HTML_FORMATTER = _CanonicalOrderFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
    empty_attributes_are_booleans=True,
    indent=2,
)

PARSER = "html.parser"


def parse_html(html: Union[str, bytes, None]) -> BeautifulSoup:
    """Parse HTML into a new tree. Never raises on malformed markup."""
    if html is None:
        html = ""
    if isinstance(html, bytes):
        html = html.decode("utf-8", errors="replace")
    return BeautifulSoup(html, PARSER)


def outer_html(node: PageElement) -> str:
    """Serialize a node including its own tag."""
    if isinstance(node, Tag):
        return node.decode(formatter=HTML_FORMATTER)
    if isinstance(node, Comment):
        return ""
    if isinstance(node, NavigableString):
        return EntitySubstitution.substitute_xml(str(node))
    return str(node)


def inner_html(node: Tag) -> str:
    """Serialize the children of a node."""
    return node.decode_contents(formatter=HTML_FORMATTER)


def text_of(node: Tag) -> str:
    """Stripped text content of a node."""
    return node.get_text().strip()


def promote_noscript_iframes(root: Union[BeautifulSoup, Tag]) -> int:
    """
    Replace each ``noscript`` below ``root`` by the iframe it holds.

    The iframe gets its ``data-src`` as ``src`` when it has none. A
    ``noscript`` without an iframe is removed.

    Returns:
        Number of iframes promoted
    """
    promoted = 0
    for noscript in reversed(root.find_all("noscript")):
        if noscript.decomposed or noscript.parent is None:
            continue
        iframe = noscript.find("iframe")
        if iframe is None:
            noscript.decompose()
            continue
        if not iframe.get("src") and iframe.get("data-src"):
            iframe["src"] = iframe["data-src"]
        noscript.replace_with(iframe.extract())
        promoted += 1
    return promoted


def select(root: Union[BeautifulSoup, Tag], selector: str) -> list[Tag]:
    """
    Run a CSS selector below ``root``.

    Raises:
        InvalidSelectorError: If the selector cannot be parsed
    """
    try:
        return list(root.select(selector))
    except (SelectorSyntaxError, NotImplementedError, ValueError) as e:
        raise InvalidSelectorError(selector, str(e).splitlines()[0] if str(e) else "") from e


def remove_matches(root: Union[BeautifulSoup, Tag], selector: str) -> int:
    """
    Remove every element matching ``selector`` below ``root``.

    Returns:
        Number of elements removed

    Raises:
        InvalidSelectorError: If the selector cannot be parsed
    """
    removed = 0
    for element in select(root, selector):
        # A match nested inside an earlier match is already gone
        if element.decomposed:
            continue
        element.decompose()
        removed += 1
    return removed


class DocumentTree:
    """
    Mutable HTML tree owned by a single extraction call.

    Example:
        tree = DocumentTree("<article><p>Hi</p></article>")
        roots = tree.select("article")
        html = tree.to_html()
    """

    def __init__(self, html: Union[str, bytes, None]) -> None:
        self.soup = parse_html(html)

    def select(self, selector: str, root: Optional[Tag] = None) -> list[Tag]:
        return select(root if root is not None else self.soup, selector)

    def select_one(self, selector: str, root: Optional[Tag] = None) -> Optional[Tag]:
        matches = self.select(selector, root)
        return matches[0] if matches else None

    def remove(self, selector: str, root: Optional[Tag] = None) -> int:
        return remove_matches(root if root is not None else self.soup, selector)

    def new_tag(self, name: str, attrs: Optional[dict[str, str]] = None) -> Tag:
        tag = self.soup.new_tag(name)
        for key, value in (attrs or {}).items():
            tag[key] = value
        return tag

    def body(self) -> Union[BeautifulSoup, Tag]:
        """The ``<body>`` element when present, else the whole document."""
        body = self.soup.body
        return body if body is not None else self.soup

    def to_html(self) -> str:
        return self.soup.decode(formatter=HTML_FORMATTER)
