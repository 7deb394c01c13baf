"""Per-site rule application: root location, removals and structural transforms."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Optional

from bs4 import Tag

from ..errors import EmptyRootError, InvalidSelectorError
from ..models.config import DEFAULT_LAZY_ATTRS
from ..models.rules import CustomLocator, ExtractionRule
from ..rules.locators import run_locator
from .dom import DocumentTree, inner_html, promote_noscript_iframes, remove_matches, select, text_of
from .media import MEDIA_TAGS, VIDEO_RE, build_media_tag, is_media_url, resolve_media_url

logger = logging.getLogger(__name__)

# An element holding any of these is not empty even without text
EMBEDDED_CONTENT = ["img", "video", "source", "picture", "iframe", "audio", "embed", "object"]


def _outermost(roots: list[Tag]) -> list[Tag]:
    """Drop roots nested inside another root so content is not emitted twice."""
    ids = {id(root) for root in roots}
    return [root for root in roots if not any(id(parent) in ids for parent in root.parents)]


def locate_roots(tree: DocumentTree, rule: ExtractionRule) -> list[Tag]:
    """
    Resolve the rule's main selector.

    Raises:
        EmptyRootError: If nothing matched
        InvalidSelectorError: If the main selector cannot be parsed
        RuleError: If a custom locator is unknown or misconfigured
    """
    if isinstance(rule.main_selector, CustomLocator):
        roots = run_locator(tree.soup, rule.main_selector)
    else:
        roots = tree.select(rule.main_selector)
    if not roots:
        raise EmptyRootError(rule.locator_description)
    return _outermost(roots)


def _remove_selectors(roots: list[Tag], selectors: Iterable[str], warnings: list[str]) -> None:
    for selector in selectors:
        try:
            removed = sum(remove_matches(root, selector) for root in roots)
        except InvalidSelectorError as e:
            logger.warning(f"Skipping removal selector: {e}")
            warnings.append(str(e))
            continue
        if removed:
            logger.debug(f"Removed {removed} element(s) matching {selector!r}")


def _unwrap_anchors(tree: DocumentTree, roots: list[Tag], selector: str, lazy_attrs: tuple[str, ...]) -> None:
    for root in roots:
        for wrapper in reversed(select(root, selector)):
            if wrapper.decomposed or wrapper.find(MEDIA_TAGS) is None:
                continue
            candidate = resolve_media_url(wrapper, lazy_attrs)
            if candidate is None or not is_media_url(candidate.url):
                continue
            wrapper.replace_with(build_media_tag(tree.soup, candidate.url, candidate.kind))


def _promote_lazy_src(roots: list[Tag], attr: str) -> None:
    for root in roots:
        for img in root.find_all("img", attrs={attr: True}):
            value = img.get(attr)
            if isinstance(value, list):
                value = " ".join(value)
            value = (value or "").strip()
            if not value:
                continue
            alt = img.get("alt")
            img.attrs = {"src": value}
            if alt:
                img["alt"] = alt


def _fix_iframe_src(roots: list[Tag]) -> None:
    for root in roots:
        for iframe in root.find_all("iframe", src=True):
            src = iframe["src"].strip()
            if src.startswith("//"):
                iframe["src"] = f"https:{src}"


def _mp4_source(container: Tag) -> Optional[str]:
    for source in container.find_all("source", src=True):
        src = source["src"].strip()
        kind = (source.get("type") or "").lower()
        if src and (kind == "video/mp4" or VIDEO_RE.search(src)):
            return src
    return None


def _simplify_videos(tree: DocumentTree, roots: list[Tag], selector: str) -> None:
    for root in roots:
        for container in reversed(select(root, selector)):
            if container.decomposed:
                continue
            src = _mp4_source(container)
            if src:
                video = tree.new_tag("video", {"src": src, "controls": ""})
                container.replace_with(video)


def _remove_empty(roots: list[Tag], selector: str) -> None:
    for root in roots:
        for element in reversed(select(root, selector)):
            if element.decomposed:
                continue
            if not text_of(element) and element.find(EMBEDDED_CONTENT) is None:
                element.decompose()


def apply_rule(
    tree: DocumentTree,
    rule: ExtractionRule,
    lazy_attrs: Iterable[str] = DEFAULT_LAZY_ATTRS,
    warnings: Optional[list[str]] = None,
) -> list[Tag]:
    """
    Isolate the article roots and apply the rule's structural transforms.

    Transforms run in a fixed order: anchor unwrap, lazy-src promotion,
    iframe src fix, video simplification, empty-tag removal, then
    noscript iframe promotion (always on).

    Args:
        tree: Document to transform in place
        rule: Site rule
        lazy_attrs: Lazy-loading attributes used when unwrapping anchors
        warnings: Collects messages about skipped selectors

    Returns:
        The article root elements, in document order

    Raises:
        EmptyRootError: If the main selector matched nothing
        InvalidSelectorError: If the main selector or a transform selector is invalid
        RuleError: If a custom locator is unknown or misconfigured
    """
    if warnings is None:
        warnings = []
    lazy = tuple(lazy_attrs)
    if rule.lazy_src_attr and rule.lazy_src_attr not in lazy:
        lazy = (rule.lazy_src_attr,) + lazy

    roots = locate_roots(tree, rule)
    _remove_selectors(roots, rule.remove_selectors, warnings)

    if rule.anchor_unwrap:
        _unwrap_anchors(tree, roots, rule.anchor_unwrap, lazy)
    if rule.lazy_src_attr:
        _promote_lazy_src(roots, rule.lazy_src_attr)
    if rule.iframe_src_fix:
        _fix_iframe_src(roots)
    if rule.simplify_video:
        _simplify_videos(tree, roots, rule.simplify_video)
    if rule.remove_empty_tag:
        _remove_empty(roots, rule.remove_empty_tag)
    for root in roots:
        promote_noscript_iframes(root)

    return roots


def serialize_roots(roots: Iterable[Tag]) -> str:
    """Join the inner HTML of every root with newlines."""
    return "\n".join(inner_html(root) for root in roots)
