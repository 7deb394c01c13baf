"""Named root locators for articles whose root has no CSS selector.

Rules refer to these by name (``CustomLocator.custom``), so rule files stay
pure data. Keep the set small: anything a selector group can express
(``"div.a, div.b"``) does not belong here.
"""

from __future__ import annotations

import logging
from typing import Callable, Union

import soupsieve
from bs4 import BeautifulSoup, Tag

from ..errors import InvalidSelectorError, RuleError
from ..extraction.dom import select, text_of
from ..models.rules import CustomLocator

logger = logging.getLogger(__name__)

Locator = Callable[..., list[Tag]]

_LOCATORS: dict[str, Locator] = {}


def register_locator(name: str) -> Callable[[Locator], Locator]:
    """Register a locator under ``name`` (decorator)."""

    def decorator(func: Locator) -> Locator:
        _LOCATORS[name] = func
        return func

    return decorator


def available_locators() -> list[str]:
    return sorted(_LOCATORS)


def _matches(element: Tag, selector: str) -> bool:
    try:
        return soupsieve.match(selector, element)
    except (soupsieve.SelectorSyntaxError, NotImplementedError, ValueError) as e:
        raise InvalidSelectorError(selector, str(e).splitlines()[0] if str(e) else "") from e


@register_locator("next_after_heading")
def next_after_heading(
    root: Union[BeautifulSoup, Tag],
    heading: str,
    text: str,
    sibling: str = "*",
) -> list[Tag]:
    """
    Elements matching ``sibling`` right after a heading with the given text.

    Args:
        root: Document to search
        heading: Selector of the heading elements
        text: Exact heading text, compared after stripping whitespace
        sibling: Selector the following element must match
    """
    wanted = text.strip()
    found: list[Tag] = []
    for candidate in select(root, heading):
        if text_of(candidate) != wanted:
            continue
        following = candidate.find_next_sibling(True)
        if following is not None and _matches(following, sibling):
            found.append(following)
    return found


def run_locator(root: Union[BeautifulSoup, Tag], locator: CustomLocator) -> list[Tag]:
    """
    Run a registered locator.

    Raises:
        RuleError: If the locator is unknown or its params don't fit
    """
    func = _LOCATORS.get(locator.custom)
    if func is None:
        raise RuleError(f"Unknown custom locator: {locator.custom!r} (available: {', '.join(available_locators())})")
    try:
        return func(root, **locator.params)
    except TypeError as e:
        raise RuleError(f"Bad params for locator {locator.describe()}: {e}") from e
