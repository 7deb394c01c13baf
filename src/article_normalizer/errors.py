"""Exception hierarchy for the extraction engine.

Every error here is recoverable. Components raise them; the extraction
pipeline catches them and converts them into an ``ExtractionResult`` with an
empty ``html`` and a matching ``ErrorKind``.
"""

from __future__ import annotations


class ExtractionError(Exception):
    """Base class for all extraction errors."""


class EmptyRootError(ExtractionError):
    """The rule's main selector matched no element."""

    def __init__(self, locator: str) -> None:
        super().__init__(f"Main selector matched nothing: {locator}")
        self.locator = locator


class InvalidSelectorError(ExtractionError):
    """A selector expression in a rule could not be parsed."""

    def __init__(self, selector: str, reason: str = "") -> None:
        message = f"Invalid selector: {selector!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.selector = selector


class FetchError(ExtractionError):
    """A page fetch failed, timed out or returned an unusable response."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class SanitizeError(ExtractionError):
    """The sanitizer failed unexpectedly.

    ``fallback_html`` holds the pre-sanitize content with every script and
    iframe removed, which callers may use instead of failing outright.
    """

    def __init__(self, reason: str, fallback_html: str = "") -> None:
        super().__init__(f"Sanitization failed: {reason}")
        self.fallback_html = fallback_html


class RuleError(ExtractionError):
    """A rule is malformed (bad regex, unknown custom locator, bad params)."""
