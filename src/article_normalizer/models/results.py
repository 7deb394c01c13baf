"""Structured extraction results and batch statistics."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Why an extraction produced no output."""

    EMPTY_ROOT = "empty_root"
    INVALID_SELECTOR = "invalid_selector"
    FETCH = "fetch"
    SANITIZE = "sanitize"
    INVALID_RULE = "invalid_rule"
    NO_RULE = "no_rule"
    UNEXPECTED = "unexpected"


@dataclass
class ExtractionResult:
    """
    Outcome of extracting one article.

    An empty ``html`` always means the extraction failed; ``error_kind`` and
    ``error`` say why. Recoverable problems that did not stop the extraction
    (a skipped selector, a failed pagination fetch) are listed in
    ``warnings``.

    Example:
        result = extract_article(html, rule, url)
        if result.ok:
            store(result.html)
        else:
            logger.info(f"{url}: {result.error_kind}")
    """

    url: str
    html: str = ""
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    pages: int = 1
    thumbnail: str = ""
    domain_key: Optional[str] = None

    @property
    def ok(self) -> bool:
        return bool(self.html) and self.error_kind is None

    @classmethod
    def failure(
        cls,
        url: str,
        kind: ErrorKind,
        error: str,
        domain_key: Optional[str] = None,
    ) -> "ExtractionResult":
        return cls(url=url, error_kind=kind, error=error, domain_key=domain_key)


@dataclass
class ExtractionStats:
    """Cumulative statistics for a batch of extractions."""

    articles_attempted: int = 0
    articles_succeeded: int = 0
    articles_failed: int = 0
    articles_without_rule: int = 0
    pages_fetched: int = 0
    warnings: int = 0
    duration_seconds: float = 0.0
    failures_by_kind: dict[str, int] = field(default_factory=dict)

    def record(self, result: ExtractionResult) -> None:
        """Fold one result into the totals."""
        self.articles_attempted += 1
        self.warnings += len(result.warnings)
        if result.ok:
            self.articles_succeeded += 1
            self.pages_fetched += result.pages
            return

        if result.error_kind == ErrorKind.NO_RULE:
            self.articles_without_rule += 1
        else:
            self.articles_failed += 1
        kind = result.error_kind.value if result.error_kind else "empty"
        self.failures_by_kind[kind] = self.failures_by_kind.get(kind, 0) + 1

    @property
    def success_rate(self) -> float:
        """Calculate success rate as a percentage."""
        if self.articles_attempted == 0:
            return 0.0
        return (self.articles_succeeded / self.articles_attempted) * 100

    def to_dict(self) -> dict:
        """Convert stats to dictionary for serialization."""
        return {
            "articles_attempted": self.articles_attempted,
            "articles_succeeded": self.articles_succeeded,
            "articles_failed": self.articles_failed,
            "articles_without_rule": self.articles_without_rule,
            "pages_fetched": self.pages_fetched,
            "warnings": self.warnings,
            "failures_by_kind": dict(self.failures_by_kind),
            "duration_seconds": round(self.duration_seconds, 2),
            "success_rate": round(self.success_rate, 1),
        }
