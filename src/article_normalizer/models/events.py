"""Event types for the streaming extraction API."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class EventType(str, Enum):
    """Types of events emitted during extraction."""

    # Lifecycle events
    STARTED = "started"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    # Per-article events
    ARTICLE_STARTED = "article_started"
    ARTICLE_COMPLETED = "article_completed"
    ARTICLE_FAILED = "article_failed"
    ARTICLE_SKIPPED = "article_skipped"

    # Processing events
    PAGES_MERGED = "pages_merged"
    SELECTOR_SKIPPED = "selector_skipped"
    SANITIZE_FALLBACK = "sanitize_fallback"


@dataclass
class ExtractionEvent:
    """
    Event emitted during extraction.

    Example:
        async for event in normalizer.run(urls):
            if event.type == EventType.ARTICLE_FAILED:
                print(f"Error: {event.url} - {event.error}")
            elif event.type == EventType.ARTICLE_COMPLETED:
                print(f"{event.current}/{event.total} done")
    """

    type: EventType

    # Timestamp (always UTC)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    url: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None

    # Progress tracking
    current: Optional[int] = None
    total: Optional[int] = None

    pages: Optional[int] = None

    @property
    def progress_percent(self) -> Optional[float]:
        """Calculate progress percentage if current and total are set."""
        if self.current is not None and self.total and self.total > 0:
            return (self.current / self.total) * 100
        return None

    @property
    def is_error(self) -> bool:
        return self.type == EventType.ARTICLE_FAILED
