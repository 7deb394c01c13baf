"""HTML sanitization."""

from .sanitizer import (
    BASE_ALLOWED_TAGS,
    DEFAULT_EXTRA_TAGS,
    STRUCTURAL_ATTRIBUTES,
    Sanitizer,
    strip_active_content,
)

__all__ = [
    "BASE_ALLOWED_TAGS",
    "DEFAULT_EXTRA_TAGS",
    "STRUCTURAL_ATTRIBUTES",
    "Sanitizer",
    "strip_active_content",
]
