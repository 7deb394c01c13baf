"""Tree and string transforms that turn a page into an article fragment."""

from .dom import DocumentTree, inner_html, outer_html, parse_html
from .formatter import FormatOptions, format_output
from .media import MediaCandidate, MediaKind, MediaNormalizer, find_thumbnail, resolve_media_url
from .pagination import Deadline, PaginationAssembler, PaginationOutcome, StopReason
from .rule_engine import apply_rule, locate_roots, serialize_roots

__all__ = [
    "Deadline",
    "DocumentTree",
    "FormatOptions",
    "MediaCandidate",
    "MediaKind",
    "MediaNormalizer",
    "PaginationAssembler",
    "PaginationOutcome",
    "StopReason",
    "apply_rule",
    "find_thumbnail",
    "format_output",
    "inner_html",
    "locate_roots",
    "outer_html",
    "parse_html",
    "resolve_media_url",
    "serialize_roots",
]
