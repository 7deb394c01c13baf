"""Extraction entry points."""

from .engine import (
    GENERIC_FORMAT,
    build_generic_pipeline,
    build_rule_pipeline,
    extract_article,
    process_generic_html,
    process_generic_html_blocking,
)
from .normalizer import ArticleNormalizer, extract_blocking

__all__ = [
    "GENERIC_FORMAT",
    "ArticleNormalizer",
    "build_generic_pipeline",
    "build_rule_pipeline",
    "extract_article",
    "extract_blocking",
    "process_generic_html",
    "process_generic_html_blocking",
]
