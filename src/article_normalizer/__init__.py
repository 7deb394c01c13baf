"""
article_normalizer - Extract the article body of web pages as clean HTML.

Usage:
    from article_normalizer import ExtractionRule, extract_article

    rule = ExtractionRule(main_selector="div.entry-content", remove_selectors=("aside",))
    result = extract_article(html, rule, "https://example.com/archives/1.html")

    async with ArticleNormalizer(EngineConfig()) as normalizer:
        async for event in normalizer.run(urls):
            print(event)
"""

__version__ = "1.0.0"

from .core import (
    ArticleNormalizer,
    extract_article,
    extract_blocking,
    process_generic_html,
    process_generic_html_blocking,
)
from .errors import (
    EmptyRootError,
    ExtractionError,
    FetchError,
    InvalidSelectorError,
    RuleError,
    SanitizeError,
)
from .models import (
    CustomLocator,
    EngineConfig,
    ErrorKind,
    EventType,
    ExtractionEvent,
    ExtractionResult,
    ExtractionRule,
    ExtractionStats,
    NetworkConfig,
    PaginationConfig,
)
from .rules import RuleRepository, YamlRuleRepository, domain_key

__all__ = [
    "__version__",
    # Core
    "ArticleNormalizer",
    "extract_article",
    "extract_blocking",
    "process_generic_html",
    "process_generic_html_blocking",
    # Config and rules
    "EngineConfig",
    "NetworkConfig",
    "PaginationConfig",
    "ExtractionRule",
    "CustomLocator",
    "RuleRepository",
    "YamlRuleRepository",
    "domain_key",
    # Results and events
    "ErrorKind",
    "ExtractionResult",
    "ExtractionStats",
    "EventType",
    "ExtractionEvent",
    # Errors
    "ExtractionError",
    "EmptyRootError",
    "InvalidSelectorError",
    "FetchError",
    "SanitizeError",
    "RuleError",
]
