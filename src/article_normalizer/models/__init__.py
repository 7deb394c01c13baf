"""Configuration, rule and result models."""

from .config import (
    DEFAULT_ALLOWED_EMBED_HOSTS,
    DEFAULT_LAZY_ATTRS,
    EngineConfig,
    NetworkConfig,
    PaginationConfig,
)
from .events import EventType, ExtractionEvent
from .results import ErrorKind, ExtractionResult, ExtractionStats
from .rules import CustomLocator, ExtractionRule, RootLocator

__all__ = [
    # Config
    "DEFAULT_ALLOWED_EMBED_HOSTS",
    "DEFAULT_LAZY_ATTRS",
    "EngineConfig",
    "NetworkConfig",
    "PaginationConfig",
    # Rules
    "CustomLocator",
    "ExtractionRule",
    "RootLocator",
    # Events
    "EventType",
    "ExtractionEvent",
    # Results
    "ErrorKind",
    "ExtractionResult",
    "ExtractionStats",
]
