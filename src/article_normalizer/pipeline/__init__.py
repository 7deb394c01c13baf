"""Pipeline architecture for article extraction."""

from .base import EventEmitter, ExtractionContext, ExtractionPipeline, ExtractionStep, classify_error

__all__ = ["EventEmitter", "ExtractionContext", "ExtractionPipeline", "ExtractionStep", "classify_error"]
