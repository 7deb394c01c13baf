"""Concurrency primitives."""

from .manager import WorkerPool

__all__ = ["WorkerPool"]
