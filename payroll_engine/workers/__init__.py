"""Background workers."""

from .batch import BatchOutcome, BatchRunner

__all__ = ["BatchOutcome", "BatchRunner"]
