"""Domain layer definitions."""

from .state import PayrollStoreState, ResultKey

__all__ = [
    "PayrollStoreState",
    "ResultKey",
]
