"""Infrastructure layer exports."""

from .config_client import RemoteConfigClient
from .duckdb_store import DuckDBPayrollRepository
from .repository import InMemoryPayrollRepository, PayrollRepository

__all__ = [
    "DuckDBPayrollRepository",
    "InMemoryPayrollRepository",
    "PayrollRepository",
    "RemoteConfigClient",
]
