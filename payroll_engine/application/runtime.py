"""Process-wide wiring of settings, repository and services."""
from __future__ import annotations

import logging
import os
import threading

from payroll_engine.core.errors import ConfigurationFetchError
from payroll_engine.core.settings import (
    PayrollSettings,
    apply_env_overrides,
    build_settings,
    load_config_document,
    merge_config,
)
from payroll_engine.infrastructure import (
    DuckDBPayrollRepository,
    InMemoryPayrollRepository,
    PayrollRepository,
    RemoteConfigClient,
)

from .attendance import AttendanceService
from .payroll import PayrollService

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_services: tuple[PayrollService, AttendanceService] | None = None


def settings_from_env() -> PayrollSettings:
    """File configuration, overlaid by the remote document when one is configured."""

    document = load_config_document()
    url = os.getenv("PAYROLL_CONFIG_URL")
    if url:
        timeout = float(os.getenv("PAYROLL_CONFIG_TIMEOUT") or 10)
        try:
            with RemoteConfigClient(url, timeout=timeout) as client:
                document = merge_config(document, client.fetch())
        except ConfigurationFetchError as exc:
            logger.warning("using file configuration; remote configuration unavailable: %s", exc)
    return build_settings(apply_env_overrides(document))


def repository_from_env() -> PayrollRepository:
    db_path = os.getenv("PAYROLL_DB_PATH")
    if db_path:
        return DuckDBPayrollRepository(db_path)
    return InMemoryPayrollRepository()


def _build_services() -> tuple[PayrollService, AttendanceService]:
    settings = settings_from_env()
    repository = repository_from_env()
    return PayrollService(repository, settings), AttendanceService(repository, settings)


def _get_services() -> tuple[PayrollService, AttendanceService]:
    global _services
    with _lock:
        if _services is None:
            _services = _build_services()
        return _services


def get_payroll_service() -> PayrollService:
    """Return the singleton payroll service for the process."""

    return _get_services()[0]


def get_attendance_service() -> AttendanceService:
    return _get_services()[1]


def reset_payroll_state() -> None:
    """Drop the stored data and rebuild services from the environment (used in tests)."""

    global _services
    with _lock:
        if _services is not None:
            repository = _services[0].repository
            repository.reset()
            if isinstance(repository, DuckDBPayrollRepository):
                repository.close()
        _services = None
