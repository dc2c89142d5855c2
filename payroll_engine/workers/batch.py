"""Bounded thread pool for per-user payroll computations."""
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

logger = logging.getLogger(__name__)

Unit = tuple[str, Callable[[], Any]]

_POLL_SECONDS = 0.25


@dataclass(slots=True)
class BatchOutcome:
    completed: dict[str, Any] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return bool(self.skipped)


class BatchRunner:
    """Runs independent units of work on at most ``max_workers`` threads.

    A unit that raises is recorded in ``failed`` and the batch moves on.  A unit
    that runs longer than ``unit_timeout`` seconds is recorded as timed out and
    its thread is abandoned; once every worker of the current pool is stuck the
    pool is replaced so the remaining units still make progress.  Setting
    ``cancel_event`` stops new units from starting; units already running are
    allowed to finish and anything not started is reported in ``skipped``.
    """

    def __init__(self, max_workers: int = 4, unit_timeout: float = 30.0) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if unit_timeout <= 0:
            raise ValueError("unit_timeout must be positive")
        self.max_workers = max_workers
        self.unit_timeout = unit_timeout

    def _new_pool(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="payroll-batch")

    def run(self, units: Sequence[Unit], *, cancel_event: threading.Event | None = None) -> BatchOutcome:
        outcome = BatchOutcome()
        pending: deque[Unit] = deque(units)
        running: dict[Future, tuple[str, float]] = {}
        pool = self._new_pool()
        abandoned = 0

        def cancelled() -> bool:
            return cancel_event is not None and cancel_event.is_set()

        try:
            while pending or running:
                if abandoned >= self.max_workers:
                    logger.warning("all batch workers stalled; starting a fresh pool")
                    pool.shutdown(wait=False, cancel_futures=True)
                    pool = self._new_pool()
                    abandoned = 0

                while pending and not cancelled() and len(running) < self.max_workers - abandoned:
                    key, fn = pending.popleft()
                    running[pool.submit(fn)] = (key, time.monotonic())

                if cancelled() and pending:
                    logger.info("batch cancelled; skipping %d pending units", len(pending))
                    outcome.skipped.extend(key for key, _ in pending)
                    pending.clear()

                if not running:
                    continue

                now = time.monotonic()
                nearest = min(started for _, started in running.values()) + self.unit_timeout
                done, _ = wait(
                    list(running),
                    timeout=max(0.0, min(nearest - now, _POLL_SECONDS)),
                    return_when=FIRST_COMPLETED,
                )

                for future in done:
                    key, _ = running.pop(future)
                    try:
                        outcome.completed[key] = future.result()
                    except Exception as exc:  # noqa: BLE001 - failures are isolated per unit
                        logger.warning("batch unit %s failed: %s", key, exc)
                        outcome.failed[key] = str(exc) or exc.__class__.__name__

                now = time.monotonic()
                for future, (key, started) in list(running.items()):
                    if now - started >= self.unit_timeout:
                        running.pop(future)
                        if not future.cancel():
                            abandoned += 1
                        logger.warning("batch unit %s timed out after %ss", key, self._format_timeout())
                        outcome.failed[key] = f"timed out after {self._format_timeout()}s"
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        return outcome

    def _format_timeout(self) -> str:
        value = self.unit_timeout
        return str(int(value)) if float(value).is_integer() else str(value)
