"""DuckDB-backed persistence for generated payroll results."""
from __future__ import annotations

import json
import logging
import threading
from datetime import date
from pathlib import Path

import duckdb

from payroll_engine.core.schema import PayrollResultModel
from payroll_engine.domain import ResultKey

from .repository import InMemoryPayrollRepository

logger = logging.getLogger(__name__)

_STATUS_FIELDS = {"status", "is_approved", "is_paid"}

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS payroll_results (
    user_id VARCHAR NOT NULL,
    pay_period_start DATE NOT NULL,
    pay_period_end DATE NOT NULL,
    figures VARCHAR NOT NULL,
    status VARCHAR NOT NULL,
    is_approved BOOLEAN NOT NULL,
    is_paid BOOLEAN NOT NULL,
    PRIMARY KEY (user_id, pay_period_start, pay_period_end)
)
"""

_UPSERT_KEEP_STATUS = """
INSERT INTO payroll_results VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT (user_id, pay_period_start, pay_period_end)
DO UPDATE SET figures = excluded.figures
"""

_UPSERT_RESET_STATUS = """
INSERT INTO payroll_results VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT (user_id, pay_period_start, pay_period_end)
DO UPDATE SET
    figures = excluded.figures,
    status = excluded.status,
    is_approved = excluded.is_approved,
    is_paid = excluded.is_paid
"""

_SELECT_COLUMNS = "figures, status, is_approved, is_paid"


class DuckDBPayrollRepository(InMemoryPayrollRepository):
    """Keeps inputs in memory and payroll results in a DuckDB table.

    Each result upsert is a single ``INSERT ... ON CONFLICT`` statement run
    inside a transaction, so the key can never be observed half-written.
    """

    def __init__(self, database: str | Path = ":memory:") -> None:
        super().__init__()
        self._database = str(database)
        self._connection = duckdb.connect(self._database)
        self._write_lock = threading.Lock()
        self._connection.execute(_CREATE_TABLE)
        logger.info("payroll results stored in duckdb database %s", self._database)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _to_row(result: PayrollResultModel) -> list[object]:
        figures = result.model_dump_json(exclude=_STATUS_FIELDS)
        return [
            result.user_id,
            result.pay_period_start,
            result.pay_period_end,
            figures,
            result.status,
            result.is_approved,
            result.is_paid,
        ]

    @staticmethod
    def _from_row(row: tuple) -> PayrollResultModel:
        figures, status, is_approved, is_paid = row
        payload = json.loads(figures)
        payload.update({"status": status, "is_approved": bool(is_approved), "is_paid": bool(is_paid)})
        return PayrollResultModel.model_validate(payload)

    def _query(self, sql: str, params: list[object]) -> list[tuple]:
        cursor = self._connection.cursor()
        try:
            return cursor.execute(sql, params).fetchall()
        finally:
            cursor.close()

    # ------------------------------------------------------------------
    # results
    # ------------------------------------------------------------------
    def upsert_result(self, result: PayrollResultModel, *, reset_status: bool = False) -> PayrollResultModel:
        statement = _UPSERT_RESET_STATUS if reset_status else _UPSERT_KEEP_STATUS
        with self._write_lock:
            cursor = self._connection.cursor()
            try:
                cursor.execute("BEGIN TRANSACTION")
                try:
                    cursor.execute(statement, self._to_row(result))
                    row = cursor.execute(
                        f"SELECT {_SELECT_COLUMNS} FROM payroll_results "
                        "WHERE user_id = ? AND pay_period_start = ? AND pay_period_end = ?",
                        [result.user_id, result.pay_period_start, result.pay_period_end],
                    ).fetchone()
                    cursor.execute("COMMIT")
                except duckdb.Error:
                    cursor.execute("ROLLBACK")
                    raise
            finally:
                cursor.close()
        return self._from_row(row)

    def get_result(self, key: ResultKey) -> PayrollResultModel | None:
        user_id, start, end = key
        rows = self._query(
            f"SELECT {_SELECT_COLUMNS} FROM payroll_results "
            "WHERE user_id = ? AND pay_period_start = ? AND pay_period_end = ?",
            [user_id, start, end],
        )
        return self._from_row(rows[0]) if rows else None

    def list_results(
        self,
        start: date | None = None,
        end: date | None = None,
        user_id: str | None = None,
    ) -> list[PayrollResultModel]:
        clauses: list[str] = []
        params: list[object] = []
        if start is not None:
            clauses.append("pay_period_start = ?")
            params.append(start)
        if end is not None:
            clauses.append("pay_period_end = ?")
            params.append(end)
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._query(
            f"SELECT {_SELECT_COLUMNS} FROM payroll_results{where} ORDER BY pay_period_start, user_id",
            params,
        )
        return [self._from_row(row) for row in rows]

    def has_results_for_period(self, start: date, end: date) -> bool:
        rows = self._query(
            "SELECT 1 FROM payroll_results WHERE pay_period_start = ? AND pay_period_end = ? LIMIT 1",
            [start, end],
        )
        return bool(rows)

    def has_results_within(self, start: date, end: date) -> bool:
        rows = self._query(
            "SELECT 1 FROM payroll_results WHERE pay_period_start >= ? AND pay_period_end <= ? LIMIT 1",
            [start, end],
        )
        return bool(rows)

    def reset(self) -> None:
        super().reset()
        with self._write_lock:
            self._connection.execute("DELETE FROM payroll_results")

    def close(self) -> None:
        self._connection.close()
