"""Parser for biometric punch exports (CSV or Excel).

Each row is one clock event.  The sheet needs a user column, a punch type
column and either a single timestamp column or separate date and time
columns.  Naive timestamps are read as Manila wall-clock time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from payroll_engine.core.schema import Punch, PunchType
from payroll_engine.core.timezone import MANILA_TZ_ID

logger = logging.getLogger(__name__)

USER_KEYWORDS = ["user_id", "employee_id", "employee id", "user id", "id"]
TYPE_KEYWORDS = ["type", "punch", "state", "status"]
TIMESTAMP_KEYWORDS = ["timestamp", "datetime", "date_time", "time stamp"]
DATE_KEYWORDS = ["date"]
TIME_KEYWORDS = ["time"]

_TYPE_ALIASES = {
    "in": PunchType.IN,
    "time in": PunchType.IN,
    "check in": PunchType.IN,
    "c/in": PunchType.IN,
    "out": PunchType.OUT,
    "time out": PunchType.OUT,
    "check out": PunchType.OUT,
    "c/out": PunchType.OUT,
}

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}


class PunchSheetError(ValueError):
    """Raised when a sheet cannot be read as a punch log."""


@dataclass
class PunchSheetResult:
    punches: list[Punch]
    rejected_rows: list[int] = field(default_factory=list)


def _normalise_columns(dataframe: pd.DataFrame) -> pd.DataFrame:
    renamed = {col: str(col).strip().lower() for col in dataframe.columns}
    return dataframe.rename(columns=renamed)


def _find_column(dataframe: pd.DataFrame, keywords: list[str], *, exclude: set[str] = frozenset()) -> str | None:
    for keyword in keywords:
        if keyword in dataframe.columns and keyword not in exclude:
            return keyword
    for keyword in keywords:
        for column in dataframe.columns:
            if column not in exclude and keyword in column:
                return column
    return None


def _read(path: Path) -> pd.DataFrame:
    if path.suffix.lower() in EXCEL_SUFFIXES:
        return pd.read_excel(path, engine="openpyxl", dtype=str)
    return pd.read_csv(path, dtype=str)


def _punch_type(value: object) -> PunchType | None:
    if value is None:
        return None
    return _TYPE_ALIASES.get(str(value).strip().lower())


def _timestamps(dataframe: pd.DataFrame, timestamp_col: str | None, date_col: str | None, time_col: str | None) -> pd.Series:
    if timestamp_col is not None:
        raw = dataframe[timestamp_col]
    elif date_col is not None and time_col is not None:
        raw = dataframe[date_col].astype(str).str.strip() + " " + dataframe[time_col].astype(str).str.strip()
    else:
        raise PunchSheetError("punch sheet needs a timestamp column or date and time columns")

    parsed = pd.to_datetime(raw, errors="coerce", utc=False, format="mixed")
    return parsed.map(_localise)


def _localise(value: object) -> pd.Timestamp | None:
    if value is None or pd.isna(value):
        return None
    stamp = pd.Timestamp(value)
    if stamp.tzinfo is None:
        return stamp.tz_localize(MANILA_TZ_ID)
    return stamp


def parse_punch_sheet(path: Path) -> PunchSheetResult:
    dataframe = _read(path)
    dataframe = dataframe.dropna(how="all")
    dataframe = _normalise_columns(dataframe)

    user_col = _find_column(dataframe, USER_KEYWORDS)
    type_col = _find_column(dataframe, TYPE_KEYWORDS, exclude={user_col} if user_col else set())
    if user_col is None or type_col is None:
        raise PunchSheetError("punch sheet needs user and punch type columns")

    used = {user_col, type_col}
    timestamp_col = _find_column(dataframe, TIMESTAMP_KEYWORDS, exclude=used)
    date_col = time_col = None
    if timestamp_col is None:
        date_col = _find_column(dataframe, DATE_KEYWORDS, exclude=used)
        time_col = _find_column(dataframe, TIME_KEYWORDS, exclude=used | {date_col} if date_col else used)

    stamps = _timestamps(dataframe, timestamp_col, date_col, time_col)

    punches: list[Punch] = []
    rejected: list[int] = []
    for position, (index, row) in enumerate(dataframe.iterrows()):
        user_id = row.get(user_col)
        punch_type = _punch_type(row.get(type_col))
        stamp = stamps.loc[index]
        if user_id is None or pd.isna(user_id) or punch_type is None or stamp is None or pd.isna(stamp):
            # header row is line 1 of the sheet
            rejected.append(position + 2)
            continue
        punches.append(
            Punch(
                user_id=str(user_id).strip(),
                timestamp=stamp.to_pydatetime(),
                type=punch_type,
            )
        )

    if rejected:
        logger.info("punch sheet %s: %d rows rejected", path.name, len(rejected))
    return PunchSheetResult(punches=punches, rejected_rows=rejected)
