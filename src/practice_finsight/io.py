# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for Practice FinSight.

The metrics orchestrator never reads files or databases itself. It talks to
a *record store*: any object implementing the RecordStore protocol below.
Two implementations are provided:

- CsvRecordStore     : reads three CSV files with pandas.
- InMemoryRecordStore: holds records in lists (tests, embedding).

Expected CSV formats
--------------------
Column names are case-insensitive and surrounding spaces are ignored.

1) therapies.csv
       id, name, price_per_session[, variable_cost_per_session]

2) session_plans.csv
       therapy_id, month, planned_sessions, actual_sessions

   ``month`` is any date inside the month (YYYY-MM or YYYY-MM-DD).
   ``period_month`` is accepted as an alias for ``month``.

3) expenses.csv
       date, amount[, is_recurring, recurrence_interval, spread_monthly,
                     description, category]

   Boolean columns accept true/false, yes/no and 1/0. ``annual`` is
   accepted as an alias for the ``yearly`` recurrence interval.

If a file does not match its format, or a value cannot be parsed, a clear
ValueError is raised.
"""

import logging
import os
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any, Protocol, Union

import pandas as pd

from .models import ExpenseRecord, SessionPlan, TherapyOffering
from .periods import month_start

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_TRUE_VALUES = {"true", "yes", "y", "1"}
_FALSE_VALUES = {"false", "no", "n", "0", ""}
_INTERVAL_ALIASES = {"annual": "yearly"}


class RecordStore(Protocol):
    """Source of the raw records consumed by the metrics orchestrator."""

    def fetch_therapies(self) -> list[TherapyOffering]: ...

    def fetch_session_plans(self, start: date, end: date) -> list[SessionPlan]: ...

    def fetch_expenses(self, start: date, end: date) -> list[ExpenseRecord]: ...


# ---------------------------------------------------------------------------
# Period filters shared by the stores
# ---------------------------------------------------------------------------


def _plans_in_period(
    plans: Iterable[SessionPlan], start: date, end: date
) -> list[SessionPlan]:
    first = month_start(start)
    return [p for p in plans if first <= p.period_month <= end]


def _expenses_in_period(
    expenses: Iterable[ExpenseRecord], start: date, end: date
) -> list[ExpenseRecord]:
    """
    Expenses that can weigh on [start, end].

    One-time expenses must fall in a month of the period; recurring ones
    only need to have started before the period ends.
    """
    first = month_start(start)
    selected: list[ExpenseRecord] = []
    for expense in expenses:
        if expense.is_recurring:
            if expense.date <= end:
                selected.append(expense)
        elif first <= expense.date <= end:
            selected.append(expense)
    return selected


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemoryRecordStore:
    """RecordStore backed by plain lists."""

    def __init__(
        self,
        therapies: Sequence[TherapyOffering] = (),
        session_plans: Sequence[SessionPlan] = (),
        expenses: Sequence[ExpenseRecord] = (),
    ) -> None:
        self.therapies = list(therapies)
        self.session_plans = list(session_plans)
        self.expenses = list(expenses)

    def fetch_therapies(self) -> list[TherapyOffering]:
        return list(self.therapies)

    def fetch_session_plans(self, start: date, end: date) -> list[SessionPlan]:
        return _plans_in_period(self.session_plans, start, end)

    def fetch_expenses(self, start: date, end: date) -> list[ExpenseRecord]:
        return _expenses_in_period(self.expenses, start, end)


# ---------------------------------------------------------------------------
# CSV store
# ---------------------------------------------------------------------------


def _read_csv(path: PathLike, required: set[str], kind: str) -> pd.DataFrame:
    df = pd.read_csv(path)

    # Normalize column names to lowercase (to make the check case-insensitive)
    df.columns = [str(c).lower().strip() for c in df.columns]
    missing = required - set(df.columns)
    if missing:
        raise ValueError(
            f"Invalid {kind} structure in {path}: missing column(s) "
            f"{', '.join(sorted(missing))}. Expected at least: "
            f"{', '.join(sorted(required))} (column names are case-insensitive)."
        )
    return df


def _numeric(df: pd.DataFrame, col: str, kind: str, default: float = 0.0) -> pd.Series:
    if col not in df.columns:
        return pd.Series(default, index=df.index, dtype=float)
    values = pd.to_numeric(df[col], errors="coerce")
    if values.isna().any():
        raise ValueError(f"Invalid numeric values in '{col}' column of {kind}.")
    return values


def _dates(df: pd.DataFrame, col: str, kind: str) -> pd.Series:
    # Parse dates strictly: invalid dates should fail loudly
    try:
        return pd.to_datetime(df[col], errors="raise")
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Invalid values in '{col}' column of {kind}.") from exc


def _to_bool(value: Any, col: str) -> bool:
    if isinstance(value, bool):
        return value
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return False
    if pd.api.types.is_number(value):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value {value!r} in '{col}' column of expenses.")


def _optional_text(value: Any) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def read_therapies(path: PathLike) -> list[TherapyOffering]:
    """
    Read therapy offerings from a CSV file.

    Raises
    ------
    ValueError
        If required columns are missing, a price is not numeric, or a
        record fails validation (negative price or cost).
    """
    df = _read_csv(path, {"id", "name", "price_per_session"}, "therapies")
    prices = _numeric(df, "price_per_session", "therapies")
    costs = _numeric(df, "variable_cost_per_session", "therapies")

    return [
        TherapyOffering(
            id=str(row_id).strip(),
            name=str(name).strip(),
            price_per_session=float(price),
            variable_cost_per_session=float(cost),
        )
        for row_id, name, price, cost in zip(df["id"], df["name"], prices, costs)
    ]


def read_session_plans(path: PathLike) -> list[SessionPlan]:
    """Read monthly session plans from a CSV file."""
    df = pd.read_csv(path)
    df.columns = [str(c).lower().strip() for c in df.columns]
    # Alias: 'period_month' -> 'month'
    if "period_month" in df.columns and "month" not in df.columns:
        df = df.rename(columns={"period_month": "month"})

    required = {"therapy_id", "month", "planned_sessions", "actual_sessions"}
    missing = required - set(df.columns)
    if missing:
        raise ValueError(
            f"Invalid session_plans structure in {path}: missing column(s) "
            f"{', '.join(sorted(missing))}."
        )

    months = _dates(df, "month", "session_plans")
    planned = _numeric(df, "planned_sessions", "session_plans")
    actual = _numeric(df, "actual_sessions", "session_plans")

    return [
        SessionPlan(
            therapy_id=str(therapy_id).strip(),
            period_month=month.date(),
            planned_sessions=int(p),
            actual_sessions=int(a),
        )
        for therapy_id, month, p, a in zip(df["therapy_id"], months, planned, actual)
    ]


def read_expenses(path: PathLike) -> list[ExpenseRecord]:
    """Read expense records from a CSV file."""
    df = _read_csv(path, {"date", "amount"}, "expenses")
    dates = _dates(df, "date", "expenses")
    amounts = _numeric(df, "amount", "expenses")

    records: list[ExpenseRecord] = []
    for i, (when, amount) in enumerate(zip(dates, amounts)):
        row = df.iloc[i]
        is_recurring = _to_bool(row.get("is_recurring"), "is_recurring")
        interval = _optional_text(row.get("recurrence_interval")).lower() or None
        interval = _INTERVAL_ALIASES.get(interval, interval)
        records.append(
            ExpenseRecord(
                amount=float(amount),
                date=when.date(),
                is_recurring=is_recurring,
                recurrence_interval=interval if is_recurring else None,  # type: ignore[arg-type]
                spread_monthly=_to_bool(row.get("spread_monthly"), "spread_monthly"),
                description=_optional_text(row.get("description")),
                category=_optional_text(row.get("category")),
            )
        )
    return records


class CsvRecordStore:
    """
    RecordStore reading CSV files on every fetch.

    Files are re-read on each call so that edits are picked up without
    restarting; the engine never caches records.
    """

    def __init__(
        self,
        therapies_path: PathLike,
        session_plans_path: PathLike,
        expenses_path: PathLike,
    ) -> None:
        self.therapies_path = therapies_path
        self.session_plans_path = session_plans_path
        self.expenses_path = expenses_path

    @classmethod
    def from_config(cls, config) -> "CsvRecordStore":
        """Build a store from an AppConfig."""
        return cls(
            therapies_path=config.data.therapies,
            session_plans_path=config.data.session_plans,
            expenses_path=config.data.expenses,
        )

    def fetch_therapies(self) -> list[TherapyOffering]:
        therapies = read_therapies(self.therapies_path)
        logger.debug("Read %d therapies from %s", len(therapies), self.therapies_path)
        return therapies

    def fetch_session_plans(self, start: date, end: date) -> list[SessionPlan]:
        plans = _plans_in_period(read_session_plans(self.session_plans_path), start, end)
        logger.debug("Read %d session plans for %s..%s", len(plans), start, end)
        return plans

    def fetch_expenses(self, start: date, end: date) -> list[ExpenseRecord]:
        expenses = _expenses_in_period(read_expenses(self.expenses_path), start, end)
        logger.debug("Read %d expenses for %s..%s", len(expenses), start, end)
        return expenses
