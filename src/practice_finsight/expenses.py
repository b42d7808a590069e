# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Expense proration across calendar months.

Expenses are stored once (a one-off purchase, or the first occurrence of a
recurring charge) and spread over the reporting period month by month.

Monthly multipliers
-------------------
    daily      30.44   (average days per month)
    weekly      4.34   (average weeks per month)
    monthly     1
    quarterly   1/3
    yearly      1/12

Rules
-----
- A one-time expense counts in full in the month of its date.
- A recurring expense applies from the month of its date onward, never
  before.
- Daily, weekly and monthly expenses contribute ``amount * multiplier``
  every month.
- Quarterly and yearly expenses with ``spread_monthly`` contribute
  ``amount * multiplier`` every month. Without it, the full amount is
  booked in the months it falls due: every 3rd (quarterly) or 12th
  (yearly) month counted from the first occurrence.
"""

from collections.abc import Iterable
from datetime import date

import pandas as pd

from .models import ExpenseRecord
from .periods import month_range, month_start

MONTHLY_MULTIPLIERS: dict[str, float] = {
    "daily": 30.44,
    "weekly": 4.34,
    "monthly": 1.0,
    "quarterly": 1 / 3,
    "yearly": 1 / 12,
}

_DUE_EVERY_MONTHS: dict[str, int] = {"quarterly": 3, "yearly": 12}


def monthly_equivalent(expense: ExpenseRecord) -> float:
    """Average monthly cost of an expense (the amount itself if one-time)."""
    if not expense.is_recurring or expense.recurrence_interval is None:
        return expense.amount
    return expense.amount * MONTHLY_MULTIPLIERS[expense.recurrence_interval]


def _months_between(first: date, second: date) -> int:
    return (second.year - first.year) * 12 + (second.month - first.month)


def expense_for_month(expense: ExpenseRecord, month: date) -> float:
    """Amount of ``expense`` attributed to the calendar month of ``month``."""
    target = month_start(month)
    first = month_start(expense.date)

    if not expense.is_recurring or expense.recurrence_interval is None:
        return expense.amount if target == first else 0.0

    if target < first:
        return 0.0

    interval = expense.recurrence_interval
    step = _DUE_EVERY_MONTHS.get(interval)
    if step is None or expense.spread_monthly:
        return monthly_equivalent(expense)

    if _months_between(first, target) % step == 0:
        return expense.amount
    return 0.0


def monthly_expenses(
    expenses: Iterable[ExpenseRecord],
    start: date,
    end: date,
) -> pd.Series:
    """
    Prorated expenses of every month touched by [start, end].

    Returns
    -------
    pandas.Series
        Float amounts indexed by the first day of each month
        (DatetimeIndex), in chronological order. Empty when ``end`` is
        before ``start``.
    """
    months = month_range(start, end)
    totals = dict.fromkeys(months, 0.0)

    for expense in expenses:
        for month in months:
            totals[month] += expense_for_month(expense, month)

    return pd.Series(
        list(totals.values()),
        index=pd.DatetimeIndex([pd.Timestamp(m) for m in months]),
        name="expenses",
        dtype=float,
    )


def prorate_expenses(
    expenses: Iterable[ExpenseRecord],
    start: date,
    end: date,
) -> float:
    """Total prorated expenses over [start, end]."""
    return float(monthly_expenses(expenses, start, end).sum())
