# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for Practice FinSight.

This module defines a Period value object and helpers to derive the
reporting period of a metrics scope (month, quarter, year, all time) and
the period it is compared against (same period, previous period, same
period last year).

Month arithmetic relies on pandas offsets so that month ends and year
boundaries are handled consistently with the rest of the data layer.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal, Optional

import pandas as pd

MetricsScope = Literal["month", "quarter", "year", "allTime"]
ComparisonMode = Literal["none", "plan", "lastPeriod", "lastYear"]

METRICS_SCOPES: tuple[str, ...] = ("month", "quarter", "year", "allTime")
COMPARISON_MODES: tuple[str, ...] = ("none", "plan", "lastPeriod", "lastYear")

ALL_TIME_START = date(2000, 1, 1)


@dataclass
class Period:
    """Represents a reporting period with a human-readable label."""

    start: date
    end: date
    label: str


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(day: date) -> date:
    return (pd.Timestamp(day) + pd.offsets.MonthEnd(0)).date()


def add_months(day: date, months: int) -> date:
    """
    Shift ``day`` by a number of calendar months.

    The day of month is clamped to the length of the target month
    (31 January + 1 month -> 28/29 February).
    """
    return (pd.Timestamp(day) + pd.DateOffset(months=months)).date()


def month_range(start: date, end: date) -> list[date]:
    """
    First day of every calendar month touched by [start, end].

    Returns an empty list when ``end`` is before ``start``.
    """
    if end < start:
        return []
    months = pd.period_range(start=start, end=end, freq="M")
    return [p.start_time.date() for p in months]


def period_for_scope(scope: str, reference: Optional[date] = None) -> Period:
    """
    Reporting period of a metrics scope containing ``reference``.

        month    -> first to last day of the month
        quarter  -> first day of the quarter to last day of its third month
        year     -> 1 January to 31 December
        allTime  -> 2000-01-01 to today

    Raises:
        ValueError: if the scope is unknown.
    """
    ref = reference or _today()

    if scope == "month":
        start = month_start(ref)
        return Period(start=start, end=month_end(ref), label=f"{start:%B %Y}")

    if scope == "quarter":
        quarter = (ref.month - 1) // 3 + 1
        start = date(ref.year, 3 * (quarter - 1) + 1, 1)
        end = month_end(add_months(start, 2))
        return Period(start=start, end=end, label=f"Q{quarter} {ref.year}")

    if scope == "year":
        return Period(
            start=date(ref.year, 1, 1),
            end=date(ref.year, 12, 31),
            label=f"Year {ref.year}",
        )

    if scope == "allTime":
        return Period(start=ALL_TIME_START, end=_today(), label="All time")

    raise ValueError(f"Unknown metrics scope: {scope!r}")


def comparison_period(
    scope: str,
    reference: Optional[date] = None,
    mode: str = "none",
) -> Optional[Period]:
    """
    Period the reporting period is compared against.

    Modes
    -----
    none
        No comparison, returns None.
    plan
        The same period: actuals are compared with their own plan.
    lastPeriod
        The previous month / quarter / year. For 'allTime' the previous
        calendar year is used.
    lastYear
        The same period one year earlier ('allTime' again falls back to the
        previous calendar year).

    Raises:
        ValueError: if the scope or the mode is unknown.
    """
    if mode not in COMPARISON_MODES:
        raise ValueError(f"Unknown comparison mode: {mode!r}")
    if mode == "none":
        return None

    ref = reference or _today()

    if mode == "plan":
        return period_for_scope(scope, ref)

    if scope == "allTime":
        return period_for_scope("year", date(ref.year - 1, 1, 1))

    if mode == "lastYear":
        return period_for_scope(scope, add_months(ref, -12))

    shift = {"month": -1, "quarter": -3, "year": -12}.get(scope)
    if shift is None:
        raise ValueError(f"Unknown metrics scope: {scope!r}")
    return period_for_scope(scope, add_months(ref, shift))
