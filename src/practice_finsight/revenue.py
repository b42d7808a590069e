# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Revenue calculators.

Pure functions computing revenue from session counts and prices. Revenue
here is always *gross* revenue (amount billed); use ``payment_fees.net``
to obtain the amount actually received.

Multi-therapy helpers accept any iterable of mappings with at least the
keys ``sessions`` and ``price`` (and ``id`` where noted).
"""

from collections.abc import Iterable, Mapping
from typing import Any, Optional

from .models import SessionRevenue


def session_revenue(sessions: float, price: float) -> SessionRevenue:
    """Revenue of ``sessions`` sessions billed at ``price`` each."""
    return SessionRevenue(
        revenue=sessions * price,
        sessions=sessions,
        price_per_session=price,
        average_price=price,
    )


def total_revenue(items: Iterable[Mapping[str, Any]]) -> float:
    """Sum of ``sessions * price`` over all items."""
    return sum(float(item["sessions"]) * float(item["price"]) for item in items)


def average_price_per_session(items: Iterable[Mapping[str, Any]]) -> float:
    """
    Session-weighted average price across therapies.

    Returns 0 when no session was held.
    """
    items = list(items)
    sessions = sum(float(item["sessions"]) for item in items)
    if sessions == 0:
        return 0.0
    return total_revenue(items) / sessions


def revenue_by_therapy(items: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    return [
        {
            "id": item["id"],
            "revenue": float(item["sessions"]) * float(item["price"]),
            "sessions": item["sessions"],
            "price": item["price"],
        }
        for item in items
    ]


def top_revenue_therapy(items: Iterable[Mapping[str, Any]]) -> Optional[str]:
    """Id of the therapy with the highest revenue (first one on ties)."""
    best: Optional[Mapping[str, Any]] = None
    for item in items:
        if best is None or item["revenue"] > best["revenue"]:
            best = item
    return None if best is None else best["id"]


def revenue_growth_rate(current: float, previous: float) -> float:
    """
    Period-over-period growth in percent.

    When the previous period had no revenue, growth is reported as 100%
    if there is revenue now and 0% otherwise.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def revenue_variance(actual: float, planned: float) -> tuple[float, float]:
    """Return ``(variance, variance_percent)`` of actual vs. planned revenue."""
    variance = actual - planned
    variance_percent = variance / planned * 100 if planned > 0 else 0.0
    return variance, variance_percent
