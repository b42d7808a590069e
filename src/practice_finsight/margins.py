# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Margin and profitability calculators.

Core formulas:

    margin              = revenue - (variable_cost + fixed_cost)
    contribution margin = price per session - variable cost per session
    break-even sessions = fixed_cost / contribution margin

These functions are fee-agnostic: they work on whatever revenue they are
given. Callers computing profitability pass *net* revenue (see
``payment_fees.net``). For fee-aware break-even counts use
``payment_fees.break_even_units`` with the practice fee percentage.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from .models import ContributionMargin, MarginResult
from .payment_fees import break_even_units


def margin(
    revenue: float,
    variable_cost: float,
    fixed_cost: float = 0.0,
) -> MarginResult:
    """
    Profit or loss of a period.

    Args:
        revenue: Revenue of the period.
        variable_cost: Variable costs (e.g. per-session costs).
        fixed_cost: Fixed costs (optional).

    Returns:
        MarginResult. ``margin_percent`` is 0 when revenue is not positive;
        ``break_even`` is true when revenue covers the total cost.
    """
    total_cost = variable_cost + fixed_cost
    result = revenue - total_cost
    return MarginResult(
        revenue=revenue,
        total_cost=total_cost,
        margin=result,
        margin_percent=result / revenue * 100 if revenue > 0 else 0.0,
        break_even=revenue >= total_cost,
    )


def contribution_margin(price: float, variable_cost: float) -> ContributionMargin:
    unit_margin = price - variable_cost
    return ContributionMargin(
        price_per_session=price,
        variable_cost_per_session=variable_cost,
        margin=unit_margin,
        margin_percent=unit_margin / price * 100 if price > 0 else 0.0,
    )


def break_even_sessions(fixed_cost: float, contribution_margin_per_session: float) -> float:
    """
    Exact number of sessions needed to cover ``fixed_cost``.

    Returns ``math.inf`` when the contribution margin is not positive. The
    result is not rounded; use ``payment_fees.break_even_units`` for a whole
    number of sessions.
    """
    return break_even_units(
        fixed_cost,
        price=contribution_margin_per_session,
        round_up=False,
    )


def total_margin(items: Iterable[Mapping[str, Any]]) -> float:
    """Sum of ``revenue - variable_cost`` over all therapies."""
    return sum(
        float(item["revenue"]) - float(item["variable_cost"]) for item in items
    )


def margin_percent(revenue: float, margin_amount: float) -> float:
    if revenue == 0:
        return 0.0
    return margin_amount / revenue * 100


def profit_at_volume(
    sessions: float,
    contribution_margin_per_session: float,
    fixed_cost: float,
) -> float:
    return sessions * contribution_margin_per_session - fixed_cost


def sessions_for_profit_target(
    profit_target: float,
    contribution_margin_per_session: float,
    fixed_cost: float,
) -> float:
    """Sessions needed to cover fixed costs and reach ``profit_target``."""
    return break_even_units(
        profit_target + fixed_cost,
        price=contribution_margin_per_session,
        round_up=False,
    )


def is_margin_declining(current_margin_percent: float, previous_margin_percent: float) -> bool:
    return current_margin_percent < previous_margin_percent


def margin_trend(current_margin: float, previous_margin: float) -> float:
    """
    Percent change of the margin, relative to the absolute previous margin.

    Dividing by ``abs(previous_margin)`` keeps the sign meaningful when the
    previous period was a loss.
    """
    if previous_margin == 0:
        return 100.0 if current_margin > 0 else 0.0
    return (current_margin - previous_margin) / abs(previous_margin) * 100
