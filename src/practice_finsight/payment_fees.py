# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Payment processing fees for Practice FinSight.

Card payments are charged a flat percentage transaction fee by the payment
processor (1.39% by default). Every money amount that is meant as "money
actually received" goes through this module before being compared with
costs.

The module provides:

1. Fee split
   ---------
   - fee(gross, fee_pct)  : amount kept by the processor,
   - net(gross, fee_pct)  : amount received by the practice,
   with the invariant ``fee + net == gross``.

2. Unit economics
   --------------
   - net_contribution_margin(price, variable_cost, fee_pct),
   - break_even_units(fixed_costs, price, variable_cost, fee_pct),
   - profit_with_fees / profit_margin_with_fees for a given volume.

3. Growth projections
   ------------------
   - projected_gross(starting_gross, growth_rate, month_index),
   - monthly_profit / cumulative_profit,
   - find_break_even_month(initial_investment, ...), a bounded linear
     search over at most ``max_months`` months.

4. Transparency records
   --------------------
   - price_breakdown(gross_price, fee_pct)      -> PriceBreakdown
   - cost_breakdown(gross_revenue, fixed, fee)  -> CostBreakdown

Degenerate inputs never raise: an unreachable break-even is ``math.inf``,
a break-even month that is not reached is ``None``.
"""

import math
from typing import Optional

from .models import CostBreakdown, PriceBreakdown

DEFAULT_FEE_PERCENTAGE: float = 1.39
DEFAULT_MAX_BREAK_EVEN_MONTHS: int = 60


def _is_valid_fee_percentage(fee_pct: float) -> bool:
    return 0.0 <= fee_pct <= 100.0


def fee(gross: float, fee_pct: float = DEFAULT_FEE_PERCENTAGE) -> float:
    """
    Return the processing fee charged on a gross amount.

    A fee is only charged on positive amounts; an out-of-range percentage
    (below 0 or above 100) is treated as "no fee".

    Examples
    --------
    >>> round(fee(100, 1.39), 2)
    1.39
    """
    if gross <= 0 or not _is_valid_fee_percentage(fee_pct):
        return 0.0
    return gross * fee_pct / 100


def net(gross: float, fee_pct: float = DEFAULT_FEE_PERCENTAGE) -> float:
    """Return the amount received after the processing fee."""
    return gross - fee(gross, fee_pct)


def net_contribution_margin(
    price: float,
    variable_cost: float,
    fee_pct: float = DEFAULT_FEE_PERCENTAGE,
) -> float:
    """Contribution of one session after fee and variable cost (may be negative)."""
    return net(price, fee_pct) - variable_cost


def break_even_units(
    fixed_costs: float,
    price: float,
    variable_cost: float = 0.0,
    fee_pct: float = 0.0,
    round_up: bool = True,
) -> float:
    """
    Number of units (sessions) needed to cover fixed costs.

    This is the single break-even primitive of the engine. With the default
    ``fee_pct=0`` it is fee-agnostic; pass the practice fee percentage to get
    the number of sessions needed once payment fees are deducted.

    Args:
        fixed_costs: Fixed costs to cover.
        price: Gross price of one unit.
        variable_cost: Variable cost of one unit.
        fee_pct: Payment processing fee percentage.
        round_up: When true (default), return the smallest whole number of
            units ``n`` such that ``n * margin >= fixed_costs``. When false,
            return the exact ratio ``fixed_costs / margin``.

    Returns:
        ``math.inf`` when the price is 0 or the net contribution margin is
        not positive (no finite break-even point), ``0`` when there are no
        fixed costs, otherwise the number of units.
    """
    unit_margin = net_contribution_margin(price, variable_cost, fee_pct)
    if price == 0 or unit_margin <= 0:
        return math.inf

    if fixed_costs <= 0:
        return 0

    ratio = fixed_costs / unit_margin
    if not round_up:
        return ratio
    return math.ceil(ratio)


def profit_with_fees(
    sessions: float,
    price: float,
    variable_cost: float,
    fixed_costs: float,
    fee_pct: float = DEFAULT_FEE_PERCENTAGE,
) -> float:
    """Profit for a given session volume once fees and all costs are paid."""
    total_net_revenue = sessions * net(price, fee_pct)
    total_variable_costs = sessions * variable_cost
    return total_net_revenue - total_variable_costs - fixed_costs


def profit_margin_with_fees(
    sessions: float,
    price: float,
    variable_cost: float,
    fixed_costs: float,
    fee_pct: float = DEFAULT_FEE_PERCENTAGE,
) -> float:
    """Profit as a percentage of net revenue (0 when there is no revenue)."""
    total_net_revenue = sessions * net(price, fee_pct)
    if total_net_revenue == 0:
        return 0.0

    profit = profit_with_fees(sessions, price, variable_cost, fixed_costs, fee_pct)
    return profit / total_net_revenue * 100


def total_costs_with_fees(
    fixed_costs: float,
    gross_revenue: float,
    fee_pct: float = DEFAULT_FEE_PERCENTAGE,
) -> float:
    """Fixed costs plus payment fees shown as a separate cost line."""
    return fixed_costs + fee(gross_revenue, fee_pct)


def monthly_profit(
    gross_revenue: float,
    fixed_costs: float,
    fee_pct: float = DEFAULT_FEE_PERCENTAGE,
) -> float:
    return net(gross_revenue, fee_pct) - fixed_costs


def projected_gross(
    starting_gross: float,
    monthly_growth_rate: float,
    month_index: int,
) -> float:
    """
    Gross revenue of a given month under compound monthly growth.

    Month 1 is the starting month and returns ``starting_gross`` unchanged;
    month ``k`` returns ``starting_gross * (1 + rate) ** (k - 1)``. The
    growth rate is a decimal (0.05 for 5% per month).
    """
    if month_index <= 1:
        return starting_gross
    return starting_gross * (1 + monthly_growth_rate) ** (month_index - 1)


def cumulative_profit(
    starting_gross: float,
    growth_rate: float,
    fixed_costs: float,
    num_months: int,
    fee_pct: float = DEFAULT_FEE_PERCENTAGE,
) -> float:
    """Sum of monthly profits for months 1..num_months."""
    return sum(
        monthly_profit(
            projected_gross(starting_gross, growth_rate, month),
            fixed_costs,
            fee_pct,
        )
        for month in range(1, num_months + 1)
    )


def find_break_even_month(
    initial_investment: float,
    starting_gross: float,
    growth_rate: float,
    fixed_costs: float,
    max_months: int = DEFAULT_MAX_BREAK_EVEN_MONTHS,
    fee_pct: float = DEFAULT_FEE_PERCENTAGE,
) -> Optional[int]:
    """
    First month in which the initial investment has been recovered.

    The running balance starts at ``-initial_investment`` and accumulates
    each month's profit. The search stops after ``max_months`` months, so
    the call always terminates even when growth never closes the gap.

    Returns:
        The 1-based month index, or ``None`` if break-even is not reached
        within ``max_months``.
    """
    balance = -initial_investment
    for month in range(1, max_months + 1):
        gross = projected_gross(starting_gross, growth_rate, month)
        balance += monthly_profit(gross, fixed_costs, fee_pct)
        if balance >= 0:
            return month
    return None


# ---------------------------------------------------------------------------
# Transparency records
# ---------------------------------------------------------------------------


def price_breakdown(
    gross_price: float,
    fee_pct: float = DEFAULT_FEE_PERCENTAGE,
) -> PriceBreakdown:
    return PriceBreakdown(
        gross_price=gross_price,
        fee_percentage=fee_pct,
        fee_amount=fee(gross_price, fee_pct),
        net_price=net(gross_price, fee_pct),
    )


def cost_breakdown(
    gross_revenue: float,
    fixed_costs: float,
    fee_pct: float = DEFAULT_FEE_PERCENTAGE,
) -> CostBreakdown:
    """
    Split gross revenue into fixed costs, payment fees and net profit.

    Formula: gross revenue - fixed costs - payment fees = net profit.
    """
    payment_fees = fee(gross_revenue, fee_pct)
    total_costs = fixed_costs + payment_fees
    return CostBreakdown(
        gross_revenue=gross_revenue,
        fixed_costs=fixed_costs,
        payment_fees=payment_fees,
        total_costs=total_costs,
        net_profit=gross_revenue - total_costs,
        fee_percentage=fee_pct,
    )
