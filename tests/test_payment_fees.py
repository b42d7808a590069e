import math

import pytest

from practice_finsight.payment_fees import (
    DEFAULT_FEE_PERCENTAGE,
    break_even_units,
    cost_breakdown,
    cumulative_profit,
    fee,
    find_break_even_month,
    monthly_profit,
    net,
    net_contribution_margin,
    price_breakdown,
    profit_margin_with_fees,
    profit_with_fees,
    projected_gross,
    total_costs_with_fees,
)


def test_fee_and_net_on_one_hundred_euros() -> None:
    """1.39% of 100 is withheld; 98.61 is received."""
    assert fee(100, 1.39) == pytest.approx(1.39)
    assert net(100, 1.39) == pytest.approx(98.61)


def test_default_fee_percentage_is_used() -> None:
    assert DEFAULT_FEE_PERCENTAGE == 1.39
    assert fee(200) == pytest.approx(2.78)


@pytest.mark.parametrize("gross", [0.0, 0.01, 85.0, 99.99, 1234.5, 100000.0])
@pytest.mark.parametrize("fee_pct", [0.0, 1.39, 2.5, 100.0])
def test_fee_plus_net_equals_gross(gross: float, fee_pct: float) -> None:
    assert fee(gross, fee_pct) + net(gross, fee_pct) == pytest.approx(gross)


@pytest.mark.parametrize("gross", [0.0, -10.0, -0.01])
def test_no_fee_on_non_positive_amounts(gross: float) -> None:
    assert fee(gross, 1.39) == 0.0
    assert net(gross, 1.39) == gross


@pytest.mark.parametrize("fee_pct", [-1.0, 100.5, 250.0])
def test_out_of_range_fee_percentage_means_no_fee(fee_pct: float) -> None:
    assert fee(100, fee_pct) == 0.0
    assert net(100, fee_pct) == 100


def test_net_contribution_margin() -> None:
    assert net_contribution_margin(85, 5, 1.39) == pytest.approx(85 * 0.9861 - 5)
    # A variable cost above the net price gives a negative contribution
    assert net_contribution_margin(10, 20, 0) == -10


def test_break_even_units_with_fees() -> None:
    """Net per session is ~83.8185, so 1000 / 83.8185 rounds up to 12."""
    assert break_even_units(1000, 85, 0, 1.39) == 12


def test_break_even_units_defaults_to_no_fee() -> None:
    assert break_even_units(1000, 100, 50) == 20
    assert break_even_units(1000, 300) == 4


def test_break_even_units_exact_ratio() -> None:
    assert break_even_units(1000, 300, round_up=False) == pytest.approx(1000 / 300)


@pytest.mark.parametrize(
    "price, variable_cost",
    [
        (0.0, 0.0),
        (50.0, 60.0),
        (50.0, 50.0),
    ],
)
def test_break_even_units_unreachable(price: float, variable_cost: float) -> None:
    assert math.isinf(break_even_units(1000, price, variable_cost))


def test_break_even_units_unreachable_wins_over_zero_fixed_costs() -> None:
    assert math.isinf(break_even_units(0, 0))
    assert break_even_units(0, 85, 5, 1.39) == 0


def test_break_even_units_is_monotonic_in_fixed_costs() -> None:
    previous = 0
    for fixed in [0, 10, 100, 500, 1000, 5000, 20000]:
        units = break_even_units(fixed, 85, 5, 1.39)
        assert units >= previous
        previous = units


@pytest.mark.parametrize("fee_pct", [0.0, 1.39])
@pytest.mark.parametrize("variable_cost", [0.0, 5.0, 40.0])
def test_break_even_units_is_monotonic_in_price(fee_pct: float, variable_cost: float) -> None:
    """A higher price never requires more sessions."""
    previous = math.inf
    for price in [10.0, 40.0, 41.0, 50.0, 85.0, 120.0, 500.0]:
        units = break_even_units(2000, price, variable_cost, fee_pct)
        assert units <= previous
        previous = units


def test_profit_with_fees() -> None:
    # 20 * 98.61 - 20 * 10 - 500
    assert profit_with_fees(20, 100, 10, 500, 1.39) == pytest.approx(1272.2)
    assert profit_margin_with_fees(20, 100, 10, 500, 1.39) == pytest.approx(
        1272.2 / 1972.2 * 100
    )


def test_profit_margin_without_revenue_is_zero() -> None:
    assert profit_margin_with_fees(0, 100, 10, 500) == 0.0


def test_total_costs_and_monthly_profit() -> None:
    assert total_costs_with_fees(6000, 10000, 1.39) == pytest.approx(6139)
    assert monthly_profit(10000, 6000, 1.39) == pytest.approx(3861)


def test_projected_gross_compound_growth() -> None:
    assert projected_gross(1000, 0.1, 1) == 1000
    assert projected_gross(1000, 0.1, 3) == pytest.approx(1210)


@pytest.mark.parametrize("month_index", [-3, 0, 1])
def test_projected_gross_first_month_is_starting_value(month_index: int) -> None:
    assert projected_gross(5000, 0.05, month_index) == 5000


@pytest.mark.parametrize("month_index", [-2, 0, 1, 2, 12, 60, 99])
@pytest.mark.parametrize("starting_gross", [0.0, 1000.0, 8543.21])
def test_projected_gross_zero_growth_is_flat(starting_gross: float, month_index: int) -> None:
    assert projected_gross(starting_gross, 0, month_index) == starting_gross


def test_cumulative_profit() -> None:
    assert cumulative_profit(1000, 0, 500, 3, fee_pct=0) == pytest.approx(1500)
    assert cumulative_profit(1000, 0, 500, 0, fee_pct=0) == 0


def test_find_break_even_month_with_growth() -> None:
    """
    Balances: -7069.50, -3892.48, -456.60, then positive in month 4.
    """
    month = find_break_even_month(10000, 5000, 0.05, 2000)
    assert month == 4
    assert 3 <= month <= 5


def test_find_break_even_month_without_investment() -> None:
    assert find_break_even_month(0, 5000, 0.05, 2000) == 1


def test_find_break_even_month_without_growth() -> None:
    # 2930.5 profit per month: -2069.5 after month 1, positive after month 2
    assert find_break_even_month(5000, 5000, 0, 2000) == 2


def test_find_break_even_month_is_bounded() -> None:
    assert find_break_even_month(10000, 1000, 0, 2000, max_months=24) is None
    assert find_break_even_month(10000, 5000, 0, 2000, max_months=2) is None


def test_price_breakdown() -> None:
    b = price_breakdown(85, 1.39)
    assert b.gross_price == 85
    assert b.fee_percentage == 1.39
    assert b.fee_amount == pytest.approx(1.1815)
    assert b.net_price == pytest.approx(83.8185)
    assert b.fee_amount + b.net_price == pytest.approx(b.gross_price)


def test_cost_breakdown_reconciles_with_gross_revenue() -> None:
    c = cost_breakdown(10000, 6000, 1.39)
    assert c.payment_fees == pytest.approx(139)
    assert c.total_costs == pytest.approx(6139)
    assert c.net_profit == pytest.approx(3861)
    assert c.net_profit + c.total_costs == pytest.approx(c.gross_revenue)
