# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Revenue forecast based on an ordinary least squares trend.

Given monthly historical revenue (oldest first), the forecast fits

    revenue = slope * x + intercept,    x = 0 .. n-1

and projects it ``months_ahead`` months past the last historical month.

Each forecast point carries
    - a confidence, ``min(0.95, 0.5 + 0.05 * n) * 0.95 ** (i - 1)``,
      so it grows with history length and decays with the horizon;
    - a band ``forecast * (1 +/- volatility * (2 - confidence))``, where
      volatility is the coefficient of variation (population standard
      deviation / mean) of the historical revenue.

Forecasted revenue and bounds are floored at 0. Revenue here is *gross*;
helpers comparing against costs or plans convert it to net revenue with
``payment_fees.net``.

With fewer than two historical months no trend can be fitted: the forecast
is a list of neutral points (revenue 0, confidence 0.5) starting the month
after the current one.
"""

import statistics
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Literal, Optional

from . import periods
from .models import ForecastDataPoint
from .payment_fees import DEFAULT_FEE_PERCENTAGE, net

DEFAULT_MONTHS_AHEAD = 6
MAX_BASE_CONFIDENCE = 0.95
NEUTRAL_CONFIDENCE = 0.5
CONFIDENCE_DECAY = 0.95
DEFAULT_VOLATILITY = 0.1
TREND_CHANGE_THRESHOLD = 20.0
RISK_LOWER_BOUND_RATIO = 0.8

RiskLevel = Literal["low", "medium", "high"]


@dataclass(frozen=True)
class HistoricalMetrics:
    """Actual figures of one past month."""

    month: date
    revenue: float
    sessions: float = 0
    expenses: float = 0


@dataclass(frozen=True)
class RegressionResult:
    slope: float
    intercept: float
    r_squared: float


@dataclass(frozen=True)
class TrendChange:
    month: date
    change_percent: float


@dataclass(frozen=True)
class ForecastRisk:
    risk_level: RiskLevel
    description: str
    months_at_risk: int


# ---------------------------------------------------------------------------
# Statistics helpers
# ---------------------------------------------------------------------------


def linear_regression(values: Sequence[float]) -> RegressionResult:
    """
    Least squares fit of ``values`` against their index.

    The slope is 0 when fewer than two values are given. ``r_squared`` is
    1.0 for a perfectly flat series (nothing left to explain) and 0.0 for
    an empty one.
    """
    n = len(values)
    if n == 0:
        return RegressionResult(slope=0.0, intercept=0.0, r_squared=0.0)

    x_mean = (n - 1) / 2
    y_mean = sum(values) / n

    numerator = 0.0
    denominator = 0.0
    for i, y in enumerate(values):
        x_diff = i - x_mean
        numerator += x_diff * (y - y_mean)
        denominator += x_diff * x_diff

    slope = numerator / denominator if denominator != 0 else 0.0
    intercept = y_mean - slope * x_mean

    ss_tot = sum((y - y_mean) ** 2 for y in values)
    ss_res = sum((y - (slope * i + intercept)) ** 2 for i, y in enumerate(values))
    r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0 else 1.0

    return RegressionResult(slope=slope, intercept=intercept, r_squared=r_squared)


def _confidence(data_points: int, months_ahead: int) -> float:
    base = min(MAX_BASE_CONFIDENCE, NEUTRAL_CONFIDENCE + data_points * 0.05)
    return base * CONFIDENCE_DECAY ** (months_ahead - 1)


def _volatility(revenues: Sequence[float]) -> float:
    if len(revenues) < 2:
        return DEFAULT_VOLATILITY
    mean = statistics.fmean(revenues)
    if mean == 0:
        return 0.0
    return statistics.pstdev(revenues) / mean


def _neutral_forecast(months_ahead: int, today: Optional[date]) -> list[ForecastDataPoint]:
    anchor = periods.month_start(today or periods._today())
    return [
        ForecastDataPoint(
            month=periods.add_months(anchor, i),
            forecasted_revenue=0.0,
            confidence=NEUTRAL_CONFIDENCE,
            upper_bound=0.0,
            lower_bound=0.0,
        )
        for i in range(1, months_ahead + 1)
    ]


# ---------------------------------------------------------------------------
# Forecast
# ---------------------------------------------------------------------------


def calculate_forecast(
    historical: Sequence[HistoricalMetrics],
    months_ahead: int = DEFAULT_MONTHS_AHEAD,
    today: Optional[date] = None,
) -> list[ForecastDataPoint]:
    """
    Project monthly revenue ``months_ahead`` months into the future.

    Parameters
    ----------
    historical:
        Monthly history, oldest first.
    months_ahead:
        Forecast horizon in months. A horizon of 0 (or less) yields an
        empty list.
    today:
        Anchor of the neutral forecast returned when the history is too
        short. Defaults to the current date.

    Returns
    -------
    list[ForecastDataPoint]
        Exactly ``months_ahead`` points, one per month.
    """
    if len(historical) < 2:
        return _neutral_forecast(months_ahead, today)

    revenues = [h.revenue for h in historical]
    n = len(revenues)
    fit = linear_regression(revenues)
    volatility = _volatility(revenues)
    last_month = periods.month_start(historical[-1].month)

    points: list[ForecastDataPoint] = []
    for i in range(1, months_ahead + 1):
        value = fit.slope * (n + i - 1) + fit.intercept
        confidence = _confidence(n, i)
        spread = volatility * (2 - confidence)

        points.append(
            ForecastDataPoint(
                month=periods.add_months(last_month, i),
                forecasted_revenue=max(0.0, value),
                confidence=confidence,
                upper_bound=max(0.0, value * (1 + spread)),
                lower_bound=max(0.0, value * (1 - spread)),
            )
        )

    return points


def calculate_break_even_month(
    forecast: Sequence[ForecastDataPoint],
    fixed_costs: float,
    fee_pct: float = DEFAULT_FEE_PERCENTAGE,
) -> Optional[date]:
    """First forecast month whose net revenue covers ``fixed_costs``, or None."""
    for point in forecast:
        if net(point.forecasted_revenue, fee_pct) >= fixed_costs:
            return point.month
    return None


def forecast_break_even_date(
    historical: Sequence[HistoricalMetrics],
    fixed_costs: float,
    months_ahead: int = 12,
    fee_pct: float = DEFAULT_FEE_PERCENTAGE,
) -> Optional[date]:
    forecast = calculate_forecast(historical, months_ahead)
    return calculate_break_even_month(forecast, fixed_costs, fee_pct)


# ---------------------------------------------------------------------------
# Trend and risk analysis
# ---------------------------------------------------------------------------


def calculate_revenue_trend(historical: Sequence[HistoricalMetrics]) -> float:
    """
    Month-over-month revenue change of the last two months, in percent.

    0 with fewer than two months; 100 when revenue appears after a month
    without any.
    """
    if len(historical) < 2:
        return 0.0

    recent = historical[-1].revenue
    previous = historical[-2].revenue
    if previous == 0:
        return 100.0 if recent > 0 else 0.0
    return (recent - previous) / previous * 100


def identify_trend_changes(historical: Sequence[HistoricalMetrics]) -> list[TrendChange]:
    """
    Months where the growth rate swings by more than 20 percentage points.

    For each inner month, the growth into the month is compared with the
    growth out of it. A growth rate from a month without revenue counts
    as 0.
    """
    changes: list[TrendChange] = []
    for i in range(1, len(historical) - 1):
        prev = historical[i - 1].revenue
        curr = historical[i].revenue
        nxt = historical[i + 1].revenue

        prev_trend = (curr - prev) / prev * 100 if prev > 0 else 0.0
        next_trend = (nxt - curr) / curr * 100 if curr > 0 else 0.0
        change = next_trend - prev_trend

        if abs(change) > TREND_CHANGE_THRESHOLD:
            changes.append(TrendChange(month=historical[i].month, change_percent=change))

    return changes


def assess_forecast_risk(
    forecast: Sequence[ForecastDataPoint],
    planned_revenue: float,
    fee_pct: float = DEFAULT_FEE_PERCENTAGE,
) -> ForecastRisk:
    """
    Compare the pessimistic forecast with the monthly plan.

    A month is at risk when the net lower bound falls below 80% of the net
    planned revenue. Risk is 'high' when at least half of the forecast
    months are at risk, 'medium' when any is, 'low' otherwise. An empty
    forecast offers no evidence of performance and is rated 'high'.
    """
    net_planned = net(planned_revenue, fee_pct)
    months_at_risk = sum(
        1
        for point in forecast
        if net(point.lower_bound, fee_pct) < net_planned * RISK_LOWER_BOUND_RATIO
    )

    if months_at_risk >= len(forecast) * 0.5:
        return ForecastRisk(
            risk_level="high",
            description="Over half of forecast period at risk of underperforming plan",
            months_at_risk=months_at_risk,
        )
    if months_at_risk > 0:
        return ForecastRisk(
            risk_level="medium",
            description="Some months projected below plan - monitoring recommended",
            months_at_risk=months_at_risk,
        )
    return ForecastRisk(
        risk_level="low",
        description="Forecast indicates strong performance",
        months_at_risk=0,
    )


def confidence_band_width(forecast: Sequence[ForecastDataPoint]) -> list[float]:
    """Band width of each point as a percentage of its forecast (0 if none)."""
    widths: list[float] = []
    for point in forecast:
        if point.forecasted_revenue > 0:
            widths.append(
                (point.upper_bound - point.lower_bound) / point.forecasted_revenue * 100
            )
        else:
            widths.append(0.0)
    return widths
