# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Value records shared by every layer of Practice FinSight.

Two families of records live here:

1. Input records
   -------------
   Plain data supplied by the storage collaborator (CSV files, a database,
   an API). The engine only reads them.

   - TherapyOffering : a bookable therapy type with its price and variable
                       cost per session.
   - SessionPlan     : planned vs. completed sessions of one therapy for one
                       calendar month.
   - ExpenseRecord   : an expense, optionally recurring.

2. Computed records
   ----------------
   Results returned by the calculators. They are produced fresh on every
   call and never cached by the engine.

All records are frozen dataclasses: the engine never mutates its inputs
and callers cannot alter a computed result after the fact.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Optional

RecurrenceInterval = Literal["daily", "weekly", "monthly", "quarterly", "yearly"]
RECURRENCE_INTERVALS: tuple[str, ...] = (
    "daily",
    "weekly",
    "monthly",
    "quarterly",
    "yearly",
)

ViabilityStatus = Literal["critical", "caution", "healthy"]
Severity = Literal["critical", "warning", "info"]
AlertType = Literal[
    "REVENUE_BELOW_PLAN",
    "REVENUE_ABOVE_PLAN",
    "THERAPY_UNDERUTILIZED",
    "THERAPY_OPPORTUNITY",
    "EXPENSE_OVERRUN",
]

# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TherapyOffering:
    """A therapy type offered by the practice."""

    id: str
    name: str
    price_per_session: float
    variable_cost_per_session: float = 0.0

    def __post_init__(self) -> None:
        if self.price_per_session < 0:
            raise ValueError(
                f"Therapy {self.id!r}: price_per_session cannot be negative."
            )
        if self.variable_cost_per_session < 0:
            raise ValueError(
                f"Therapy {self.id!r}: variable_cost_per_session cannot be negative."
            )


@dataclass(frozen=True)
class SessionPlan:
    """
    Booked vs. completed sessions of one therapy for one calendar month.

    ``period_month`` is normalized to the first day of its month so that
    plans can be grouped by month without further processing.
    """

    therapy_id: str
    period_month: date
    planned_sessions: int = 0
    actual_sessions: int = 0

    def __post_init__(self) -> None:
        if self.planned_sessions < 0 or self.actual_sessions < 0:
            raise ValueError(
                f"Session plan for {self.therapy_id!r} ({self.period_month}): "
                "session counts cannot be negative."
            )
        if self.period_month.day != 1:
            object.__setattr__(self, "period_month", self.period_month.replace(day=1))


@dataclass(frozen=True)
class ExpenseRecord:
    """
    An expense of the practice.

    Attributes
    ----------
    amount :
        Amount of one occurrence of the expense.
    date :
        Date of the expense. For recurring expenses this is the date of the
        first occurrence; the expense does not apply to earlier months.
    is_recurring :
        Whether the expense repeats.
    recurrence_interval :
        One of 'daily', 'weekly', 'monthly', 'quarterly', 'yearly'. Required
        when ``is_recurring`` is true, ignored otherwise.
    spread_monthly :
        For quarterly and yearly expenses: spread the amount evenly over the
        months it covers instead of booking it in full when it falls due.
    """

    amount: float
    date: date
    is_recurring: bool = False
    recurrence_interval: Optional[RecurrenceInterval] = None
    spread_monthly: bool = False
    description: str = ""
    category: str = ""

    def __post_init__(self) -> None:
        if self.is_recurring:
            if self.recurrence_interval not in RECURRENCE_INTERVALS:
                raise ValueError(
                    "Recurring expense requires a recurrence_interval among "
                    f"{', '.join(RECURRENCE_INTERVALS)} "
                    f"(got {self.recurrence_interval!r})."
                )


# ---------------------------------------------------------------------------
# Core calculator results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SessionRevenue:
    revenue: float
    sessions: float
    price_per_session: float
    average_price: float


@dataclass(frozen=True)
class MarginResult:
    revenue: float
    total_cost: float
    margin: float
    margin_percent: float
    break_even: bool


@dataclass(frozen=True)
class ContributionMargin:
    price_per_session: float
    variable_cost_per_session: float
    margin: float
    margin_percent: float


@dataclass(frozen=True)
class SessionMetrics:
    planned_sessions: float
    actual_sessions: float
    variance: float
    variance_percent: float
    utilization_rate: float


@dataclass(frozen=True)
class PriceBreakdown:
    """Gross vs. net price of one session, exposing the deducted fee."""

    gross_price: float
    fee_percentage: float
    fee_amount: float
    net_price: float


@dataclass(frozen=True)
class CostBreakdown:
    """
    Revenue split between fixed costs, payment fees and profit.

    Payment fees are shown as a separate cost line next to the fixed
    costs so that the profit reconciles with the gross revenue.
    """

    gross_revenue: float
    fixed_costs: float
    payment_fees: float
    total_costs: float
    net_profit: float
    fee_percentage: float


# ---------------------------------------------------------------------------
# Composite results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ViabilityScore:
    """
    Weighted viability score of the practice (0-100).

    Attributes
    ----------
    score :
        Final weighted score, clamped to [0, 100].
    revenue_ratio :
        Raw revenue / expenses ratio (not capped, not multiplied by 100).
    therapy_utilization :
        Share of therapies with at least one completed session, in percent.
    session_utilization :
        Completed sessions vs. target sessions, in percent, capped at 100.
    expense_management :
        Profit margin in percent, floored at 0.
    status :
        'critical' (< 40), 'caution' (40-70) or 'healthy' (>= 70).
    """

    score: float
    revenue_ratio: float
    therapy_utilization: float
    session_utilization: float
    expense_management: float
    status: ViabilityStatus


@dataclass(frozen=True)
class VarianceAlert:
    id: str
    type: AlertType
    severity: Severity
    title: str
    message: str
    metric: str
    current_value: float
    expected_value: float
    variance: float
    variance_percent: float
    action_items: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ForecastDataPoint:
    month: date
    forecasted_revenue: float
    confidence: float
    upper_bound: float
    lower_bound: float


# ---------------------------------------------------------------------------
# Aggregates used by the orchestrator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TherapyMetric:
    """Per-therapy aggregate over a reporting period."""

    id: str
    name: str
    planned_sessions: int
    actual_sessions: int
    price_per_session: float
    variable_cost_per_session: float
    gross_revenue: float
    net_revenue: float
    total_margin: float
    margin_percent: float
    utilization_rate: float


@dataclass(frozen=True)
class MonthlyMetric:
    """One month of a quarter/year breakdown."""

    month: date
    gross_revenue: float
    net_revenue: float
    total_expenses: float
    total_sessions: int
    net_income: float
    margin_percent: float
