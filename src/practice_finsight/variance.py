# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Variance detection: actual vs. planned metrics.

``detect_variances(actual, plan)`` compares two MetricsComparison records
and returns a list of VarianceAlert objects produced by fixed threshold
rules. Rules are evaluated independently; a single comparison can raise
alerts in several categories.

    ==========================  ===========================  ========  =====================
    Signal                      Condition (variance %)       Severity  Type
    ==========================  ===========================  ========  =====================
    Revenue                     < -15                        critical  REVENUE_BELOW_PLAN
    Revenue                     -15 .. -5                    warning   REVENUE_BELOW_PLAN
    Revenue                     > 20                         info      REVENUE_ABOVE_PLAN
    Sessions                    < -20                        critical  REVENUE_BELOW_PLAN
    Expenses                    > 15                         critical  EXPENSE_OVERRUN
    Therapy sessions            < -30 (planned, actual > 0)  warning   THERAPY_UNDERUTILIZED
    Therapy sessions            > 25                         info      THERAPY_OPPORTUNITY
    ==========================  ===========================  ========  =====================

Variance percentages are 0 when the planned value is 0, so nothing is
raised against an empty plan.

Alerts are sorted by severity (critical, warning, info), then by
decreasing absolute variance percentage.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Optional

from .formatting import format_euro
from .models import VarianceAlert

SEVERITY_RANK: dict[str, int] = {"critical": 0, "warning": 1, "info": 2}

REVENUE_CRITICAL_THRESHOLD = -15.0
REVENUE_WARNING_THRESHOLD = -5.0
REVENUE_ABOVE_THRESHOLD = 20.0
SESSIONS_CRITICAL_THRESHOLD = -20.0
EXPENSE_OVERRUN_THRESHOLD = 15.0
THERAPY_UNDERUTILIZED_THRESHOLD = -30.0
THERAPY_OPPORTUNITY_THRESHOLD = 25.0

ACTIONS_REVENUE_CRITICAL: tuple[str, ...] = (
    "Review therapy session booking rates and cancellation trends",
    "Analyze pricing - consider if price adjustments needed",
    "Increase marketing and patient acquisition efforts",
    "Check for seasonal patterns or market changes",
)
ACTIONS_REVENUE_WARNING: tuple[str, ...] = (
    "Monitor booking trends closely",
    "Consider targeted promotions for underperforming therapies",
)
ACTIONS_REVENUE_ABOVE: tuple[str, ...] = (
    "Analyze what drives outperformance - replicate success",
    "Consider if current capacity can handle increased demand",
    "Evaluate pricing power - might support further increases",
)
ACTIONS_SESSIONS_CRITICAL: tuple[str, ...] = (
    "Investigate patient dropout or cancellation reasons",
    "Review scheduling efficiency and slot utilization",
    "Check therapist availability and capacity",
)
ACTIONS_EXPENSE_OVERRUN: tuple[str, ...] = (
    "Review cost breakdown - identify largest overruns",
    "Negotiate with suppliers for better rates",
    "Reduce non-essential spending",
    "Implement cost control measures",
)


@dataclass(frozen=True)
class TherapyComparison:
    id: str
    name: str
    actual_sessions: float
    planned_sessions: float
    actual_revenue: float
    planned_revenue: float


@dataclass(frozen=True)
class MetricsComparison:
    """
    Aggregate metrics of one side of a comparison.

    The actual side reads the ``actual_*`` fields and the plan side the
    ``planned_*`` fields, so the same record type can describe a budget,
    a previous period or the current period.
    """

    actual_revenue: float
    planned_revenue: float
    actual_expenses: float
    planned_expenses: float
    actual_sessions: float
    planned_sessions: float
    therapy_metrics: tuple[TherapyComparison, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class VarianceSummary:
    total: int
    critical: int
    warnings: int
    opportunities: int


def _variance_percent(actual: float, expected: float) -> float:
    if expected > 0:
        return (actual - expected) / expected * 100
    return 0.0


def _therapy_underutilized_actions(name: str) -> tuple[str, ...]:
    return (
        f"Review {name} pricing - may be too high",
        "Investigate patient demand for this therapy type",
        f"Update marketing for {name}",
        "Consider adjusting therapist allocation to higher-demand types",
    )


def _therapy_opportunity_actions(name: str) -> tuple[str, ...]:
    return (
        f"Consider expanding capacity for {name}",
        "Allocate additional marketing budget to this therapy type",
        "Analyze success factors to replicate in other areas",
    )


def _revenue_alerts(actual: MetricsComparison, plan: MetricsComparison) -> list[VarianceAlert]:
    expected = plan.planned_revenue
    current = actual.actual_revenue
    variance = current - expected
    variance_pct = _variance_percent(current, expected)
    message = f"Expected {format_euro(expected)}, achieved {format_euro(current)}"

    if variance_pct < REVENUE_CRITICAL_THRESHOLD:
        return [
            VarianceAlert(
                id="revenue-significantly-below",
                type="REVENUE_BELOW_PLAN",
                severity="critical",
                title="Revenue 15%+ Below Plan",
                message=message,
                metric="total_revenue",
                current_value=current,
                expected_value=expected,
                variance=variance,
                variance_percent=variance_pct,
                action_items=ACTIONS_REVENUE_CRITICAL,
            )
        ]
    if variance_pct < REVENUE_WARNING_THRESHOLD:
        return [
            VarianceAlert(
                id="revenue-below-plan",
                type="REVENUE_BELOW_PLAN",
                severity="warning",
                title="Revenue 5-15% Below Plan",
                message=message,
                metric="total_revenue",
                current_value=current,
                expected_value=expected,
                variance=variance,
                variance_percent=variance_pct,
                action_items=ACTIONS_REVENUE_WARNING,
            )
        ]
    if variance_pct > REVENUE_ABOVE_THRESHOLD:
        return [
            VarianceAlert(
                id="revenue-above-plan",
                type="REVENUE_ABOVE_PLAN",
                severity="info",
                title="Revenue Exceeding Plan",
                message=message,
                metric="total_revenue",
                current_value=current,
                expected_value=expected,
                variance=variance,
                variance_percent=variance_pct,
                action_items=ACTIONS_REVENUE_ABOVE,
            )
        ]
    return []


def _session_alerts(actual: MetricsComparison, plan: MetricsComparison) -> list[VarianceAlert]:
    expected = plan.planned_sessions
    current = actual.actual_sessions
    variance_pct = _variance_percent(current, expected)

    if variance_pct >= SESSIONS_CRITICAL_THRESHOLD:
        return []
    return [
        VarianceAlert(
            id="sessions-significantly-below",
            type="REVENUE_BELOW_PLAN",
            severity="critical",
            title="Session Volume 20%+ Below Plan",
            message=f"Expected {expected:g} sessions, completed {current:g}",
            metric="total_sessions",
            current_value=current,
            expected_value=expected,
            variance=current - expected,
            variance_percent=variance_pct,
            action_items=ACTIONS_SESSIONS_CRITICAL,
        )
    ]


def _expense_alerts(actual: MetricsComparison, plan: MetricsComparison) -> list[VarianceAlert]:
    expected = plan.planned_expenses
    current = actual.actual_expenses
    variance_pct = _variance_percent(current, expected)

    if variance_pct <= EXPENSE_OVERRUN_THRESHOLD:
        return []
    return [
        VarianceAlert(
            id="expenses-over-budget",
            type="EXPENSE_OVERRUN",
            severity="critical",
            title="Expenses 15%+ Over Budget",
            message=f"Budgeted {format_euro(expected)}, spent {format_euro(current)}",
            metric="total_expenses",
            current_value=current,
            expected_value=expected,
            variance=current - expected,
            variance_percent=variance_pct,
            action_items=ACTIONS_EXPENSE_OVERRUN,
        )
    ]


def _therapy_alerts(actual: MetricsComparison, plan: MetricsComparison) -> list[VarianceAlert]:
    planned_by_id = {t.id: t for t in plan.therapy_metrics}
    alerts: list[VarianceAlert] = []

    for therapy in actual.therapy_metrics:
        planned = planned_by_id.get(therapy.id)
        if planned is None:
            continue

        session_variance = therapy.actual_sessions - planned.planned_sessions
        variance_pct = _variance_percent(therapy.actual_sessions, planned.planned_sessions)

        if (
            variance_pct < THERAPY_UNDERUTILIZED_THRESHOLD
            and planned.planned_sessions > 0
            and therapy.actual_sessions > 0
        ):
            alerts.append(
                VarianceAlert(
                    id=f"therapy-underutilized-{therapy.id}",
                    type="THERAPY_UNDERUTILIZED",
                    severity="warning",
                    title=f"{therapy.name}: {abs(variance_pct):.0f}% Below Plan",
                    message=(
                        f"Expected {planned.planned_sessions:g} sessions, "
                        f"got {therapy.actual_sessions:g}"
                    ),
                    metric=f"therapy_{therapy.id}_sessions",
                    current_value=therapy.actual_sessions,
                    expected_value=planned.planned_sessions,
                    variance=session_variance,
                    variance_percent=variance_pct,
                    action_items=_therapy_underutilized_actions(therapy.name),
                )
            )

        if variance_pct > THERAPY_OPPORTUNITY_THRESHOLD:
            alerts.append(
                VarianceAlert(
                    id=f"therapy-opportunity-{therapy.id}",
                    type="THERAPY_OPPORTUNITY",
                    severity="info",
                    title=(
                        f"{therapy.name}: Growing Faster Than Expected "
                        f"(+{variance_pct:.0f}%)"
                    ),
                    message=(
                        f"Expected {planned.planned_sessions:g} sessions, "
                        f"achieved {therapy.actual_sessions:g}"
                    ),
                    metric=f"therapy_{therapy.id}_revenue",
                    current_value=therapy.actual_revenue,
                    expected_value=planned.planned_revenue,
                    variance=therapy.actual_revenue - planned.planned_revenue,
                    variance_percent=variance_pct,
                    action_items=_therapy_opportunity_actions(therapy.name),
                )
            )

    return alerts


def detect_variances(
    actual: MetricsComparison,
    plan: Optional[MetricsComparison] = None,
) -> list[VarianceAlert]:
    """
    Detect deviations from plan and build actionable alerts.

    Args:
        actual: Metrics of the current period.
        plan: Metrics to compare against (budget or a previous period).
            When omitted, no comparison is possible and an empty list is
            returned.

    Returns:
        Alerts sorted by severity, then by decreasing absolute variance %.
    """
    if plan is None:
        return []

    alerts = [
        *_revenue_alerts(actual, plan),
        *_session_alerts(actual, plan),
        *_expense_alerts(actual, plan),
        *_therapy_alerts(actual, plan),
    ]
    alerts.sort(key=lambda a: (SEVERITY_RANK[a.severity], -abs(a.variance_percent)))
    return alerts


def variance_summary(alerts: Sequence[VarianceAlert]) -> VarianceSummary:
    return VarianceSummary(
        total=len(alerts),
        critical=sum(1 for a in alerts if a.severity == "critical"),
        warnings=sum(1 for a in alerts if a.severity == "warning"),
        opportunities=sum(1 for a in alerts if a.severity == "info"),
    )


def has_critical_issues(alerts: Sequence[VarianceAlert]) -> bool:
    return any(a.severity == "critical" for a in alerts)
