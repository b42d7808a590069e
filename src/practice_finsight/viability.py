# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Practice viability score.

The viability score (0-100) is a weighted composite of four sub-scores:

    =====================  ======  =========================================
    Sub-score              Weight  Value
    =====================  ======  =========================================
    Revenue ratio          40%     revenue / expenses * 100, capped at 100
    Therapy utilization    30%     active therapies / therapies * 100
    Session utilization    20%     sessions / target sessions * 100, capped
    Expense management     10%     (profit margin % + 100) * 0.5, capped
    =====================  ======  =========================================

The profit margin is -100% when there is no revenue, which maps the
expense-management sub-score to 0.

Status thresholds:
    score < 40        -> 'critical'
    40 <= score < 70  -> 'caution'
    score >= 70       -> 'healthy'

Revenue fed into this module should be *net* revenue (after payment fees),
which is what the metrics orchestrator does.
"""

from dataclasses import dataclass
from typing import Literal

from .models import ViabilityScore, ViabilityStatus

WEIGHT_REVENUE_RATIO = 0.4
WEIGHT_THERAPY_UTILIZATION = 0.3
WEIGHT_SESSION_UTILIZATION = 0.2
WEIGHT_EXPENSE_MANAGEMENT = 0.1

Feasibility = Literal["easy", "moderate", "difficult"]


@dataclass(frozen=True)
class ViabilityInput:
    total_revenue: float
    total_expenses: float
    total_sessions: float
    target_sessions: float
    therapy_count: int
    active_therapy_count: int


@dataclass(frozen=True)
class ImprovementPath:
    """What has to change to reach a target viability score."""

    current_score: float
    target_score: float
    revenue_needed: float
    expense_reduction_needed: float
    additional_sessions: float
    feasibility: Feasibility


def _revenue_ratio(data: ViabilityInput) -> float:
    if data.total_expenses > 0:
        return data.total_revenue / data.total_expenses
    return 0.0


def _therapy_utilization(data: ViabilityInput) -> float:
    if data.therapy_count > 0:
        return data.active_therapy_count / data.therapy_count * 100
    return 0.0


def _session_utilization(data: ViabilityInput) -> float:
    if data.target_sessions > 0:
        return data.total_sessions / data.target_sessions * 100
    return 0.0


def _status_for(score: float) -> ViabilityStatus:
    if score < 40:
        return "critical"
    if score < 70:
        return "caution"
    return "healthy"


def calculate_viability_score(data: ViabilityInput) -> ViabilityScore:
    """
    Compute the weighted viability score and its breakdown.

    Args:
        data: Aggregated revenue, expenses, sessions and therapy counts.

    Returns:
        ViabilityScore whose ``score`` is always within [0, 100].
    """
    revenue_ratio = _revenue_ratio(data)
    revenue_ratio_score = min(revenue_ratio * 100, 100.0)

    therapy_utilization = _therapy_utilization(data)
    session_utilization = min(_session_utilization(data), 100.0)

    if data.total_revenue > 0:
        profit_margin_pct = (
            (data.total_revenue - data.total_expenses) / data.total_revenue * 100
        )
    else:
        profit_margin_pct = -100.0
    expense_management_score = min((profit_margin_pct + 100) * 0.5, 100.0)

    weighted = (
        revenue_ratio_score * WEIGHT_REVENUE_RATIO
        + therapy_utilization * WEIGHT_THERAPY_UTILIZATION
        + session_utilization * WEIGHT_SESSION_UTILIZATION
        + expense_management_score * WEIGHT_EXPENSE_MANAGEMENT
    )
    score = min(100.0, max(0.0, weighted))

    return ViabilityScore(
        score=score,
        revenue_ratio=revenue_ratio,
        therapy_utilization=therapy_utilization,
        session_utilization=session_utilization,
        expense_management=max(0.0, profit_margin_pct),
        status=_status_for(score),
    )


def viability_interpretation(score: float) -> str:
    """Human-readable reading of a viability score."""
    if score < 20:
        return "Practice is not viable - immediate action required"
    if score < 40:
        return "Critical concerns - significant changes needed"
    if score < 60:
        return "Below target - requires attention"
    if score < 80:
        return "Acceptable but room for improvement"
    return "Strong viability and growth potential"


def identify_primary_constraint(data: ViabilityInput) -> str:
    """
    Name of the sub-score currently limiting viability the most.

    One of 'Revenue Coverage', 'Therapy Utilization' or 'Session Volume'.
    On ties, the first one in that order wins.
    """
    constraints = [
        ("Revenue Coverage", min(_revenue_ratio(data) * 100, 100.0)),
        ("Therapy Utilization", _therapy_utilization(data)),
        ("Session Volume", _session_utilization(data)),
    ]
    name, _ = min(constraints, key=lambda item: item[1])
    return name


def calculate_improvement_path(
    data: ViabilityInput,
    target_score: float = 75,
) -> ImprovementPath:
    """
    Estimate the effort required to reach ``target_score``.

    The estimate aims for revenue covering expenses by 120%, and considers
    a 20% expense reduction and closing the session gap as levers.
    Feasibility compares the revenue gap with current revenue: below 10% is
    'easy', above 50% is 'difficult', anything in between 'moderate'.
    """
    current_score = calculate_viability_score(data).score

    if current_score >= target_score:
        return ImprovementPath(
            current_score=current_score,
            target_score=target_score,
            revenue_needed=0.0,
            expense_reduction_needed=0.0,
            additional_sessions=0.0,
            feasibility="easy",
        )

    revenue_needed = data.total_expenses * 1.2 - data.total_revenue
    expense_reduction_needed = data.total_expenses * 0.2
    additional_sessions = max(0.0, data.target_sessions - data.total_sessions)

    feasibility: Feasibility = "moderate"
    if revenue_needed < data.total_revenue * 0.1:
        feasibility = "easy"
    elif revenue_needed > data.total_revenue * 0.5:
        feasibility = "difficult"

    return ImprovementPath(
        current_score=current_score,
        target_score=target_score,
        revenue_needed=max(0.0, revenue_needed),
        expense_reduction_needed=max(0.0, expense_reduction_needed),
        additional_sessions=additional_sessions,
        feasibility=feasibility,
    )
