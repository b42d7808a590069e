import pytest

from practice_finsight import viability
from practice_finsight.viability import (
    ViabilityInput,
    calculate_improvement_path,
    calculate_viability_score,
    identify_primary_constraint,
    viability_interpretation,
)

HEALTHY = ViabilityInput(
    total_revenue=10000,
    total_expenses=8000,
    total_sessions=100,
    target_sessions=120,
    therapy_count=4,
    active_therapy_count=3,
)

CAUTION = ViabilityInput(
    total_revenue=5000,
    total_expenses=10000,
    total_sessions=50,
    target_sessions=100,
    therapy_count=2,
    active_therapy_count=1,
)

EMPTY = ViabilityInput(
    total_revenue=0,
    total_expenses=5000,
    total_sessions=0,
    target_sessions=1,
    therapy_count=2,
    active_therapy_count=0,
)


def test_healthy_practice_score_breakdown() -> None:
    """40 (capped ratio) + 22.5 + 16.67 + 6 (20% margin -> 60 * 0.1)."""
    result = calculate_viability_score(HEALTHY)

    assert result.score == pytest.approx(40 + 22.5 + 100 / 6 + 6)
    assert result.revenue_ratio == pytest.approx(1.25)
    assert result.therapy_utilization == pytest.approx(75)
    assert result.session_utilization == pytest.approx(250 / 3)
    assert result.expense_management == pytest.approx(20)
    assert result.status == "healthy"


def test_loss_making_practice_is_caution() -> None:
    result = calculate_viability_score(CAUTION)

    assert result.score == pytest.approx(45)
    assert result.expense_management == 0.0
    assert result.status == "caution"


def test_practice_without_revenue_is_critical() -> None:
    result = calculate_viability_score(EMPTY)

    assert result.score == 0.0
    assert result.revenue_ratio == 0.0
    assert result.status == "critical"


@pytest.mark.parametrize(
    "revenue, expenses, sessions, target, therapies, active",
    [
        (0, 0, 0, 0, 0, 0),
        (1_000_000, 1, 10_000, 1, 1, 1),
        (1, 1_000_000, 0, 500, 10, 0),
        (5000, 0, 40, 20, 3, 3),
        (2500, 2500, 10, 10, 2, 2),
    ],
)
def test_score_is_always_between_0_and_100(
    revenue: float,
    expenses: float,
    sessions: float,
    target: float,
    therapies: int,
    active: int,
) -> None:
    result = calculate_viability_score(
        ViabilityInput(revenue, expenses, sessions, target, therapies, active)
    )
    assert 0.0 <= result.score <= 100.0
    assert result.session_utilization <= 100.0


def test_session_utilization_is_capped() -> None:
    data = ViabilityInput(5000, 4000, 300, 100, 1, 1)
    assert calculate_viability_score(data).session_utilization == 100.0


@pytest.mark.parametrize(
    "score, status",
    [(0, "critical"), (39.9, "critical"), (40, "caution"), (69.9, "caution"), (70, "healthy")],
)
def test_status_thresholds(score: float, status: str) -> None:
    """Status depends only on the final score."""
    assert viability._status_for(score) == status


def test_viability_interpretation() -> None:
    assert viability_interpretation(10) == "Practice is not viable - immediate action required"
    assert viability_interpretation(30) == "Critical concerns - significant changes needed"
    assert viability_interpretation(50) == "Below target - requires attention"
    assert viability_interpretation(70) == "Acceptable but room for improvement"
    assert viability_interpretation(95) == "Strong viability and growth potential"


def test_primary_constraint() -> None:
    assert identify_primary_constraint(HEALTHY) == "Therapy Utilization"
    # All three sub-scores at 50: the first one wins
    assert identify_primary_constraint(CAUTION) == "Revenue Coverage"
    low_volume = ViabilityInput(12000, 10000, 10, 100, 2, 2)
    assert identify_primary_constraint(low_volume) == "Session Volume"


def test_improvement_path_for_struggling_practice() -> None:
    path = calculate_improvement_path(CAUTION)

    assert path.current_score == pytest.approx(45)
    assert path.target_score == 75
    assert path.revenue_needed == pytest.approx(7000)
    assert path.expense_reduction_needed == pytest.approx(2000)
    assert path.additional_sessions == 50
    assert path.feasibility == "difficult"


def test_improvement_path_when_target_already_reached() -> None:
    path = calculate_improvement_path(HEALTHY)

    assert path.revenue_needed == 0.0
    assert path.expense_reduction_needed == 0.0
    assert path.additional_sessions == 0.0
    assert path.feasibility == "easy"
