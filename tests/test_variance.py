from typing import get_args

import pytest

from practice_finsight.models import AlertType
from practice_finsight.variance import (
    MetricsComparison,
    TherapyComparison,
    detect_variances,
    has_critical_issues,
    variance_summary,
)


def _comparison(
    revenue=(10000.0, 10000.0),
    expenses=(5000.0, 5000.0),
    sessions=(100.0, 100.0),
    therapies=(),
) -> MetricsComparison:
    """Build a comparison record from (actual, planned) pairs."""
    return MetricsComparison(
        actual_revenue=revenue[0],
        planned_revenue=revenue[1],
        actual_expenses=expenses[0],
        planned_expenses=expenses[1],
        actual_sessions=sessions[0],
        planned_sessions=sessions[1],
        therapy_metrics=tuple(therapies),
    )


def _therapy(therapy_id, name, actual, planned, price=80.0) -> TherapyComparison:
    return TherapyComparison(
        id=therapy_id,
        name=name,
        actual_sessions=actual,
        planned_sessions=planned,
        actual_revenue=actual * price,
        planned_revenue=planned * price,
    )


def test_no_plan_means_no_alerts() -> None:
    assert detect_variances(_comparison(revenue=(0.0, 50000.0))) == []
    assert detect_variances(_comparison(), None) == []


def test_on_plan_raises_nothing() -> None:
    cmp = _comparison()
    assert detect_variances(cmp, cmp) == []


@pytest.mark.parametrize(
    "actual, alert_id, severity, alert_type",
    [
        (8000.0, "revenue-significantly-below", "critical", "REVENUE_BELOW_PLAN"),
        (9000.0, "revenue-below-plan", "warning", "REVENUE_BELOW_PLAN"),
        (12500.0, "revenue-above-plan", "info", "REVENUE_ABOVE_PLAN"),
    ],
)
def test_revenue_rules(actual: float, alert_id: str, severity: str, alert_type: str) -> None:
    cmp = _comparison(revenue=(actual, 10000.0))
    alerts = detect_variances(cmp, cmp)

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.id == alert_id
    assert alert.severity == severity
    assert alert.type == alert_type
    assert alert.metric == "total_revenue"
    assert alert.current_value == actual
    assert alert.expected_value == 10000.0
    assert alert.variance == pytest.approx(actual - 10000.0)
    assert alert.action_items


@pytest.mark.parametrize("actual", [9500.0, 9600.0, 11000.0, 12000.0])
def test_revenue_within_tolerance(actual: float) -> None:
    """-5% and +20% are not strict breaches."""
    cmp = _comparison(revenue=(actual, 10000.0))
    assert detect_variances(cmp, cmp) == []


def test_revenue_message_is_formatted_in_euros() -> None:
    cmp = _comparison(revenue=(8000.0, 10000.0))
    alert = detect_variances(cmp, cmp)[0]

    assert alert.message == "Expected €10,000.00, achieved €8,000.00"
    assert alert.title == "Revenue 15%+ Below Plan"
    assert alert.action_items[0] == (
        "Review therapy session booking rates and cancellation trends"
    )


def test_session_volume_rule() -> None:
    cmp = _comparison(sessions=(70.0, 100.0))
    alerts = detect_variances(cmp, cmp)

    assert [a.id for a in alerts] == ["sessions-significantly-below"]
    assert alerts[0].type == "REVENUE_BELOW_PLAN"
    assert alerts[0].message == "Expected 100 sessions, completed 70"

    # Exactly -20% is tolerated
    cmp = _comparison(sessions=(80.0, 100.0))
    assert detect_variances(cmp, cmp) == []


def test_expense_overrun_rule() -> None:
    cmp = _comparison(expenses=(6000.0, 5000.0))
    alerts = detect_variances(cmp, cmp)

    assert [a.id for a in alerts] == ["expenses-over-budget"]
    assert alerts[0].type == "EXPENSE_OVERRUN"
    assert alerts[0].severity == "critical"
    assert alerts[0].message == "Budgeted €5,000.00, spent €6,000.00"

    cmp = _comparison(expenses=(5750.0, 5000.0))
    assert detect_variances(cmp, cmp) == []


def test_underutilized_therapy() -> None:
    cmp = _comparison(therapies=[_therapy("t1", "Massage", 5, 10)])
    alerts = detect_variances(cmp, cmp)

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.id == "therapy-underutilized-t1"
    assert alert.type == "THERAPY_UNDERUTILIZED"
    assert alert.severity == "warning"
    assert alert.title == "Massage: 50% Below Plan"
    assert alert.message == "Expected 10 sessions, got 5"
    assert alert.metric == "therapy_t1_sessions"
    assert alert.variance_percent == pytest.approx(-50)
    assert alert.action_items[0] == "Review Massage pricing - may be too high"


def test_therapy_without_any_session_is_not_flagged_as_underutilized() -> None:
    cmp = _comparison(therapies=[_therapy("t1", "Massage", 0, 10)])
    assert detect_variances(cmp, cmp) == []


def test_therapy_opportunity() -> None:
    cmp = _comparison(therapies=[_therapy("t2", "Osteopathy", 30, 20, price=95.0)])
    alerts = detect_variances(cmp, cmp)

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.id == "therapy-opportunity-t2"
    assert alert.type == "THERAPY_OPPORTUNITY"
    assert alert.severity == "info"
    assert alert.title == "Osteopathy: Growing Faster Than Expected (+50%)"
    assert alert.metric == "therapy_t2_revenue"
    assert alert.current_value == pytest.approx(2850)
    assert alert.expected_value == pytest.approx(1900)
    assert alert.variance == pytest.approx(950)
    assert alert.variance_percent == pytest.approx(50)


def test_therapies_are_matched_by_id() -> None:
    actual = _comparison(therapies=[_therapy("t1", "Massage", 5, 0)])
    plan = _comparison(therapies=[_therapy("other", "Other", 0, 10)])
    assert detect_variances(actual, plan) == []


def test_alerts_are_sorted_by_severity_then_magnitude() -> None:
    cmp = _comparison(
        revenue=(8000.0, 10000.0),
        expenses=(6000.0, 5000.0),
        sessions=(70.0, 100.0),
        therapies=[
            _therapy("t1", "Massage", 5, 10),
            _therapy("t2", "Osteopathy", 30, 20),
        ],
    )
    alerts = detect_variances(cmp, cmp)

    assert [a.id for a in alerts] == [
        "sessions-significantly-below",
        "revenue-significantly-below",
        "expenses-over-budget",
        "therapy-underutilized-t1",
        "therapy-opportunity-t2",
    ]

    summary = variance_summary(alerts)
    assert summary.total == 5
    assert summary.critical == 3
    assert summary.warnings == 1
    assert summary.opportunities == 1
    assert has_critical_issues(alerts) is True


def test_summary_of_no_alerts() -> None:
    summary = variance_summary([])
    assert (summary.total, summary.critical, summary.warnings, summary.opportunities) == (
        0,
        0,
        0,
        0,
    )
    assert has_critical_issues([]) is False


def test_alert_types_match_the_rules() -> None:
    """Every declared alert type is raised by one of the rules."""
    actual = _comparison(
        revenue=(5000.0, 10000.0),
        expenses=(8000.0, 5000.0),
        therapies=[_therapy("a", "Physio", 2, 10), _therapy("b", "Massage", 20, 10)],
    )
    above = _comparison(revenue=(13000.0, 10000.0))

    raised = {a.type for a in detect_variances(actual, actual)}
    raised |= {a.type for a in detect_variances(above, above)}

    assert raised == set(get_args(AlertType))
