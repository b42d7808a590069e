from datetime import date

import pytest

from practice_finsight.models import ExpenseRecord, SessionPlan, TherapyOffering


def test_therapy_offering_defaults() -> None:
    therapy = TherapyOffering(id="physio", name="Physiotherapy", price_per_session=85.0)
    assert therapy.variable_cost_per_session == 0.0


@pytest.mark.parametrize("price, cost", [(-1.0, 0.0), (85.0, -5.0)])
def test_therapy_offering_rejects_negative_amounts(price: float, cost: float) -> None:
    with pytest.raises(ValueError):
        TherapyOffering(id="t", name="T", price_per_session=price, variable_cost_per_session=cost)


def test_session_plan_month_is_normalized() -> None:
    plan = SessionPlan(therapy_id="physio", period_month=date(2025, 3, 17), planned_sessions=10)
    assert plan.period_month == date(2025, 3, 1)
    assert plan.actual_sessions == 0


@pytest.mark.parametrize("planned, actual", [(-1, 0), (0, -3)])
def test_session_plan_rejects_negative_counts(planned: int, actual: int) -> None:
    with pytest.raises(ValueError):
        SessionPlan(
            therapy_id="physio",
            period_month=date(2025, 3, 1),
            planned_sessions=planned,
            actual_sessions=actual,
        )


def test_recurring_expense_requires_interval() -> None:
    with pytest.raises(ValueError, match="recurrence_interval"):
        ExpenseRecord(amount=100.0, date=date(2025, 1, 1), is_recurring=True)

    with pytest.raises(ValueError):
        ExpenseRecord(
            amount=100.0,
            date=date(2025, 1, 1),
            is_recurring=True,
            recurrence_interval="fortnightly",  # type: ignore[arg-type]
        )


def test_records_are_frozen() -> None:
    expense = ExpenseRecord(amount=100.0, date=date(2025, 1, 1))
    with pytest.raises(AttributeError):
        expense.amount = 200.0  # type: ignore[misc]
