from datetime import date

import pandas as pd
import pytest

from practice_finsight.io import InMemoryRecordStore
from practice_finsight.metrics import get_unified_metrics
from practice_finsight.models import (
    ExpenseRecord,
    ForecastDataPoint,
    MonthlyMetric,
    SessionPlan,
    TherapyMetric,
    TherapyOffering,
    VarianceAlert,
)
from practice_finsight.views import (
    ALERT_COLUMNS,
    FORECAST_COLUMNS,
    MONTHLY_COLUMNS,
    THERAPY_COLUMNS,
    alerts_to_dataframe,
    forecast_to_dataframe,
    monthly_breakdown_to_dataframe,
    summary_to_dataframe,
    therapy_metrics_to_dataframe,
)


def _therapy(therapy_id: str, gross: float) -> TherapyMetric:
    return TherapyMetric(
        id=therapy_id,
        name=therapy_id.title(),
        planned_sessions=10,
        actual_sessions=int(gross // 100),
        price_per_session=100.0,
        variable_cost_per_session=0.0,
        gross_revenue=gross,
        net_revenue=gross * 0.9861,
        total_margin=gross * 0.9861,
        margin_percent=98.61,
        utilization_rate=gross / 10,
    )


@pytest.mark.parametrize(
    "builder, columns",
    [
        (therapy_metrics_to_dataframe, THERAPY_COLUMNS),
        (monthly_breakdown_to_dataframe, MONTHLY_COLUMNS),
        (alerts_to_dataframe, ALERT_COLUMNS),
        (forecast_to_dataframe, FORECAST_COLUMNS),
    ],
)
def test_empty_views_keep_their_columns(builder, columns) -> None:
    df = builder([])
    assert df.empty
    assert list(df.columns) == columns


def test_therapies_sorted_by_gross_revenue() -> None:
    therapies = [_therapy("osteo", 500.0), _therapy("physio", 900.0), _therapy("yoga", 500.0)]

    df = therapy_metrics_to_dataframe(therapies)

    assert list(df.columns) == THERAPY_COLUMNS
    assert list(df["id"]) == ["physio", "osteo", "yoga"]
    assert df.loc[0, "net_revenue"] == pytest.approx(887.49)


def test_therapy_rounding() -> None:
    df = therapy_metrics_to_dataframe([_therapy("physio", 123.456)], decimals=1)
    assert df.loc[0, "gross_revenue"] == pytest.approx(123.5)


def test_monthly_breakdown_is_chronological() -> None:
    months = [
        MonthlyMetric(date(2025, 2, 1), 1250.0, 1232.625, 1000.0, 15, 232.625, 18.87),
        MonthlyMetric(date(2025, 1, 1), 0.0, 0.0, 1000.0, 0, -1000.0, 0.0),
    ]

    df = monthly_breakdown_to_dataframe(months)

    assert list(df["month"]) == ["2025-01", "2025-02"]
    assert list(df["total_sessions"]) == [0, 15]
    assert df.loc[1, "net_revenue"] == pytest.approx(1232.62, abs=0.01)


def test_alert_action_items_are_joined() -> None:
    alert = VarianceAlert(
        id="revenue-below-plan",
        type="REVENUE_BELOW_PLAN",
        severity="warning",
        title="Revenue 5-15% Below Plan",
        message="Expected €10,000.00, achieved €9,000.00",
        metric="total_revenue",
        current_value=9000.0,
        expected_value=10000.0,
        variance=-1000.0,
        variance_percent=-10.0,
        action_items=("Monitor booking trends closely", "Consider targeted promotions"),
    )

    df = alerts_to_dataframe([alert])

    assert list(df.columns) == ALERT_COLUMNS
    assert df.loc[0, "action_items"] == (
        "Monitor booking trends closely; Consider targeted promotions"
    )
    assert df.loc[0, "variance_percent"] == -10.0


def test_forecast_view() -> None:
    point = ForecastDataPoint(date(2025, 4, 1), 3550.123, 0.60123, 4000.0, 3100.0)

    df = forecast_to_dataframe([point])

    assert df.loc[0, "month"] == "2025-04"
    assert df.loc[0, "forecasted_revenue"] == pytest.approx(3550.12)
    assert df.loc[0, "confidence"] == pytest.approx(0.601)


def test_summary_view() -> None:
    store = InMemoryRecordStore(
        [TherapyOffering("physio", "Physiotherapy", 100.0)],
        [SessionPlan("physio", date(2025, 3, 1), 20, 20)],
        [ExpenseRecord(1000.0, date(2025, 3, 5))],
    )
    response = get_unified_metrics(store, "month", date(2025, 3, 15))

    df = summary_to_dataframe(response)
    values = dict(zip(df["metric"], df["value"]))

    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == ["metric", "value"]
    assert values["period"] == "March 2025"
    assert values["gross_revenue"] == 2000.0
    assert values["payment_fees"] == 27.8
    assert values["net_revenue"] == 1972.2
    assert values["net_income"] == 972.2
    assert values["total_sessions"] == 20
    assert values["break_even_status"] == "surplus"
    assert values["data_quality"] == "complete"
