# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for Practice FinSight.

This module turns the records returned by the calculation engine into
pandas DataFrames ready for console display (``DataFrame.to_string``) or
CSV export (``DataFrame.to_csv``).

Numbers stay numeric in every view, rounded to the requested number of
decimals; currency symbols and percent signs are left to the caller.
Empty inputs produce empty DataFrames that still carry the expected
columns, so that exports always have a header.
"""

from collections.abc import Sequence

import pandas as pd

from .metrics import UnifiedMetricsResponse
from .models import ForecastDataPoint, MonthlyMetric, TherapyMetric, VarianceAlert

THERAPY_COLUMNS = [
    "id",
    "name",
    "planned_sessions",
    "actual_sessions",
    "utilization_rate",
    "price_per_session",
    "variable_cost_per_session",
    "gross_revenue",
    "net_revenue",
    "total_margin",
    "margin_percent",
]
MONTHLY_COLUMNS = [
    "month",
    "total_sessions",
    "gross_revenue",
    "net_revenue",
    "total_expenses",
    "net_income",
    "margin_percent",
]
ALERT_COLUMNS = [
    "severity",
    "type",
    "title",
    "message",
    "metric",
    "current_value",
    "expected_value",
    "variance",
    "variance_percent",
    "action_items",
]
FORECAST_COLUMNS = [
    "month",
    "forecasted_revenue",
    "lower_bound",
    "upper_bound",
    "confidence",
]
SUMMARY_COLUMNS = ["metric", "value"]


def _round_columns(df: pd.DataFrame, columns: Sequence[str], decimals: int) -> pd.DataFrame:
    for col in columns:
        df[col] = df[col].astype(float).round(decimals)
    return df


def therapy_metrics_to_dataframe(
    therapies: Sequence[TherapyMetric],
    decimals: int = 2,
) -> pd.DataFrame:
    """
    One row per therapy, sorted by decreasing gross revenue.

    Ties keep the input order.
    """
    if not therapies:
        return pd.DataFrame(columns=THERAPY_COLUMNS)

    df = pd.DataFrame([{col: getattr(t, col) for col in THERAPY_COLUMNS} for t in therapies])
    df = df.sort_values("gross_revenue", ascending=False, kind="stable").reset_index(drop=True)
    return _round_columns(df, THERAPY_COLUMNS[4:], decimals)


def monthly_breakdown_to_dataframe(
    months: Sequence[MonthlyMetric],
    decimals: int = 2,
) -> pd.DataFrame:
    """Chronological monthly breakdown, ``month`` rendered as YYYY-MM."""
    if not months:
        return pd.DataFrame(columns=MONTHLY_COLUMNS)

    rows = [
        {
            "month": m.month.strftime("%Y-%m"),
            "total_sessions": m.total_sessions,
            "gross_revenue": m.gross_revenue,
            "net_revenue": m.net_revenue,
            "total_expenses": m.total_expenses,
            "net_income": m.net_income,
            "margin_percent": m.margin_percent,
        }
        for m in sorted(months, key=lambda m: m.month)
    ]
    df = pd.DataFrame(rows)
    return _round_columns(df, MONTHLY_COLUMNS[2:], decimals)


def alerts_to_dataframe(
    alerts: Sequence[VarianceAlert],
    decimals: int = 2,
) -> pd.DataFrame:
    """
    Variance alerts in their given order (already sorted by severity).

    Action items are joined with "; " so that each alert fits on one CSV
    row.
    """
    if not alerts:
        return pd.DataFrame(columns=ALERT_COLUMNS)

    rows = [
        {
            "severity": a.severity,
            "type": a.type,
            "title": a.title,
            "message": a.message,
            "metric": a.metric,
            "current_value": a.current_value,
            "expected_value": a.expected_value,
            "variance": a.variance,
            "variance_percent": a.variance_percent,
            "action_items": "; ".join(a.action_items),
        }
        for a in alerts
    ]
    df = pd.DataFrame(rows)
    return _round_columns(
        df, ["current_value", "expected_value", "variance", "variance_percent"], decimals
    )


def forecast_to_dataframe(
    forecast: Sequence[ForecastDataPoint],
    decimals: int = 2,
) -> pd.DataFrame:
    if not forecast:
        return pd.DataFrame(columns=FORECAST_COLUMNS)

    df = pd.DataFrame(
        [
            {
                "month": p.month.strftime("%Y-%m"),
                "forecasted_revenue": p.forecasted_revenue,
                "lower_bound": p.lower_bound,
                "upper_bound": p.upper_bound,
                "confidence": p.confidence,
            }
            for p in forecast
        ]
    )
    df = _round_columns(df, ["forecasted_revenue", "lower_bound", "upper_bound"], decimals)
    df["confidence"] = df["confidence"].round(3)
    return df


def summary_to_dataframe(
    response: UnifiedMetricsResponse,
    decimals: int = 2,
) -> pd.DataFrame:
    """Headline figures of a metrics response as a two-column table."""
    viability = response.viability_score
    rows: list[dict[str, object]] = [
        {"metric": "period", "value": response.period.label},
        {"metric": "gross_revenue", "value": round(response.total_revenue, decimals)},
        {"metric": "payment_fees", "value": round(response.payment_fees, decimals)},
        {"metric": "net_revenue", "value": round(response.net_revenue, decimals)},
        {"metric": "total_expenses", "value": round(response.total_expenses, decimals)},
        {"metric": "net_income", "value": round(response.net_income, decimals)},
        {"metric": "margin_percent", "value": round(response.margin_percent, decimals)},
        {"metric": "total_sessions", "value": response.total_sessions},
        {"metric": "planned_sessions", "value": response.total_planned_sessions},
        {
            "metric": "average_session_price",
            "value": round(response.average_session_price, decimals),
        },
        {"metric": "viability_score", "value": round(viability.score, 1)},
        {"metric": "viability_status", "value": viability.status},
        {"metric": "break_even_status", "value": response.break_even_status},
        {"metric": "data_quality", "value": response.data_quality},
    ]
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
