# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Unified metrics for a reporting scope.

``get_unified_metrics(store, scope, ...)`` is the single entry point used by
presentation layers (CLI, dashboards, exports). It:

1) resolves the reporting period of the scope (month, quarter, year or
   all time) around a reference date;

2) fetches therapies, session plans and expenses from the record store.
   The three reads run concurrently and are all awaited before any
   computation starts;

3) aggregates per-therapy figures, prorated expenses and gross / net
   revenue (net = gross minus payment fees);

4) computes the viability score, margin and break-even status on *net*
   revenue:

       surplus    net income > 0
       breakeven  net revenue covers expenses exactly
       deficit    otherwise

5) optionally compares the period with its plan, the previous period or
   the same period last year, and returns variance alerts;

6) adds a monthly breakdown (quarter and year scopes) and a revenue
   forecast (year and all-time scopes);

7) classifies data quality:

       insufficient  no session at all and no therapy
       partial       fewer than half of the therapies have sessions
       complete      otherwise

A store failure is never turned into zeroed metrics: it is logged and
re-raised as DataFetchError.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal, Optional

import pandas as pd

from . import periods
from .config import EngineSettings
from .expenses import monthly_expenses
from .forecast import HistoricalMetrics, calculate_forecast
from .io import RecordStore
from .margins import margin
from .models import (
    ExpenseRecord,
    ForecastDataPoint,
    MonthlyMetric,
    SessionPlan,
    TherapyMetric,
    TherapyOffering,
    VarianceAlert,
    ViabilityScore,
)
from .payment_fees import fee, net, net_contribution_margin
from .periods import (
    METRICS_SCOPES,
    ComparisonMode,
    MetricsScope,
    Period,
    add_months,
    comparison_period,
    month_start,
    period_for_scope,
)
from .revenue import average_price_per_session, session_revenue
from .sessions import session_metrics
from .variance import MetricsComparison, TherapyComparison, detect_variances
from .viability import ViabilityInput, calculate_viability_score

logger = logging.getLogger(__name__)

BreakEvenStatus = Literal["surplus", "breakeven", "deficit"]
DataQuality = Literal["complete", "partial", "insufficient"]

BREAKDOWN_SCOPES: tuple[str, ...] = ("quarter", "year")
FORECAST_SCOPES: tuple[str, ...] = ("year", "allTime")

_PLAN_COLUMNS = [
    "therapy_id",
    "month",
    "planned_sessions",
    "actual_sessions",
    "price",
    "gross_revenue",
    "planned_revenue",
]


class DataFetchError(RuntimeError):
    """Raised when the record store fails to deliver the records of a period."""


@dataclass(frozen=True)
class ComparisonInfo:
    mode: ComparisonMode
    period: Period


@dataclass(frozen=True)
class UnifiedMetricsResponse:
    """
    Everything presentation layers need about one reporting period.

    Money amounts are un-formatted floats. ``total_revenue`` is gross
    revenue; ``net_revenue`` is what remains after payment fees and is the
    basis of ``net_income``, ``margin_percent`` and the viability score.
    """

    scope: MetricsScope
    period: Period
    comparison: Optional[ComparisonInfo]

    viability_score: ViabilityScore
    break_even_status: BreakEvenStatus
    net_income: float

    total_revenue: float
    net_revenue: float
    payment_fees: float
    total_expenses: float
    total_sessions: int
    total_planned_sessions: int
    average_session_price: float
    margin_percent: float

    therapy_metrics: tuple[TherapyMetric, ...]
    monthly_breakdown: Optional[tuple[MonthlyMetric, ...]]

    variances: tuple[VarianceAlert, ...]
    forecast: Optional[tuple[ForecastDataPoint, ...]]

    last_updated: datetime
    data_quality: DataQuality


@dataclass(frozen=True)
class ScopeData:
    """Raw records of one period, as returned by the record store."""

    therapies: list[TherapyOffering]
    session_plans: list[SessionPlan]
    expenses: list[ExpenseRecord]


@dataclass(frozen=True)
class _PeriodFigures:
    therapy_metrics: tuple[TherapyMetric, ...]
    gross_revenue: float
    planned_revenue: float
    net_revenue: float
    payment_fees: float
    total_expenses: float
    total_sessions: int
    total_planned_sessions: int
    average_session_price: float


# ---------------------------------------------------------------------------
# Data fetching
# ---------------------------------------------------------------------------


def fetch_scope_data(store: RecordStore, period: Period) -> ScopeData:
    """
    Fetch the records of ``period`` with three concurrent reads.

    Raises:
        DataFetchError: if any read fails or returns no result at all.
    """
    with ThreadPoolExecutor(max_workers=3) as executor:
        futures = {
            "therapies": executor.submit(store.fetch_therapies),
            "session plans": executor.submit(
                store.fetch_session_plans, period.start, period.end
            ),
            "expenses": executor.submit(store.fetch_expenses, period.start, period.end),
        }

        results = {}
        for name, future in futures.items():
            try:
                result = future.result()
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Failed to fetch %s for %s..%s: %s",
                    name,
                    period.start,
                    period.end,
                    exc,
                )
                raise DataFetchError(
                    f"Failed to fetch {name} for {period.start}..{period.end}"
                ) from exc
            if result is None:
                raise DataFetchError(
                    f"Record store returned no {name} for {period.start}..{period.end}"
                )
            results[name] = list(result)

    return ScopeData(
        therapies=results["therapies"],
        session_plans=results["session plans"],
        expenses=results["expenses"],
    )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def _plans_frame(data: ScopeData) -> pd.DataFrame:
    """Session plans joined with therapy prices, one row per plan."""
    prices = {t.id: t.price_per_session for t in data.therapies}
    df = pd.DataFrame(
        [
            {
                "therapy_id": p.therapy_id,
                "month": pd.Timestamp(p.period_month),
                "planned_sessions": p.planned_sessions,
                "actual_sessions": p.actual_sessions,
            }
            for p in data.session_plans
        ],
        columns=["therapy_id", "month", "planned_sessions", "actual_sessions"],
    )

    unknown = ~df["therapy_id"].isin(list(prices))
    if unknown.any():
        logger.warning(
            "Ignoring %d session plan(s) referencing unknown therapies",
            int(unknown.sum()),
        )
        df = df.loc[~unknown]

    df = df.copy()
    df["price"] = df["therapy_id"].map(prices).astype(float)
    df["gross_revenue"] = df["actual_sessions"].astype(float) * df["price"]
    df["planned_revenue"] = df["planned_sessions"].astype(float) * df["price"]
    return df[_PLAN_COLUMNS]


def _therapy_metric(
    therapy: TherapyOffering,
    planned: int,
    actual: int,
    fee_pct: float,
) -> TherapyMetric:
    gross = session_revenue(actual, therapy.price_per_session).revenue
    unit_margin = net_contribution_margin(
        therapy.price_per_session, therapy.variable_cost_per_session, fee_pct
    )
    price = therapy.price_per_session

    return TherapyMetric(
        id=therapy.id,
        name=therapy.name,
        planned_sessions=planned,
        actual_sessions=actual,
        price_per_session=price,
        variable_cost_per_session=therapy.variable_cost_per_session,
        gross_revenue=gross,
        net_revenue=net(gross, fee_pct),
        total_margin=actual * unit_margin,
        margin_percent=unit_margin / price * 100 if price > 0 else 0.0,
        utilization_rate=session_metrics(planned, actual).utilization_rate,
    )


def _aggregate(data: ScopeData, period: Period, fee_pct: float) -> _PeriodFigures:
    frame = _plans_frame(data)
    by_therapy = frame.groupby("therapy_id")[
        ["planned_sessions", "actual_sessions", "planned_revenue"]
    ].sum()

    therapy_metrics: list[TherapyMetric] = []
    for therapy in data.therapies:
        if therapy.id in by_therapy.index:
            planned = int(by_therapy.at[therapy.id, "planned_sessions"])
            actual = int(by_therapy.at[therapy.id, "actual_sessions"])
        else:
            planned = actual = 0
        therapy_metrics.append(_therapy_metric(therapy, planned, actual, fee_pct))

    gross_revenue = sum(t.gross_revenue for t in therapy_metrics)
    total_sessions = sum(t.actual_sessions for t in therapy_metrics)
    total_expenses = float(monthly_expenses(data.expenses, period.start, period.end).sum())

    return _PeriodFigures(
        therapy_metrics=tuple(therapy_metrics),
        gross_revenue=gross_revenue,
        planned_revenue=float(by_therapy["planned_revenue"].sum()),
        net_revenue=net(gross_revenue, fee_pct),
        payment_fees=fee(gross_revenue, fee_pct),
        total_expenses=total_expenses,
        total_sessions=total_sessions,
        total_planned_sessions=sum(t.planned_sessions for t in therapy_metrics),
        average_session_price=average_price_per_session(
            {"sessions": t.actual_sessions, "price": t.price_per_session}
            for t in therapy_metrics
        ),
    )


def _monthly_metrics(
    data: ScopeData,
    period: Period,
    fee_pct: float,
    only_months_with_plans: bool = False,
) -> list[MonthlyMetric]:
    frame = _plans_frame(data)
    by_month = frame.groupby("month")[["actual_sessions", "gross_revenue"]].sum()
    expenses = monthly_expenses(data.expenses, period.start, period.end)

    months: list[MonthlyMetric] = []
    for month, month_expenses in expenses.items():
        if only_months_with_plans and month not in by_month.index:
            continue
        if month in by_month.index:
            gross = float(by_month.at[month, "gross_revenue"])
            sessions = int(by_month.at[month, "actual_sessions"])
        else:
            gross, sessions = 0.0, 0

        net_revenue = net(gross, fee_pct)
        result = margin(net_revenue, float(month_expenses))
        months.append(
            MonthlyMetric(
                month=month.date(),
                gross_revenue=gross,
                net_revenue=net_revenue,
                total_expenses=float(month_expenses),
                total_sessions=sessions,
                net_income=result.margin,
                margin_percent=result.margin_percent,
            )
        )
    return months


# ---------------------------------------------------------------------------
# Status helpers
# ---------------------------------------------------------------------------


def _break_even_status(net_income: float, break_even: bool) -> BreakEvenStatus:
    if net_income > 0:
        return "surplus"
    if break_even:
        return "breakeven"
    return "deficit"


def _data_quality(figures: _PeriodFigures) -> DataQuality:
    therapy_count = len(figures.therapy_metrics)
    if figures.total_sessions == 0 and therapy_count == 0:
        return "insufficient"
    active = sum(1 for t in figures.therapy_metrics if t.actual_sessions > 0)
    if therapy_count == 0 or active / therapy_count < 0.5:
        return "partial"
    return "complete"


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------


def _as_comparison(figures: _PeriodFigures) -> MetricsComparison:
    """Actuals and plan of the same period, side by side."""
    return MetricsComparison(
        actual_revenue=figures.gross_revenue,
        planned_revenue=figures.planned_revenue,
        actual_expenses=figures.total_expenses,
        planned_expenses=figures.total_expenses,
        actual_sessions=figures.total_sessions,
        planned_sessions=figures.total_planned_sessions,
        therapy_metrics=tuple(
            TherapyComparison(
                id=t.id,
                name=t.name,
                actual_sessions=t.actual_sessions,
                planned_sessions=t.planned_sessions,
                actual_revenue=t.gross_revenue,
                planned_revenue=t.planned_sessions * t.price_per_session,
            )
            for t in figures.therapy_metrics
        ),
    )


def _actuals_as_reference(figures: _PeriodFigures) -> MetricsComparison:
    """Actuals of a past period used as the expectation for the current one."""
    return MetricsComparison(
        actual_revenue=figures.gross_revenue,
        planned_revenue=figures.gross_revenue,
        actual_expenses=figures.total_expenses,
        planned_expenses=figures.total_expenses,
        actual_sessions=figures.total_sessions,
        planned_sessions=figures.total_sessions,
        therapy_metrics=tuple(
            TherapyComparison(
                id=t.id,
                name=t.name,
                actual_sessions=t.actual_sessions,
                planned_sessions=t.actual_sessions,
                actual_revenue=t.gross_revenue,
                planned_revenue=t.gross_revenue,
            )
            for t in figures.therapy_metrics
        ),
    )


# ---------------------------------------------------------------------------
# Forecast
# ---------------------------------------------------------------------------


def _history_period(until: date, history_months: int) -> Period:
    end = min(until, periods._today())
    start = add_months(month_start(end), -(history_months - 1))
    return Period(start=start, end=end, label=f"Last {history_months} months")


def fetch_revenue_history(
    store: RecordStore,
    until: Optional[date] = None,
    settings: Optional[EngineSettings] = None,
) -> list[HistoricalMetrics]:
    """
    Monthly revenue history ending with the month of ``until`` (or today).

    Only months with at least one session plan are returned, oldest first.
    Revenue is gross revenue, as expected by the forecast.
    """
    settings = settings or EngineSettings()
    history_period = _history_period(until or periods._today(), settings.history_months)
    data = fetch_scope_data(store, history_period)
    months = _monthly_metrics(
        data, history_period, settings.fee_percentage, only_months_with_plans=True
    )
    return [
        HistoricalMetrics(
            month=m.month,
            revenue=m.gross_revenue,
            sessions=m.total_sessions,
            expenses=m.total_expenses,
        )
        for m in months
    ]


def get_revenue_forecast(
    store: RecordStore,
    until: Optional[date] = None,
    settings: Optional[EngineSettings] = None,
) -> tuple[ForecastDataPoint, ...]:
    """Forecast revenue ``settings.forecast_months`` months past the history."""
    settings = settings or EngineSettings()
    history = fetch_revenue_history(store, until, settings)
    logger.debug("Forecasting from %d month(s) of history", len(history))
    return tuple(calculate_forecast(history, settings.forecast_months))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def get_unified_metrics(
    store: RecordStore,
    scope: MetricsScope,
    reference_date: Optional[date] = None,
    compare_mode: ComparisonMode = "none",
    settings: Optional[EngineSettings] = None,
) -> UnifiedMetricsResponse:
    """
    Compute every metric of a reporting scope in one call.

    Parameters
    ----------
    store:
        Record store providing therapies, session plans and expenses.
    scope:
        'month', 'quarter', 'year' or 'allTime'.
    reference_date:
        Any date inside the period to report on. Defaults to today.
    compare_mode:
        'none', 'plan', 'lastPeriod' or 'lastYear'. Variance alerts are
        only produced when a comparison is requested.
    settings:
        Engine settings (fee percentage, forecast horizon...). Defaults to
        EngineSettings().

    Returns
    -------
    UnifiedMetricsResponse

    Raises
    ------
    ValueError
        If the scope or the comparison mode is unknown.
    DataFetchError
        If the record store fails.
    """
    if scope not in METRICS_SCOPES:
        raise ValueError(f"Unknown metrics scope: {scope!r}")
    settings = settings or EngineSettings()
    fee_pct = settings.fee_percentage

    # 1) Period
    period = period_for_scope(scope, reference_date)
    compared = comparison_period(scope, reference_date, compare_mode)
    logger.info(
        "Computing %s metrics for %s..%s (comparison: %s)",
        scope,
        period.start,
        period.end,
        compare_mode,
    )

    # 2) Records
    data = fetch_scope_data(store, period)

    # 3) Aggregates
    figures = _aggregate(data, period, fee_pct)

    # 4) Profitability on net revenue
    viability = calculate_viability_score(
        ViabilityInput(
            total_revenue=figures.net_revenue,
            total_expenses=figures.total_expenses,
            total_sessions=figures.total_sessions,
            target_sessions=max(figures.total_planned_sessions, 1),
            therapy_count=len(figures.therapy_metrics),
            active_therapy_count=sum(
                1 for t in figures.therapy_metrics if t.actual_sessions > 0
            ),
        )
    )
    result = margin(figures.net_revenue, figures.total_expenses)

    # 5) Variances
    variances: list[VarianceAlert] = []
    comparison: Optional[ComparisonInfo] = None
    if compared is not None:
        comparison = ComparisonInfo(mode=compare_mode, period=compared)
        actual = _as_comparison(figures)
        if compare_mode == "plan":
            reference = actual
        else:
            previous = _aggregate(fetch_scope_data(store, compared), compared, fee_pct)
            reference = _actuals_as_reference(previous)
        variances = detect_variances(actual, reference)

    # 6) Breakdown and forecast
    monthly_breakdown: Optional[tuple[MonthlyMetric, ...]] = None
    if scope in BREAKDOWN_SCOPES:
        monthly_breakdown = tuple(_monthly_metrics(data, period, fee_pct))

    forecast: Optional[tuple[ForecastDataPoint, ...]] = None
    if scope in FORECAST_SCOPES:
        forecast = get_revenue_forecast(store, until=period.end, settings=settings)

    return UnifiedMetricsResponse(
        scope=scope,
        period=period,
        comparison=comparison,
        viability_score=viability,
        break_even_status=_break_even_status(result.margin, result.break_even),
        net_income=result.margin,
        total_revenue=figures.gross_revenue,
        net_revenue=figures.net_revenue,
        payment_fees=figures.payment_fees,
        total_expenses=figures.total_expenses,
        total_sessions=figures.total_sessions,
        total_planned_sessions=figures.total_planned_sessions,
        average_session_price=figures.average_session_price,
        margin_percent=result.margin_percent,
        therapy_metrics=figures.therapy_metrics,
        monthly_breakdown=monthly_breakdown,
        variances=tuple(variances),
        forecast=forecast,
        last_updated=datetime.now(),
        data_quality=_data_quality(figures),
    )
