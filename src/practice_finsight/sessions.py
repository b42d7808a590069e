# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""Session volume calculators (planned vs. completed sessions)."""

from collections.abc import Iterable

from .models import SessionMetrics


def session_metrics(planned: float, actual: float) -> SessionMetrics:
    """
    Compare completed sessions with planned sessions.

    ``variance_percent`` and ``utilization_rate`` are 0 when nothing was
    planned.

    Examples
    --------
    >>> m = session_metrics(100, 40)
    >>> (m.variance, m.variance_percent, m.utilization_rate)
    (-60, -60.0, 40.0)
    """
    variance = actual - planned
    if planned > 0:
        variance_percent = variance / planned * 100
        utilization_rate = actual / planned * 100
    else:
        variance_percent = 0.0
        utilization_rate = 0.0

    return SessionMetrics(
        planned_sessions=planned,
        actual_sessions=actual,
        variance=variance,
        variance_percent=variance_percent,
        utilization_rate=utilization_rate,
    )


def total_sessions(session_counts: Iterable[float]) -> float:
    return sum(session_counts)


def average_sessions_per_therapy(total: float, therapy_count: int) -> float:
    if therapy_count == 0:
        return 0.0
    return total / therapy_count


def is_meeting_minimum(actual: float, minimum: float) -> bool:
    return actual >= minimum


def achievement_percent(planned: float, actual: float) -> float:
    """
    Share of planned sessions achieved, in percent.

    Unlike ``utilization_rate``, any completed session counts as 100% when
    nothing was planned.
    """
    if planned == 0:
        return 100.0 if actual > 0 else 0.0
    return actual / planned * 100
