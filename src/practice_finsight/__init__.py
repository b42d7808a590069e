# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Practice FinSight
-----------------

A Python financial planning engine for small therapy practices. It turns
therapy offerings, monthly session plans and expense records into the
figures a practitioner needs to steer the practice.

Main capabilities:
- payment processor fee handling (gross vs. net revenue),
- revenue, margin and session-volume calculators,
- break-even analysis (sessions per month, months to recover an investment),
- a weighted practice viability score,
- variance detection against plan or past periods, with action items,
- linear-trend revenue forecasts with confidence bands,
- a unified metrics orchestrator for month / quarter / year / all-time scopes,
- CSV data files, TOML configuration and a command-line interface.

The calculators are pure functions returning frozen dataclasses; only the
metrics orchestrator reads data, through a pluggable record store.

Version: 0.1.0

Usage:
    python -m practice_finsight.cli --help
"""

__all__ = [
    "payment_fees",
    "revenue",
    "margins",
    "sessions",
    "viability",
    "variance",
    "forecast",
    "metrics",
    "views",
    "expenses",
    "periods",
    "config",
    "io",
]

__version__ = "0.1.0"
