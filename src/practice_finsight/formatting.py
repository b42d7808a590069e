# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Display formatting helpers.

The calculators always return un-formatted floats so that callers keep full
precision for further arithmetic. Formatting happens once, at the edge
(alert messages, console tables, CSV exports).
"""

import math


def format_euro(value: float, decimals: int = 2) -> str:
    """
    Format an amount in euros, e.g. ``€1,234.50``.

    Negative amounts are rendered as ``-€12.00``; non-finite values as
    ``∞`` / ``-∞`` / ``n/a``.
    """
    if math.isnan(value):
        return "n/a"
    if math.isinf(value):
        return "∞" if value > 0 else "-∞"
    sign = "-" if value < 0 else ""
    return f"{sign}€{abs(value):,.{decimals}f}"


def format_percentage(value: float, decimals: int = 1) -> str:
    if math.isnan(value):
        return "n/a"
    return f"{value:.{decimals}f}%"
