# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for Practice FinSight.

This module wires together the main building blocks of Practice FinSight:

- configuration (practice settings, data files, display options),
- the CSV record store,
- the metrics orchestrator and the forecast,
- the payment-fee / break-even calculators,
- view helpers (tabular rendering and CSV export).

The CLI is intentionally thin: it does not implement financial logic
itself. It parses arguments, calls the engine and renders the result.


Commands
--------

metrics
    Unified metrics of a month, quarter, year or all time, optionally
    compared with the plan, the previous period or the same period last
    year::

        python -m practice_finsight.cli metrics --scope quarter --compare plan

forecast
    Revenue forecast based on the recent monthly history::

        python -m practice_finsight.cli forecast --months 6

break-even
    Break-even analysis of a price point, independent of stored data::

        python -m practice_finsight.cli break-even --fixed-costs 1000 --price 85

    With ``--initial-investment``, ``--starting-revenue`` and
    ``--growth-rate``, the month in which cumulative profit recovers the
    investment is also searched.


Display modes
-------------

- table: print tables to the console (default),
- csv:   write CSV files into the output directory (``data/output`` by
         default, see ``--output``),
- both:  do both.

The mode comes from the ``[display]`` section of the configuration and
can be overridden with ``--display-mode``.
"""

import argparse
import logging
import math
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import DISPLAY_MODES, AppConfig, EngineSettings, load_app_config
from .formatting import format_euro, format_percentage
from .io import CsvRecordStore
from .metrics import DataFetchError, get_revenue_forecast, get_unified_metrics
from .payment_fees import (
    break_even_units,
    cost_breakdown,
    find_break_even_month,
    price_breakdown,
)
from .periods import COMPARISON_MODES, METRICS_SCOPES
from .variance import variance_summary
from .views import (
    alerts_to_dataframe,
    forecast_to_dataframe,
    monthly_breakdown_to_dataframe,
    summary_to_dataframe,
    therapy_metrics_to_dataframe,
)

logger = logging.getLogger(__name__)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"Invalid date {value!r}, expected YYYY-MM-DD."
        ) from exc


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m practice_finsight.cli",
        description=(
            "Practice FinSight - Financial planning engine for therapy practices. "
            "Computes revenue, payment fees, margins, viability, variances and "
            "revenue forecasts from therapies, session plans and expenses."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of practice_finsight and exit.",
    )

    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. If omitted, "
            "'practice_finsight_config.toml' in the current directory is used."
        ),
    )

    ap.add_argument(
        "--display-mode",
        choices=DISPLAY_MODES,
        help="Override the display mode defined in the configuration.",
    )

    ap.add_argument(
        "--output",
        dest="output_dir",
        help="Directory for CSV files (csv/both display modes). Default: data/output.",
    )

    ap.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log diagnostic messages (data reads, computation steps).",
    )

    subparsers = ap.add_subparsers(dest="command")

    # metrics
    metrics_parser = subparsers.add_parser(
        "metrics",
        help="Unified metrics for a month, quarter, year or all time.",
    )
    metrics_parser.add_argument(
        "--scope",
        choices=METRICS_SCOPES,
        default="month",
        help="Reporting scope (default: month).",
    )
    metrics_parser.add_argument(
        "--date",
        dest="reference_date",
        type=_parse_date,
        help="Any date inside the period to report on (YYYY-MM-DD). Default: today.",
    )
    metrics_parser.add_argument(
        "--compare",
        choices=COMPARISON_MODES,
        default="none",
        help="Compare with the plan, the previous period or the same period last year.",
    )

    # forecast
    forecast_parser = subparsers.add_parser(
        "forecast",
        help="Revenue forecast based on the monthly history.",
    )
    forecast_parser.add_argument(
        "--months",
        type=int,
        help="Number of months to forecast (default: [forecast].months_ahead).",
    )

    # break-even
    break_even_parser = subparsers.add_parser(
        "break-even",
        help="Break-even analysis of a price point.",
    )
    break_even_parser.add_argument(
        "--fixed-costs", type=float, required=True, help="Monthly fixed costs."
    )
    break_even_parser.add_argument(
        "--price", type=float, required=True, help="Gross price of one session."
    )
    break_even_parser.add_argument(
        "--variable-cost",
        type=float,
        default=0.0,
        help="Variable cost of one session (default: 0).",
    )
    break_even_parser.add_argument(
        "--fee",
        type=float,
        help="Payment fee percentage (default: [practice].payment_fee_percentage).",
    )
    break_even_parser.add_argument(
        "--initial-investment",
        type=float,
        help="Initial investment to recover (enables the break-even month search).",
    )
    break_even_parser.add_argument(
        "--starting-revenue",
        type=float,
        help="Gross revenue of the first month (for the break-even month search).",
    )
    break_even_parser.add_argument(
        "--growth-rate",
        type=float,
        default=0.0,
        help="Monthly revenue growth rate as a decimal, e.g. 0.05 (default: 0).",
    )

    return ap


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _render(
    tables: list[tuple[str, str, pd.DataFrame]],
    display_mode: str,
    output_dir: Optional[str],
) -> None:
    """Print and/or export ``(title, file stem, DataFrame)`` tables."""
    if display_mode in {"table", "both"}:
        for title, _, df in tables:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("(no data)")
            else:
                print(df.to_string(index=False))

    if display_mode in {"csv", "both"}:
        out_dir = Path(output_dir) if output_dir else Path("data/output")
        out_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        for _, stem, df in tables:
            path = out_dir / f"{stem}_{timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _handle_metrics(args: argparse.Namespace, config: AppConfig, display_mode: str) -> None:
    store = CsvRecordStore.from_config(config)
    response = get_unified_metrics(
        store,
        scope=args.scope,
        reference_date=args.reference_date,
        compare_mode=args.compare,
        settings=config.settings,
    )
    decimals = config.decimals

    print(
        f"{config.practice_name} - {response.period.label} "
        f"({response.period.start.isoformat()} → {response.period.end.isoformat()})"
    )
    if response.data_quality != "complete":
        print(f"Warning: data quality is '{response.data_quality}'.")

    tables = [
        ("Summary", "summary", summary_to_dataframe(response, decimals)),
        (
            "Therapies",
            "therapies",
            therapy_metrics_to_dataframe(response.therapy_metrics, decimals),
        ),
    ]
    if response.monthly_breakdown is not None:
        tables.append(
            (
                "Monthly breakdown",
                "monthly_breakdown",
                monthly_breakdown_to_dataframe(response.monthly_breakdown, decimals),
            )
        )
    if response.comparison is not None:
        summary = variance_summary(response.variances)
        print(
            f"Comparison ({response.comparison.mode}): {summary.total} alert(s), "
            f"{summary.critical} critical, {summary.warnings} warning(s), "
            f"{summary.opportunities} opportunit{'y' if summary.opportunities == 1 else 'ies'}."
        )
        tables.append(
            ("Variance alerts", "alerts", alerts_to_dataframe(response.variances, decimals))
        )
    if response.forecast is not None:
        tables.append(
            ("Forecast", "forecast", forecast_to_dataframe(response.forecast, decimals))
        )

    _render(tables, display_mode, args.output_dir)


def _handle_forecast(args: argparse.Namespace, config: AppConfig, display_mode: str) -> None:
    settings = config.settings
    if args.months is not None:
        if args.months < 1:
            raise ValueError("--months must be a positive integer.")
        settings = replace(settings, forecast_months=args.months)

    store = CsvRecordStore.from_config(config)
    forecast = get_revenue_forecast(store, settings=settings)
    _render(
        [("Revenue forecast", "forecast", forecast_to_dataframe(forecast, config.decimals))],
        display_mode,
        args.output_dir,
    )


def _handle_break_even(args: argparse.Namespace, settings: EngineSettings) -> None:
    fee_pct = settings.fee_percentage if args.fee is None else args.fee

    prices = price_breakdown(args.price, fee_pct)
    units = break_even_units(args.fixed_costs, args.price, args.variable_cost, fee_pct)

    print(f"Gross price per session:   {format_euro(prices.gross_price)}")
    print(
        f"Payment fee ({format_percentage(fee_pct, 2)}):      "
        f"{format_euro(prices.fee_amount)}"
    )
    print(f"Net price per session:     {format_euro(prices.net_price)}")
    print(f"Variable cost per session: {format_euro(args.variable_cost)}")

    if math.isinf(units):
        print("Break-even: not reachable (net contribution per session is not positive).")
    else:
        units = int(units)
        print(f"Break-even: {units} session(s) per month")
        costs = cost_breakdown(units * args.price, args.fixed_costs, fee_pct)
        print(
            f"  at {units} session(s): gross {format_euro(costs.gross_revenue)}, "
            f"fees {format_euro(costs.payment_fees)}, "
            f"profit {format_euro(costs.net_profit - units * args.variable_cost)}"
        )

    if args.initial_investment is None:
        return

    if args.starting_revenue is None:
        raise ValueError("--starting-revenue is required with --initial-investment.")

    month = find_break_even_month(
        args.initial_investment,
        args.starting_revenue,
        args.growth_rate,
        args.fixed_costs,
        max_months=settings.max_break_even_months,
        fee_pct=fee_pct,
    )
    if month is None:
        print(
            "Investment not recovered within "
            f"{settings.max_break_even_months} months."
        )
    else:
        print(f"Investment recovered in month {month}.")


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the Practice FinSight CLI.

    This function parses command-line arguments, loads the configuration
    when a command needs it, runs the requested command and renders its
    output as console tables and/or CSV files.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"practice_finsight version {__version__}")
        return

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return

    # break-even works without any configuration file
    if args.command == "break-even":
        if args.config_path:
            settings = load_app_config(args.config_path).settings
        else:
            settings = EngineSettings()
        try:
            _handle_break_even(args, settings)
        except ValueError as exc:
            parser.error(str(exc))
        return

    # 1) Load configuration (practice settings, data files, display options)
    if args.config_path:
        config = load_app_config(args.config_path)
    else:
        config = load_app_config()

    # 2) Resolve display mode: config value overridden by CLI if provided.
    display_mode = args.display_mode or config.display_mode

    # 3) Run the command
    try:
        if args.command == "metrics":
            _handle_metrics(args, config, display_mode)
        elif args.command == "forecast":
            _handle_forecast(args, config, display_mode)
    except DataFetchError as exc:
        logger.debug("Data fetch failed", exc_info=True)
        parser.exit(1, f"Error: {exc}: {exc.__cause__}\n")
    except ValueError as exc:
        parser.error(str(exc))


if __name__ == "__main__":
    main()
