# Practice FinSight - Financial planning engine for therapy practices
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for Practice FinSight.

This module is responsible for:
- loading the application configuration from a TOML file,
- exposing typed dataclasses used by the rest of the application,
- providing the engine settings (fee rate, forecast horizon, break-even
  search bound) with sensible defaults when no configuration is given.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .payment_fees import DEFAULT_FEE_PERCENTAGE, DEFAULT_MAX_BREAK_EVEN_MONTHS

DEFAULT_CONFIG_FILE = "practice_finsight_config.toml"
DISPLAY_MODES: tuple[str, ...] = ("table", "csv", "both")


@dataclass(frozen=True)
class EngineSettings:
    """
    Tunable parameters of the calculation engine.

    The calculators themselves take these values as explicit arguments;
    EngineSettings only carries them from the configuration file to the
    metrics orchestrator and the CLI.
    """

    fee_percentage: float = DEFAULT_FEE_PERCENTAGE
    forecast_months: int = 6
    history_months: int = 12
    max_break_even_months: int = DEFAULT_MAX_BREAK_EVEN_MONTHS


@dataclass(frozen=True)
class DataPaths:
    """CSV files read by CsvRecordStore."""

    therapies: Path
    session_plans: Path
    expenses: Path


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for Practice FinSight.

    This aggregates:
    - the practice identity and currency,
    - the engine settings,
    - the location of the data files,
    - display options for tables.
    """

    practice_name: str
    currency: str
    data: DataPaths
    settings: EngineSettings = field(default_factory=EngineSettings)
    display_mode: str = "table"
    decimals: int = 2


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _number(section: Mapping[str, Any], key: str, default: float, where: str) -> float:
    value = section.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{where}.{key}' in the configuration. "
            "Expected a number."
        ) from exc


def _positive_int(section: Mapping[str, Any], key: str, default: int, where: str) -> int:
    value = section.get(key, default)
    try:
        result = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{where}.{key}' in the configuration. "
            "Expected an integer."
        ) from exc
    if result < 1:
        raise ValueError(
            f"Invalid value for '{where}.{key}' in the configuration. "
            "Expected a positive integer."
        )
    return result


def _parse_settings(raw: Mapping[str, Any]) -> EngineSettings:
    practice = _section(raw, "practice")
    forecast = _section(raw, "forecast")
    break_even = _section(raw, "break_even")

    fee_percentage = _number(
        practice, "payment_fee_percentage", DEFAULT_FEE_PERCENTAGE, "practice"
    )
    if not 0 <= fee_percentage <= 100:
        raise ValueError(
            "Invalid value for 'practice.payment_fee_percentage' in the "
            "configuration. Expected a percentage between 0 and 100."
        )

    return EngineSettings(
        fee_percentage=fee_percentage,
        forecast_months=_positive_int(forecast, "months_ahead", 6, "forecast"),
        history_months=_positive_int(forecast, "history_months", 12, "forecast"),
        max_break_even_months=_positive_int(
            break_even, "max_months", DEFAULT_MAX_BREAK_EVEN_MONTHS, "break_even"
        ),
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the Practice FinSight configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [practice]
        Practice name, presentation currency and the payment processor
        fee percentage (default 1.39).

    [forecast]
        ``months_ahead`` (default 6) and ``history_months`` (default 12).

    [break_even]
        ``max_months``: upper bound of the break-even month search
        (default 60).

    [data]
        Paths to the ``therapies``, ``session_plans`` and ``expenses`` CSV
        files.

    [display]
        ``mode`` (table, csv or both) and ``decimals`` for console tables.

    Notes
    -----
    All file paths in the TOML are resolved relative to the directory of
    the TOML file itself.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. Defaults to
        ``practice_finsight_config.toml`` in the working directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ValueError
        If the file cannot be parsed or holds invalid values.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Practice section
    practice = _section(raw, "practice")
    practice_name = str(practice.get("name") or "Practice")
    currency = str(practice.get("currency") or "EUR")

    # 2) Engine settings
    settings = _parse_settings(raw)

    # 3) Data files
    data_section = _section(raw, "data")
    data = DataPaths(
        therapies=(base_dir / str(data_section.get("therapies") or "data/therapies.csv")).resolve(),
        session_plans=(
            base_dir / str(data_section.get("session_plans") or "data/session_plans.csv")
        ).resolve(),
        expenses=(base_dir / str(data_section.get("expenses") or "data/expenses.csv")).resolve(),
    )

    # 4) Display options
    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in DISPLAY_MODES:
        raise ValueError(
            f"Invalid value for 'display.mode': {display_mode!r}. "
            f"Expected one of: {', '.join(DISPLAY_MODES)}."
        )
    try:
        decimals = int(display_section.get("decimals", 2))
    except (TypeError, ValueError):
        decimals = 2

    return AppConfig(
        practice_name=practice_name,
        currency=currency,
        data=data,
        settings=settings,
        display_mode=display_mode,
        decimals=decimals,
    )
