from pathlib import Path

import pytest

from practice_finsight.config import EngineSettings, load_app_config


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "practice_finsight_config.toml"
    path.write_text(content, encoding="utf-8")
    return path


def test_load_full_config(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
[practice]
name = "Cabinet Test"
currency = "EUR"
payment_fee_percentage = 2.5

[forecast]
months_ahead = 3
history_months = 24

[break_even]
max_months = 36

[data]
therapies = "csv/therapies.csv"
session_plans = "csv/plans.csv"
expenses = "csv/expenses.csv"

[display]
mode = "both"
decimals = 1
""",
    )

    config = load_app_config(str(path))

    assert config.practice_name == "Cabinet Test"
    assert config.currency == "EUR"
    assert config.settings == EngineSettings(
        fee_percentage=2.5, forecast_months=3, history_months=24, max_break_even_months=36
    )
    assert config.display_mode == "both"
    assert config.decimals == 1


def test_data_paths_are_relative_to_config_file(tmp_path: Path) -> None:
    path = _write(tmp_path, '[data]\ntherapies = "csv/therapies.csv"\n')

    config = load_app_config(str(path))

    assert config.data.therapies == (tmp_path / "csv" / "therapies.csv").resolve()
    assert config.data.session_plans == (tmp_path / "data" / "session_plans.csv").resolve()
    assert config.data.expenses == (tmp_path / "data" / "expenses.csv").resolve()


def test_defaults_for_empty_config(tmp_path: Path) -> None:
    config = load_app_config(str(_write(tmp_path, "")))

    assert config.practice_name == "Practice"
    assert config.currency == "EUR"
    assert config.settings == EngineSettings()
    assert config.settings.fee_percentage == 1.39
    assert config.display_mode == "table"
    assert config.decimals == 2


def test_default_config_file_in_working_directory(tmp_path: Path, monkeypatch) -> None:
    _write(tmp_path, '[practice]\nname = "From cwd"\n')
    monkeypatch.chdir(tmp_path)

    assert load_app_config().practice_name == "From cwd"


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "missing.toml"))


def test_invalid_toml(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Failed to parse"):
        load_app_config(str(_write(tmp_path, "[practice\nname = ")))


@pytest.mark.parametrize(
    "content",
    [
        "[practice]\npayment_fee_percentage = 150\n",
        "[practice]\npayment_fee_percentage = -1\n",
        '[practice]\npayment_fee_percentage = "abc"\n',
        "[forecast]\nmonths_ahead = 0\n",
        "[forecast]\nhistory_months = -3\n",
        "[break_even]\nmax_months = 0\n",
        '[display]\nmode = "html"\n',
    ],
)
def test_invalid_values(tmp_path: Path, content: str) -> None:
    with pytest.raises(ValueError):
        load_app_config(str(_write(tmp_path, content)))


def test_invalid_decimals_fall_back_to_default(tmp_path: Path) -> None:
    config = load_app_config(str(_write(tmp_path, '[display]\ndecimals = "many"\n')))
    assert config.decimals == 2
