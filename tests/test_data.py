"""Tests for price loading and snapshot management."""
import copy
from pathlib import Path
from unittest.mock import Mock, patch
from datetime import date
from typing import Dict, Any, cast

import pandas as pd
import pytest

from trendcast.config import Config, _from_dict
from trendcast.data import (
    discover_symbols,
    fetch_and_snapshot,
    list_symbols,
    load_price_csv,
    load_prices,
    load_snapshot,
    select_symbol,
)
from trendcast.errors import MissingColumnsError, UnknownSymbolError

# A complete and valid dictionary for creating a Config object in tests.
FULL_CONFIG_DICT: Dict[str, Any] = {
    "run": {"name": "test_run", "output_dir": ""},
    "data": {
        "source": "yfinance", "csv_path": "", "snapshot_dir": "", "interval": "1d",
        "start_date": date(2023, 1, 1), "end_date": date(2023, 1, 31),
    },
    "universe": {"symbols": ["TEST.NS", "FAIL.NS"]},
    "forecast": {"horizon_days": 30, "support_resistance": True},
    "cache": {"enabled": False, "ttl_seconds": 60},
    "reporting": {"output_formats": ["markdown"]},
    "logging": {"level": "INFO"},
}

NIFTY_CSV = """Date,Symbol,Series,Open,High,Low,Close,Volume
2024-01-02,TCS,EQ,3700,3760,3690,3750.5,120000
2024-01-01,TCS,EQ,3680,3720,3670,3710.0,100000
2024-01-01,INFY,EQ,1550,1570,1540,1560.0,200000
2024-01-02,INFY,EQ,1560,1575,1555,1571.2,210000
"""


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Pytest fixture to create a valid Config dataclass object for testing."""
    config_dict = copy.deepcopy(FULL_CONFIG_DICT)
    config_dict["data"]["snapshot_dir"] = str(tmp_path)
    config_dict["data"]["csv_path"] = str(tmp_path / "nifty.csv")
    config_dict["run"]["output_dir"] = str(tmp_path)
    # Cast is used here because _from_dict is too dynamic for mypy
    return cast(Config, _from_dict(Config, config_dict))


@pytest.fixture
def nifty_csv(tmp_path: Path) -> Path:
    path = tmp_path / "nifty.csv"
    path.write_text(NIFTY_CSV)
    return path


def _download_frame() -> pd.DataFrame:
    dates = pd.date_range("2023-01-02", periods=3, freq="D")
    return pd.DataFrame(
        {
            "Open": [99.0, 100.0, 101.0],
            "High": [101.0, 102.0, 103.0],
            "Low": [98.0, 99.0, 100.0],
            "Close": [100.0, 101.0, 102.0],
            "Volume": [1000.0, 1100.0, 1200.0],
        },
        index=dates,
    )


def test_load_price_csv(nifty_csv: Path) -> None:
    df = load_price_csv(nifty_csv)

    assert pd.api.types.is_datetime64_any_dtype(df["Date"])
    assert list_symbols(df) == ["INFY", "TCS"]


def test_load_price_csv_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_price_csv(tmp_path / "nope.csv")


def test_load_price_csv_missing_close(tmp_path: Path) -> None:
    path = tmp_path / "bad.csv"
    path.write_text("Date,Symbol,Open\n2024-01-01,TCS,1\n")

    with pytest.raises(MissingColumnsError, match="Close"):
        load_price_csv(path)


def test_select_symbol(nifty_csv: Path) -> None:
    tcs = select_symbol(load_price_csv(nifty_csv), "TCS")

    assert tcs.index.name == "Date"
    assert len(tcs) == 2
    assert set(tcs["Symbol"]) == {"TCS"}


def test_select_unknown_symbol(nifty_csv: Path) -> None:
    with pytest.raises(UnknownSymbolError, match="No data found for symbol: WIPRO"):
        select_symbol(load_price_csv(nifty_csv), "WIPRO")


def test_select_symbol_single_instrument_frame() -> None:
    frame = _download_frame()
    assert len(select_symbol(frame, "ANY")) == 3
    assert list_symbols(frame) == []


def test_load_prices_from_csv(nifty_csv: Path, test_config: Config) -> None:
    config_dict = copy.deepcopy(FULL_CONFIG_DICT)
    config_dict["data"]["source"] = "csv"
    config_dict["data"]["csv_path"] = str(nifty_csv)
    config_dict["data"]["snapshot_dir"] = str(test_config.data.snapshot_dir)
    csv_config = cast(Config, _from_dict(Config, config_dict))

    infy = load_prices("INFY", csv_config)

    assert infy["Close"].tolist() == [1560.0, 1571.2]


@patch("trendcast.data.yf.download")
def test_fetch_and_snapshot_success(mock_download: Mock, test_config: Config) -> None:
    """Test that successful data fetching saves a snapshot that loads back."""
    mock_download.return_value = _download_frame()

    failed = fetch_and_snapshot(["TEST.NS"], test_config)

    assert not failed
    expected_path = Path(test_config.data.snapshot_dir) / "yfinance_1d" / "TEST.NS.parquet"
    assert expected_path.exists()
    assert discover_symbols(test_config) == ["TEST.NS"]

    loaded = load_snapshot("TEST.NS", test_config)
    assert loaded.index.name == "Date"
    assert loaded["Close"].tolist() == [100.0, 101.0, 102.0]
    assert load_prices("TEST.NS", test_config)["Close"].iloc[-1] == 102.0


@patch("trendcast.data.yf.download")
def test_fetch_and_snapshot_flattens_ticker_columns(mock_download: Mock, test_config: Config) -> None:
    frame = _download_frame()
    frame.columns = pd.MultiIndex.from_product([frame.columns, ["TEST.NS"]])
    mock_download.return_value = frame

    assert fetch_and_snapshot(["TEST.NS"], test_config) == []
    assert "Close" in load_snapshot("TEST.NS", test_config).columns


@patch("trendcast.data.yf.download")
def test_fetch_and_snapshot_failure(mock_download: Mock, test_config: Config) -> None:
    """Test that yfinance failures and empty downloads are returned."""
    mock_download.side_effect = [Exception("yfinance error"), pd.DataFrame()]

    failed = fetch_and_snapshot(["FAIL.NS", "EMPTY.NS"], test_config)

    assert failed == ["FAIL.NS", "EMPTY.NS"]
    assert discover_symbols(test_config) == []


def test_load_snapshot_missing_raises(test_config: Config) -> None:
    with pytest.raises(FileNotFoundError, match="Missing snapshot"):
        load_snapshot("TEST.NS", test_config)


def test_discover_symbols_without_snapshot_dir(test_config: Config) -> None:
    assert discover_symbols(test_config) == []
