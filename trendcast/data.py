"""
Price data loading: NIFTY-style CSV files and yfinance parquet snapshots.
"""
import logging
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq
import yfinance as yf

from trendcast.config import Config
from trendcast.errors import MissingColumnsError, UnknownSymbolError
from trendcast.features import to_date_index

__all__ = [
    "load_price_csv",
    "select_symbol",
    "list_symbols",
    "fetch_and_snapshot",
    "load_snapshot",
    "discover_symbols",
    "load_prices",
]

log = logging.getLogger(__name__)

PRICE_COLUMNS = ["Open", "High", "Low", "Close", "Volume"]


# impure
def load_price_csv(path: Path) -> pd.DataFrame:
    """
    Reads a price CSV with at least 'Date' and 'Close' columns.
    #impure: Reads from the filesystem.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Price file not found: {path}")
    df = pd.read_csv(path)
    missing = {"Date", "Close"} - set(df.columns)
    if missing:
        raise MissingColumnsError(missing)
    df["Date"] = pd.to_datetime(df["Date"])
    return df


def list_symbols(frame: pd.DataFrame) -> List[str]:
    """Sorted unique symbols of a multi-symbol frame."""
    if "Symbol" not in frame.columns:
        return []
    return sorted(frame["Symbol"].dropna().unique().tolist())


def select_symbol(frame: pd.DataFrame, symbol: str) -> pd.DataFrame:
    """
    Rows of one symbol, indexed by Date.

    A frame without a 'Symbol' column is taken to hold a single instrument
    and is returned whole.
    """
    if "Symbol" in frame.columns:
        frame = frame[frame["Symbol"] == symbol]
        if frame.empty:
            raise UnknownSymbolError(symbol)
    return to_date_index(frame)


def _snapshot_metadata(config: Config) -> Dict[str, str]:
    """Provenance stamped into every parquet snapshot."""
    try:
        revision = subprocess.check_output(
            ["git", "rev-parse", "--short", "HEAD"], stderr=subprocess.DEVNULL
        ).strip().decode()
    except (subprocess.CalledProcessError, FileNotFoundError):
        revision = "unknown"
    return {
        "fetched_at_utc": datetime.now(timezone.utc).isoformat(),
        "yfinance_version": yf.__version__,
        "git_revision": revision,
        "run_name": config.run.name,
        "interval": config.data.interval,
    }


def _snapshot_dir(config: Config) -> Path:
    return config.data.snapshot_dir / f"yfinance_{config.data.interval}"


def _snapshot_path(symbol: str, config: Config) -> Path:
    return _snapshot_dir(config) / f"{symbol}.parquet"


def discover_symbols(config: Config) -> List[str]:
    """Symbols that already have a snapshot for the configured interval."""
    directory = _snapshot_dir(config)
    if not directory.is_dir():
        return []
    return sorted(p.stem for p in directory.glob("*.parquet"))


# impure
def _download(symbol: str, config: Config) -> pd.DataFrame:
    """
    Daily bars for one ticker, indexed by Date with flat OHLCV columns.
    #impure: Accesses the network.
    """
    bars = yf.download(
        tickers=symbol,
        start=config.data.start_date,
        end=config.data.end_date,
        interval=config.data.interval,
        auto_adjust=True,
        actions=False,
        progress=False,
    )
    if bars.empty:
        raise ValueError(f"yfinance returned no rows for {symbol}")
    # Single-ticker downloads may still come back with (field, ticker) columns.
    if isinstance(bars.columns, pd.MultiIndex):
        bars.columns = bars.columns.get_level_values(0)
    return bars.rename_axis("Date")


# impure
def _write_snapshot(bars: pd.DataFrame, path: Path, metadata: Dict[str, str]) -> None:
    """#impure: Writes to the filesystem."""
    table = pa.Table.from_pandas(bars)
    merged = dict(table.schema.metadata or {})
    merged.update({k.encode(): v.encode() for k, v in metadata.items()})
    pq.write_table(table.replace_schema_metadata(merged), path)


# impure
def fetch_and_snapshot(symbols: List[str], config: Config) -> List[str]:
    """
    Downloads each symbol from yfinance and stores it as a parquet snapshot.

    A symbol that fails (network error, empty download) is logged and
    skipped; the others are still written.
    #impure: Accesses network and filesystem.

    Returns:
        The symbols that could not be refreshed.
    """
    _snapshot_dir(config).mkdir(parents=True, exist_ok=True)
    metadata = _snapshot_metadata(config)

    failed: List[str] = []
    for symbol in symbols:
        try:
            _write_snapshot(_download(symbol, config), _snapshot_path(symbol, config), metadata)
        except Exception as e:
            log.warning("Failed to fetch %s: %s", symbol, e)
            failed.append(symbol)
        else:
            log.info("Snapshot written for %s", symbol)
    return failed


# impure
def load_snapshot(symbol: str, config: Config) -> pd.DataFrame:
    """
    Reads the parquet snapshot of one symbol, indexed by Date.
    #impure: Reads from the filesystem.
    """
    path = _snapshot_path(symbol, config)
    if not path.is_file():
        raise FileNotFoundError(f"Missing snapshot for symbol: {symbol} at {path}")
    return to_date_index(pd.read_parquet(path))


# impure
def load_prices(symbol: str, config: Config) -> pd.DataFrame:
    """
    Price history of `symbol` from the configured source.
    #impure: Reads from the filesystem.
    """
    if config.data.source == "csv":
        return select_symbol(load_price_csv(config.data.csv_path), symbol)
    return load_snapshot(symbol, config)
