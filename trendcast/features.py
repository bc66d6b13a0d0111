"""
Series preparation: sorting, day index, log price, rolling stats.

Functions in this module are pure and operate on a single DataFrame.
"""
from typing import List

import numpy as np
import pandas as pd

from trendcast.errors import InsufficientDataError, MissingColumnsError

__all__ = ["prepare", "rolling_mean", "rolling_std", "to_date_index", "MIN_OBSERVATIONS"]

# Smallest sample the regression is run on.
MIN_OBSERVATIONS = 10

MA_SHORT_WINDOW = 7
MA_LONG_WINDOW = 20
VOLATILITY_WINDOW = 20


def rolling_mean(values: pd.Series, window: int) -> pd.Series:
    """Trailing mean over `window` points; NaN for the first `window - 1`."""
    return values.rolling(window=window, min_periods=window).mean()


def rolling_std(values: pd.Series, window: int) -> pd.Series:
    """Trailing sample standard deviation (ddof=1), same NaN prefix as `rolling_mean`."""
    return values.rolling(window=window, min_periods=window).std(ddof=1)


def to_date_index(df: pd.DataFrame) -> pd.DataFrame:
    """
    Returns a copy indexed by a DatetimeIndex named 'Date'.

    Accepts either a 'Date' column or an existing DatetimeIndex, and raises
    MissingColumnsError when neither date nor 'Close' is present.
    """
    missing: List[str] = []
    has_date_column = "Date" in df.columns
    if not has_date_column and not isinstance(df.index, pd.DatetimeIndex):
        missing.append("Date")
    if "Close" not in df.columns:
        missing.append("Close")
    if missing:
        raise MissingColumnsError(missing)

    if has_date_column:
        df_out = df.copy()
        df_out["Date"] = pd.to_datetime(df_out["Date"])
        return df_out.set_index("Date")
    return df.rename_axis("Date").copy()


def prepare(series: pd.DataFrame) -> pd.DataFrame:
    """
    Cleans a raw price series and adds the regression inputs.

    - day_index: 1..N position after sorting by date (gaps are ignored).
    - log_close: ln(Close); -inf/NaN for non-positive prices, which are kept
      here so the rolling windows see the true sequence.
    - ma7, ma20: trailing moving averages of Close.
    - volatility20: trailing sample standard deviation of Close.

    Args:
        series: DataFrame with 'Close' and a date ('Date' column or DatetimeIndex).

    Returns:
        A new DataFrame indexed by Date with the added columns.
    """
    df = to_date_index(series)
    df = df[df.index.notna() & df["Close"].notna()]

    if len(df) < MIN_OBSERVATIONS:
        raise InsufficientDataError(
            f"Insufficient data for regression analysis "
            f"(minimum {MIN_OBSERVATIONS} points required, got {len(df)})"
        )

    df = df.sort_index(kind="mergesort")
    close = df["Close"].astype(float)

    with np.errstate(divide="ignore", invalid="ignore"):
        log_close = np.log(close)

    return df.assign(
        day_index=np.arange(1, len(df) + 1),
        log_close=log_close,
        ma7=rolling_mean(close, MA_SHORT_WINDOW),
        ma20=rolling_mean(close, MA_LONG_WINDOW),
        volatility20=rolling_std(close, VOLATILITY_WINDOW),
    )
