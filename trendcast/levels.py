"""
Support and resistance levels from recent highs and lows.
"""
import logging
from typing import Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm

from trendcast.features import to_date_index
from trendcast.types import SupportResistance

__all__ = ["compute_levels"]

log = logging.getLogger(__name__)

MIN_ROWS = 20
LOOKBACK_ROWS = 50
PROJECTION_STEPS = 5


def _project_trend(values: pd.Series, steps_ahead: int) -> float:
    """Fits values ~ index by OLS and evaluates the line `steps_ahead` past the end."""
    index = np.arange(1, len(values) + 1, dtype=float)
    results = sm.OLS(values.to_numpy(dtype=float), sm.add_constant(index)).fit()
    intercept, slope = results.params
    return float(intercept + slope * (len(values) + steps_ahead))


def compute_levels(series: pd.DataFrame) -> Optional[SupportResistance]:
    """
    Static and trend-based support/resistance over the last 50 rows.

    - static_support: 10th percentile of Low.
    - static_resistance: 90th percentile of High.
    - trend_support / trend_resistance: OLS lines through Low / High,
      projected 5 rows past the window.

    Returns:
        SupportResistance, or None when High/Low/Close are missing or the
        series has fewer than 20 rows.
    """
    if not {"High", "Low", "Close"}.issubset(series.columns):
        log.info("Support/resistance unavailable: High/Low/Close columns required")
        return None
    if len(series) < MIN_ROWS:
        log.info("Support/resistance unavailable: %d rows, need %d", len(series), MIN_ROWS)
        return None

    recent = to_date_index(series).sort_index(kind="mergesort").tail(LOOKBACK_ROWS)

    return SupportResistance(
        static_support=round(float(recent["Low"].quantile(0.1)), 2),
        static_resistance=round(float(recent["High"].quantile(0.9)), 2),
        trend_support=round(_project_trend(recent["Low"], PROJECTION_STEPS), 2),
        trend_resistance=round(_project_trend(recent["High"], PROJECTION_STEPS), 2),
        current_price=round(float(recent["Close"].iloc[-1]), 2),
        window=len(recent),
    )
