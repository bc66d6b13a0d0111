"""
End-to-end regression analysis for one price series.

prepare -> fit_all -> select -> forecast -> metrics. Nothing here does I/O or
keeps state between calls, so independent analyses can run in parallel.
"""
import datetime as dt
import logging
from typing import Optional

import pandas as pd

from trendcast import features, forecast, metrics, models
from trendcast.data import select_symbol
from trendcast.errors import TrendcastError
from trendcast.types import AnalysisOutcome, RegressionResult

__all__ = ["analyze", "analyze_symbol", "run_analysis", "DEFAULT_HORIZON"]

log = logging.getLogger(__name__)

DEFAULT_HORIZON = 30


def analyze(
    series: pd.DataFrame,
    symbol: Optional[str] = None,
    horizon_days: int = DEFAULT_HORIZON,
    analysis_date: Optional[dt.datetime] = None,
) -> RegressionResult:
    """
    Runs the full analysis on a single series.

    Args:
        series: Price frame with 'Close' and a date ('Date' column or index).
        symbol: Optional label carried into the result and logs.
        horizon_days: Forecast length, 1-90.
        analysis_date: Timestamp stamped on the result; defaults to now.

    Raises:
        InsufficientDataError, MissingColumnsError, NoViableModelError, ValueError.
    """
    prepared = features.prepare(series)
    candidates = models.fit_all(prepared, symbol)
    model_name, model = models.select(candidates)
    table = forecast.forecast(model, prepared, horizon_days)
    trend, risk = metrics.compute(model, prepared, table, candidates)

    log.info(
        "Linear regression completed for %s using %s model with R2 = %.4f",
        symbol or "dataset", model_name, model.r_squared,
    )
    return RegressionResult(
        symbol=symbol,
        model_name=model_name,
        model=model,
        candidates=candidates,
        forecast=table,
        trend=trend,
        risk=risk,
        horizon_days=horizon_days,
        analysis_date=analysis_date or dt.datetime.now(),
        prepared=prepared,
    )


def analyze_symbol(
    frame: pd.DataFrame,
    symbol: str,
    horizon_days: int = DEFAULT_HORIZON,
    analysis_date: Optional[dt.datetime] = None,
) -> RegressionResult:
    """Filters a multi-symbol frame to `symbol` and analyzes it."""
    return analyze(select_symbol(frame, symbol), symbol, horizon_days, analysis_date)


def run_analysis(
    series: pd.DataFrame,
    symbol: Optional[str] = None,
    horizon_days: int = DEFAULT_HORIZON,
    analysis_date: Optional[dt.datetime] = None,
) -> AnalysisOutcome:
    """
    Like `analyze`, but returns failures as a tagged outcome instead of raising.

    If `series` has a 'Symbol' column and `symbol` is given, it is filtered
    to that symbol first.
    """
    try:
        if symbol is not None and "Symbol" in series.columns:
            result = analyze_symbol(series, symbol, horizon_days, analysis_date)
        else:
            result = analyze(series, symbol, horizon_days, analysis_date)
    except (TrendcastError, ValueError) as e:
        log.error("Error in linear regression analysis for %s: %s", symbol or "dataset", e)
        return AnalysisOutcome.failure(e)
    return AnalysisOutcome.success(result)
