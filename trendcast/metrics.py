"""
Trend and risk metrics derived from the fitted models and the forecast.
"""
from typing import Dict, Optional, Tuple

import pandas as pd

from trendcast.models import SIMPLE, SimpleTrend, usable_rows
from trendcast.types import FittedModel, RiskLevel, RiskSummary, TrendDirection, TrendSummary

__all__ = [
    "compute",
    "trend_direction",
    "expected_return_pct",
    "price_volatility_pct",
    "prediction_uncertainty_pct",
    "risk_level",
]

# Slopes this small relative to the mean price are rounding noise from OLS.
FLAT_SLOPE_TOLERANCE = 1e-12


def trend_direction(slope: float, mean_price: float) -> TrendDirection:
    """Upward for a positive slope, Downward for a negative one, else Flat."""
    if abs(slope) <= FLAT_SLOPE_TOLERANCE * abs(mean_price):
        return TrendDirection.FLAT
    return TrendDirection.UPWARD if slope > 0 else TrendDirection.DOWNWARD


def expected_return_pct(current_price: float, forecast_price: float) -> float:
    return (forecast_price - current_price) / current_price * 100


def price_volatility_pct(close: pd.Series) -> float:
    """Coefficient of variation of the close, in percent (sample std)."""
    return float(close.std(ddof=1) / close.mean() * 100)


def prediction_uncertainty_pct(forecast: pd.DataFrame) -> float:
    """Mean interval width relative to the predicted price, in percent."""
    width = (forecast["upper_bound"] - forecast["lower_bound"]) / forecast["predicted_price"]
    return float(width.mean() * 100)


def risk_level(volatility_pct: float) -> RiskLevel:
    return RiskLevel.from_volatility(volatility_pct)


def compute(
    model: FittedModel,
    prepared: pd.DataFrame,
    forecast: pd.DataFrame,
    candidates: Optional[Dict[str, FittedModel]] = None,
) -> Tuple[TrendSummary, RiskSummary]:
    """
    Derives the trend and risk summaries.

    The trend always comes from the simple linear fit, whichever model was
    selected; it is taken from `candidates` when present and refit
    otherwise.

    Args:
        model: The selected FittedModel.
        prepared: The prepared series.
        forecast: The forecast table for `model`.
        candidates: The fitted candidates, if already available.

    Returns:
        A (TrendSummary, RiskSummary) tuple.
    """
    history = usable_rows(prepared)
    close = history["Close"].astype(float)
    mean_price = float(close.mean())

    simple = (candidates or {}).get(SIMPLE)
    if simple is None:
        simple = SimpleTrend().fit(history)
    slope = simple.slope

    trend = TrendSummary(
        direction=trend_direction(slope, mean_price),
        slope=slope,
        strength_pct=abs(slope) / mean_price * 100,
        r_squared=model.r_squared,
        adj_r_squared=model.adj_r_squared,
    )

    current_price = float(close.iloc[-1])
    forecast_price = float(forecast["predicted_price"].iloc[-1])
    risk = RiskSummary(
        current_price=current_price,
        forecast_price=forecast_price,
        expected_return_pct=expected_return_pct(current_price, forecast_price),
        volatility_pct=price_volatility_pct(close),
        uncertainty_pct=prediction_uncertainty_pct(forecast),
        rmse=model.rmse,
        aic=model.aic,
    )
    return trend, risk
