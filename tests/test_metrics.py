"""
Tests for trend and risk metrics.
"""
import numpy as np
import pandas as pd
import pytest

from trendcast.features import prepare
from trendcast.forecast import forecast
from trendcast.metrics import (
    compute,
    expected_return_pct,
    prediction_uncertainty_pct,
    price_volatility_pct,
    risk_level,
    trend_direction,
)
from trendcast.models import fit_all, select
from trendcast.types import RiskLevel, TrendDirection


def _make_series(closes, start="2024-01-01") -> pd.DataFrame:
    dates = pd.date_range(start=start, periods=len(closes), freq="D")
    return pd.DataFrame({"Close": closes}, index=dates)


def _summaries(closes, horizon=5, drop_simple=False):
    prepared = prepare(_make_series(closes))
    candidates = fit_all(prepared)
    _, model = select(candidates)
    table = forecast(model, prepared, horizon)
    if drop_simple:
        candidates = {k: v for k, v in candidates.items() if k != "simple"}
    return compute(model, prepared, table, candidates)


@pytest.mark.parametrize(
    "closes, expected",
    [
        ([100.0 + i for i in range(20)], TrendDirection.UPWARD),
        ([100.0 - i for i in range(20)], TrendDirection.DOWNWARD),
        ([75.0] * 20, TrendDirection.FLAT),
    ],
)
def test_trend_direction_follows_simple_slope(closes, expected) -> None:
    trend, _ = _summaries(closes)
    assert trend.direction is expected


def test_trend_direction_thresholds() -> None:
    assert trend_direction(0.5, 100.0) is TrendDirection.UPWARD
    assert trend_direction(-0.5, 100.0) is TrendDirection.DOWNWARD
    assert trend_direction(0.0, 100.0) is TrendDirection.FLAT


def test_trend_uses_simple_model_even_when_another_is_selected() -> None:
    # A pure exponential is best fit by the log-linear model.
    closes = np.exp(4.0 + 0.05 * np.arange(1, 31))
    prepared = prepare(_make_series(closes))
    candidates = fit_all(prepared)
    name, model = select(candidates)
    assert name == "log_linear"

    trend, _ = compute(model, prepared, forecast(model, prepared, 5), candidates)

    assert trend.slope == pytest.approx(candidates["simple"].slope)
    assert trend.r_squared == model.r_squared
    assert trend.strength_pct == pytest.approx(abs(trend.slope) / np.mean(closes) * 100)


def test_simple_model_is_refit_when_missing() -> None:
    trend, _ = _summaries([100.0 + 2 * i for i in range(20)], drop_simple=True)

    assert trend.slope == pytest.approx(2.0)
    assert trend.direction is TrendDirection.UPWARD


def test_flat_series_is_low_risk() -> None:
    trend, risk = _summaries([50.0] * 15)

    assert trend.slope == pytest.approx(0.0, abs=1e-9)
    assert trend.direction is TrendDirection.FLAT
    assert risk.volatility_pct == pytest.approx(0.0)
    assert risk.risk_level is RiskLevel.LOW
    assert risk.current_price == 50.0
    assert risk.forecast_price == pytest.approx(50.0)


def test_linear_series_risk_summary() -> None:
    closes = [100.0 + i for i in range(30)]
    _, risk = _summaries(closes, horizon=5)

    assert risk.current_price == 129.0
    assert risk.forecast_price == pytest.approx(134.0)
    assert risk.expected_return_pct == pytest.approx((134.0 - 129.0) / 129.0 * 100)
    assert risk.volatility_pct == pytest.approx(np.std(closes, ddof=1) / np.mean(closes) * 100)


def test_expected_return_pct() -> None:
    assert expected_return_pct(100.0, 110.0) == pytest.approx(10.0)
    assert expected_return_pct(200.0, 150.0) == pytest.approx(-25.0)


def test_price_volatility_pct() -> None:
    close = pd.Series([10.0, 12.0, 14.0])
    assert price_volatility_pct(close) == pytest.approx(2.0 / 12.0 * 100)


def test_prediction_uncertainty_is_mean_relative_width() -> None:
    table = pd.DataFrame(
        {
            "predicted_price": [100.0, 50.0],
            "lower_bound": [90.0, 40.0],
            "upper_bound": [110.0, 60.0],
        }
    )
    # Row widths: 20% and 40%.
    assert prediction_uncertainty_pct(table) == pytest.approx(30.0)


@pytest.mark.parametrize(
    "volatility, expected",
    [
        (0.0, RiskLevel.LOW),
        (2.999, RiskLevel.LOW),
        (3.0, RiskLevel.MEDIUM),
        (6.999, RiskLevel.MEDIUM),
        (7.0, RiskLevel.HIGH),
        (25.0, RiskLevel.HIGH),
    ],
)
def test_risk_level_boundaries(volatility: float, expected: RiskLevel) -> None:
    assert risk_level(volatility) is expected
