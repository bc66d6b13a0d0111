"""
Forward projection of the selected model with 95% prediction intervals.
"""
import numpy as np
import pandas as pd

from trendcast.models import usable_rows
from trendcast.types import FORECAST_COLUMNS, FittedModel

__all__ = ["forecast", "MIN_HORIZON", "MAX_HORIZON"]

MIN_HORIZON = 1
MAX_HORIZON = 90

# 95% prediction interval.
INTERVAL_ALPHA = 0.05


def forecast(model: FittedModel, prepared: pd.DataFrame, horizon_days: int) -> pd.DataFrame:
    """
    Projects `model` over the next `horizon_days` periods.

    Future day indices continue from the last usable row; future dates step
    one calendar day at a time from the last observed date (weekends and
    holidays are not skipped). Intervals come from the OLS fit and cover a
    new observation, not just the mean. For the log-linear model fit and
    bounds are exponentiated separately, so the band is wider above the
    point estimate than below it.

    Args:
        model: The selected FittedModel.
        prepared: The prepared series the model was fit on.
        horizon_days: Number of periods to project, 1-90.

    Returns:
        A DataFrame with columns Date, predicted_price, lower_bound, upper_bound.
    """
    if not MIN_HORIZON <= horizon_days <= MAX_HORIZON:
        raise ValueError(f"horizon_days must be between {MIN_HORIZON} and {MAX_HORIZON}, got {horizon_days}")

    history = usable_rows(prepared)
    last_index = int(history["day_index"].max())
    last_date = history.index.max()

    future_index = np.arange(last_index + 1, last_index + horizon_days + 1)
    future_dates = pd.date_range(start=last_date + pd.Timedelta(days=1), periods=horizon_days, freq="D")

    exog = model.kind.future_design(history, future_index)
    predicted = model.kind.predict(model, exog, alpha=INTERVAL_ALPHA)

    table = pd.DataFrame(
        {
            "Date": future_dates,
            "predicted_price": model.kind.to_price(predicted["fit"].to_numpy()),
            "lower_bound": model.kind.to_price(predicted["lower"].to_numpy()),
            "upper_bound": model.kind.to_price(predicted["upper"].to_numpy()),
        }
    )
    return table[FORECAST_COLUMNS]
