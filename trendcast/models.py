"""
Candidate regression models, fitting and selection.

Four OLS models compete on the prepared series:

- simple:      Close ~ day_index
- log_linear:  log_close ~ day_index (predictions are exponentiated)
- polynomial:  Close ~ day_index + day_index^2
- multiple:    Close ~ day_index + ma7 + ma20 + volatility20

Each one is a `RegressionModel` subclass that knows which rows it uses, how
to build its design matrix for history and for the forecast horizon, and how
to map its predictions back to prices. Fitting uses statsmodels OLS; the
best candidate is the one with the highest adjusted R².
"""
import logging
import math
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm

from trendcast.errors import InsufficientDataError, ModelFitFailure, NoViableModelError
from trendcast.features import MIN_OBSERVATIONS
from trendcast.types import FittedModel

__all__ = [
    "RegressionModel",
    "SimpleTrend",
    "LogLinearTrend",
    "PolynomialTrend",
    "MultipleFactor",
    "MODELS",
    "MODEL_ORDER",
    "fit_all",
    "select",
    "usable_rows",
]

log = logging.getLogger(__name__)

SIMPLE = "simple"
LOG_LINEAR = "log_linear"
POLYNOMIAL = "polynomial"
MULTIPLE = "multiple"

# Fixed evaluation order; also the tie-break order for selection.
MODEL_ORDER = [SIMPLE, LOG_LINEAR, POLYNOMIAL, MULTIPLE]

# The multiple-factor model needs strictly more rows than this with ma20 defined.
MULTIPLE_MIN_ROWS = 20


class RegressionModel:
    """
    Base class for a candidate model.

    Subclasses set `name` and `regressors` and override the hooks whose
    default does not fit them.
    """

    name: str = ""
    regressors: List[str] = ["day_index"]

    def available(self, frame: pd.DataFrame) -> bool:
        """Whether this model should be attempted at all on `frame`."""
        return True

    def rows(self, frame: pd.DataFrame) -> pd.DataFrame:
        return frame

    def target(self, frame: pd.DataFrame) -> pd.Series:
        return frame["Close"].astype(float)

    def design(self, frame: pd.DataFrame) -> pd.DataFrame:
        return frame[self.regressors].astype(float)

    def future_design(self, prepared: pd.DataFrame, future_index: np.ndarray) -> pd.DataFrame:
        """Regressor values for future `day_index` positions."""
        return pd.DataFrame({"day_index": future_index.astype(float)})

    def to_price(self, values):
        """Maps model-scale values to prices. Identity except for log models."""
        return values

    def fit(self, frame: pd.DataFrame) -> FittedModel:
        """
        Fits the model by OLS and scores it.

        Raises:
            ModelFitFailure: rank-deficient design, too few degrees of
                freedom, or non-finite scores.
        """
        data = self.rows(frame)
        y = self.target(data)
        X = sm.add_constant(self.design(data), has_constant="add")
        n, k = X.shape
        p = k - 1

        if n - p - 1 <= 0:
            raise ModelFitFailure(self.name, f"{n} observations for {p} regressors")
        if np.linalg.matrix_rank(X.to_numpy()) < k:
            raise ModelFitFailure(self.name, "design matrix is rank deficient")

        results = sm.OLS(y, X).fit()
        residuals = results.resid
        rss = float(np.sum(residuals.to_numpy() ** 2))

        # An intercept reproduces a constant target exactly.
        if np.ptp(y.to_numpy()) == 0:
            r_squared = 1.0
        else:
            tss = float(np.sum((y.to_numpy() - y.mean()) ** 2))
            r_squared = 1.0 - rss / tss
        adj_r_squared = 1.0 - (1.0 - r_squared) * (n - 1) / (n - p - 1)
        with np.errstate(divide="ignore"):
            aic = float(n * np.log(rss / n) + 2 * k)
        rmse = math.sqrt(rss / n)

        if not np.all(np.isfinite(results.params)) or math.isnan(adj_r_squared):
            raise ModelFitFailure(self.name, "non-finite estimates")

        return FittedModel(
            name=self.name,
            coefficients=results.params,
            fitted_values=results.fittedvalues,
            residuals=residuals,
            r_squared=r_squared,
            adj_r_squared=adj_r_squared,
            aic=aic,
            rmse=rmse,
            n_obs=n,
            kind=self,
            results=results,
        )

    def predict(self, fitted: FittedModel, exog: pd.DataFrame, alpha: float = 0.05) -> pd.DataFrame:
        """
        Point predictions with (1 - alpha) prediction intervals, on the model scale.

        Returns:
            A DataFrame with columns 'fit', 'lower', 'upper'.
        """
        X = sm.add_constant(exog, has_constant="add")
        frame = fitted.results.get_prediction(X).summary_frame(alpha=alpha)
        return pd.DataFrame(
            {
                "fit": frame["mean"].to_numpy(),
                "lower": frame["obs_ci_lower"].to_numpy(),
                "upper": frame["obs_ci_upper"].to_numpy(),
            }
        )


class SimpleTrend(RegressionModel):
    name = SIMPLE


class LogLinearTrend(RegressionModel):
    name = LOG_LINEAR

    def target(self, frame: pd.DataFrame) -> pd.Series:
        return frame["log_close"].astype(float)

    def to_price(self, values):
        return np.exp(values)


class PolynomialTrend(RegressionModel):
    name = POLYNOMIAL
    regressors = ["day_index", "day_index_sq"]

    def design(self, frame: pd.DataFrame) -> pd.DataFrame:
        index = frame["day_index"].astype(float)
        return pd.DataFrame({"day_index": index, "day_index_sq": index**2})

    def future_design(self, prepared: pd.DataFrame, future_index: np.ndarray) -> pd.DataFrame:
        index = future_index.astype(float)
        return pd.DataFrame({"day_index": index, "day_index_sq": index**2})


class MultipleFactor(RegressionModel):
    name = MULTIPLE
    regressors = ["day_index", "ma7", "ma20", "volatility20"]

    def available(self, frame: pd.DataFrame) -> bool:
        return int(frame["ma20"].notna().sum()) > MULTIPLE_MIN_ROWS

    def rows(self, frame: pd.DataFrame) -> pd.DataFrame:
        return frame[frame["ma20"].notna()]

    def future_design(self, prepared: pd.DataFrame, future_index: np.ndarray) -> pd.DataFrame:
        # Rolling inputs are held at their last observed value over the horizon.
        design = pd.DataFrame({"day_index": future_index.astype(float)})
        for column in ["ma7", "ma20", "volatility20"]:
            design[column] = float(prepared[column].dropna().iloc[-1])
        return design


MODELS: List[RegressionModel] = [SimpleTrend(), LogLinearTrend(), PolynomialTrend(), MultipleFactor()]


def usable_rows(prepared: pd.DataFrame) -> pd.DataFrame:
    """Rows with a finite log price (Close > 0)."""
    return prepared[np.isfinite(prepared["log_close"])]


def fit_all(prepared: pd.DataFrame, symbol: Optional[str] = None) -> Dict[str, FittedModel]:
    """
    Fits every available candidate on the usable rows of `prepared`.

    A candidate that fails numerically is logged and left out; the analysis
    only fails when none fit.

    Returns:
        Mapping of model name to FittedModel, in MODEL_ORDER.
    """
    label = symbol or "dataset"
    data = usable_rows(prepared)
    if len(data) < MIN_OBSERVATIONS:
        raise InsufficientDataError(
            f"Insufficient data for regression analysis of {label} "
            f"(minimum {MIN_OBSERVATIONS} usable points required, got {len(data)})"
        )

    fitted: Dict[str, FittedModel] = {}
    for model in MODELS:
        if not model.available(data):
            log.debug("Skipping %s model for %s: not enough rows", model.name, label)
            continue
        try:
            result = model.fit(data)
        except (ModelFitFailure, np.linalg.LinAlgError) as e:
            log.warning("Excluding %s model for %s: %s", model.name, label, e)
            continue
        log.debug(
            "%s model for %s: R2=%.4f adjR2=%.4f AIC=%.2f RMSE=%.4f",
            model.name, label, result.r_squared, result.adj_r_squared, result.aic, result.rmse,
        )
        fitted[model.name] = result

    if not fitted:
        raise NoViableModelError(f"No regression model could be fit for {label}")
    return fitted


def select(candidates: Dict[str, FittedModel]) -> Tuple[str, FittedModel]:
    """
    Picks the candidate with the highest adjusted R².

    Ties go to the earliest model in MODEL_ORDER.
    """
    if not candidates:
        raise NoViableModelError("No candidate models to select from")

    ordered = [name for name in MODEL_ORDER if name in candidates]
    ordered += [name for name in candidates if name not in ordered]

    best_name = ordered[0]
    for name in ordered[1:]:
        if candidates[name].adj_r_squared > candidates[best_name].adj_r_squared:
            best_name = name
    return best_name, candidates[best_name]
