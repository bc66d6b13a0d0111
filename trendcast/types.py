"""
Shared data structures for the application.
"""
import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from trendcast.models import RegressionModel

__all__ = [
    "PricePoint",
    "TrendDirection",
    "RiskLevel",
    "FittedModel",
    "TrendSummary",
    "RiskSummary",
    "RegressionResult",
    "SupportResistance",
    "AnalysisOutcome",
    "points_to_frame",
    "FORECAST_COLUMNS",
]

# Column layout of a forecast table.
FORECAST_COLUMNS = ["Date", "predicted_price", "lower_bound", "upper_bound"]

# Volatility thresholds (percent) separating the risk levels.
LOW_RISK_MAX_VOLATILITY = 3.0
MEDIUM_RISK_MAX_VOLATILITY = 7.0


class PricePoint(BaseModel):
    """
    A single daily bar for one instrument.
    """

    model_config = ConfigDict(frozen=True)

    date: dt.date = Field(..., description="The trading day.")
    open: float = Field(..., description="Opening price.")
    high: float = Field(..., description="Intraday high.")
    low: float = Field(..., description="Intraday low.")
    close: float = Field(..., gt=0, description="Closing price.")
    volume: float = Field(0.0, ge=0, description="Traded volume.")


def points_to_frame(points: List[PricePoint]) -> pd.DataFrame:
    """Converts price points into the OHLCV frame used across the package."""
    records = [p.model_dump() for p in points]
    df = pd.DataFrame(records, columns=["date", "open", "high", "low", "close", "volume"])
    df = df.rename(columns=str.capitalize)
    df["Date"] = pd.to_datetime(df["Date"])
    return df.set_index("Date")


class TrendDirection(str, Enum):
    UPWARD = "Upward"
    DOWNWARD = "Downward"
    FLAT = "Flat"


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def from_volatility(cls, volatility_pct: float) -> "RiskLevel":
        """Low below 3%, Medium below 7%, High otherwise."""
        if volatility_pct < LOW_RISK_MAX_VOLATILITY:
            return cls.LOW
        if volatility_pct < MEDIUM_RISK_MAX_VOLATILITY:
            return cls.MEDIUM
        return cls.HIGH


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    One fitted OLS candidate.

    `fitted_values` and `residuals` are on the scale the model was fit on
    (log price for the log-linear model) and indexed by date. Use
    `fitted_prices` for values in price space.
    """

    name: str
    coefficients: pd.Series
    fitted_values: pd.Series
    residuals: pd.Series
    r_squared: float
    adj_r_squared: float
    aic: float
    rmse: float
    n_obs: int
    kind: "RegressionModel" = field(repr=False)
    results: Any = field(repr=False)

    @property
    def slope(self) -> float:
        """Coefficient on `day_index`."""
        return float(self.coefficients["day_index"])

    @property
    def fitted_prices(self) -> pd.Series:
        return self.kind.to_price(self.fitted_values)


@dataclass(frozen=True)
class TrendSummary:
    direction: TrendDirection
    slope: float
    strength_pct: float
    r_squared: float
    adj_r_squared: float


@dataclass(frozen=True)
class RiskSummary:
    current_price: float
    forecast_price: float
    expected_return_pct: float
    volatility_pct: float
    uncertainty_pct: float
    rmse: float
    aic: float

    @property
    def risk_level(self) -> RiskLevel:
        return RiskLevel.from_volatility(self.volatility_pct)


@dataclass(frozen=True, eq=False)
class RegressionResult:
    """
    The complete outcome of one analysis request.

    Built fresh per request and never mutated. `candidates` keeps every model
    that fit successfully, in evaluation order, for the comparison table.
    """

    symbol: Optional[str]
    model_name: str
    model: FittedModel
    candidates: Dict[str, FittedModel]
    forecast: pd.DataFrame
    trend: TrendSummary
    risk: RiskSummary
    horizon_days: int
    analysis_date: dt.datetime
    prepared: pd.DataFrame = field(repr=False)

    def trend_line(self) -> pd.DataFrame:
        """`(Date, value)` pairs of the selected model's fit, in price space."""
        prices = self.model.fitted_prices
        return pd.DataFrame({"Date": prices.index, "value": prices.to_numpy()})

    def comparison(self) -> pd.DataFrame:
        """One row per fitted candidate: name, R², adjusted R², RMSE, AIC."""
        rows = [
            {
                "model": name,
                "r_squared": m.r_squared,
                "adj_r_squared": m.adj_r_squared,
                "rmse": m.rmse,
                "aic": m.aic,
            }
            for name, m in self.candidates.items()
        ]
        return pd.DataFrame(rows, columns=["model", "r_squared", "adj_r_squared", "rmse", "aic"])


@dataclass(frozen=True)
class SupportResistance:
    static_support: float
    static_resistance: float
    trend_support: float
    trend_resistance: float
    current_price: float
    window: int


@dataclass(frozen=True)
class AnalysisOutcome:
    """
    Either a result or a tagged error. Check `ok` before touching `result`.
    """

    result: Optional[RegressionResult] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_type is None

    @classmethod
    def success(cls, result: RegressionResult) -> "AnalysisOutcome":
        return cls(result=result)

    @classmethod
    def failure(cls, exc: Exception) -> "AnalysisOutcome":
        return cls(error=str(exc), error_type=type(exc).__name__)
