"""
Exception taxonomy for the regression analysis.

Every failure the analysis can hit is one of these. Only `ModelFitFailure` is
recovered from inside the core (the candidate is dropped); the others end the
request and reach the caller.
"""

__all__ = [
    "TrendcastError",
    "InsufficientDataError",
    "MissingColumnsError",
    "ModelFitFailure",
    "NoViableModelError",
    "UnknownSymbolError",
]


class TrendcastError(Exception):
    """Base class for all analysis failures."""


class InsufficientDataError(TrendcastError):
    """Fewer usable rows than the regression needs."""


class MissingColumnsError(TrendcastError):
    """Required columns (date, close) are absent from the input."""

    def __init__(self, missing):
        self.missing = sorted(missing)
        super().__init__(f"Missing required columns: {', '.join(self.missing)}")


class ModelFitFailure(TrendcastError):
    """A single candidate model could not be fit."""

    def __init__(self, model_name: str, reason: str):
        self.model_name = model_name
        self.reason = reason
        super().__init__(f"{model_name} model failed to fit: {reason}")


class NoViableModelError(TrendcastError):
    """No candidate model could be fit."""


class UnknownSymbolError(TrendcastError):
    """The requested symbol has no rows in the data."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"No data found for symbol: {symbol}")
