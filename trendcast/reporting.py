"""
Rendering and exporting regression reports.
"""
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from rich.console import Console
from rich.table import Table

from trendcast.types import RegressionResult, SupportResistance, TrendDirection

__all__ = ["render_report", "export_report", "report_basename", "print_summary", "print_levels"]

OUTPUT_FORMATS = ("markdown", "json", "csv")


def _model_title(name: str) -> str:
    return name.replace("_", " ").title()


def _interpretation(result: RegressionResult) -> List[str]:
    r_squared = result.trend.r_squared
    if r_squared > 0.7:
        fit_line = "**Strong predictive model** - High confidence in trend analysis"
    elif r_squared > 0.4:
        fit_line = "**Moderate predictive model** - Reasonable trend indication"
    else:
        fit_line = "**Weak predictive model** - Low confidence, consider additional factors"

    expected = result.risk.expected_return_pct
    if expected > 5:
        outlook = "**Positive outlook** - Model suggests potential upward movement"
    elif expected < -5:
        outlook = "**Negative outlook** - Model suggests potential downward movement"
    else:
        outlook = "**Neutral outlook** - Model suggests stable price movement"
    return [fit_line, "", outlook]


def _recommendations(result: RegressionResult) -> List[str]:
    horizon = "long-term" if result.risk.volatility_pct < 3 else "short to medium-term"
    controls = "tight stop-losses" if result.risk.uncertainty_pct > 20 else "standard risk controls"
    return [
        f"- **Investment Horizon:** Consider {horizon} strategies",
        f"- **Risk Management:** Implement {controls}",
        "- **Monitoring:** Review model performance weekly and retrain with new data",
    ]


def render_report(result: RegressionResult) -> str:
    """
    Formats a RegressionResult as a Markdown report.

    Pure: the same result always renders to the same text.
    """
    trend, risk = result.trend, result.risk
    horizon = result.horizon_days
    subject = f"**Stock Symbol:** {result.symbol}" if result.symbol else "**Dataset Analysis**"

    lines = [
        "# Linear Regression Analysis Report",
        subject,
        f"**Analysis Date:** {result.analysis_date:%Y-%m-%d %H:%M:%S}",
        f"**Model Type:** {_model_title(result.model_name)}",
        "",
        "## Model Performance",
        f"- **R-squared:** {trend.r_squared:.4f} ({trend.r_squared * 100:.2f}% variance explained)",
        f"- **Adjusted R-squared:** {trend.adj_r_squared:.4f}",
        f"- **RMSE:** {risk.rmse:.2f}",
        f"- **AIC:** {risk.aic:.2f}",
        "",
        "## Trend Analysis",
        f"- **Trend Direction:** {trend.direction.value}",
        f"- **Trend Strength:** {trend.strength_pct:.3f}% per day",
        f"- **Daily Slope:** {trend.slope:.4f}",
        "",
        f"## Price Predictions ({horizon}-day forecast)",
        f"- **Current Price:** {risk.current_price:.2f}",
        f"- **Predicted {horizon}-day Price:** {risk.forecast_price:.2f}",
        f"- **Expected Return:** {risk.expected_return_pct:.2f}%",
        "",
        "## Risk Assessment",
        f"- **Price Volatility:** {risk.volatility_pct:.2f}%",
        f"- **Prediction Uncertainty:** {risk.uncertainty_pct:.2f}%",
        f"- **Risk Level:** {risk.risk_level.value}",
        "",
        "## Model Comparison",
        "| Model | R² | Adj. R² | RMSE | AIC |",
        "|-------|----|---------|------|-----|",
    ]
    for name, model in result.candidates.items():
        lines.append(
            f"| {_model_title(name)} | {model.r_squared:.4f} | {model.adj_r_squared:.4f} "
            f"| {model.rmse:.2f} | {model.aic:.2f} |"
        )

    lines += ["", "## Interpretation", *_interpretation(result)]
    lines += ["", "## Recommendations", *_recommendations(result)]
    lines += [
        "",
        "---",
        "*This analysis is for educational purposes only and should not be considered as investment advice.*",
        f"*Report generated by trendcast on {result.analysis_date:%Y-%m-%d}*",
    ]
    return "\n".join(lines)


def report_basename(result: RegressionResult) -> str:
    """File stem for exported artifacts: symbol plus analysis date."""
    label = (result.symbol or "dataset").replace("/", "_")
    return f"regression_{label}_{result.analysis_date:%Y-%m-%d}"


def _to_json_serializable(data):
    """Recursively converts non-serializable types in a dictionary."""
    if isinstance(data, dict):
        return {k: _to_json_serializable(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_to_json_serializable(i) for i in data]
    if isinstance(data, (Path, pd.Timestamp)):
        return str(data)
    if isinstance(data, TrendDirection):
        return data.value
    if data is None or (isinstance(data, float) and np.isnan(data)):
        return None
    if isinstance(data, np.integer):
        return int(data)
    if isinstance(data, np.floating):
        return _to_json_serializable(float(data))
    if isinstance(data, float) and np.isinf(data):
        return str(data)
    return data


def _summary_dict(result: RegressionResult) -> Dict[str, Any]:
    trend, risk = result.trend, result.risk
    forecast = result.forecast.assign(Date=result.forecast["Date"].dt.strftime("%Y-%m-%d"))
    return {
        "symbol": result.symbol,
        "analysis_date": result.analysis_date.isoformat(),
        "model_type": result.model_name,
        "horizon_days": result.horizon_days,
        "trend": {
            "direction": trend.direction,
            "slope": trend.slope,
            "strength_percent": trend.strength_pct,
            "r_squared": trend.r_squared,
            "adjusted_r_squared": trend.adj_r_squared,
        },
        "metrics": {
            "current_price": risk.current_price,
            "forecast_price": risk.forecast_price,
            "expected_return_percent": risk.expected_return_pct,
            "price_volatility_percent": risk.volatility_pct,
            "prediction_uncertainty_percent": risk.uncertainty_pct,
            "risk_level": risk.risk_level.value,
            "rmse": risk.rmse,
            "aic": risk.aic,
        },
        "model_comparison": result.comparison().to_dict(orient="records"),
        "predictions": forecast.to_dict(orient="records"),
    }


# impure
def export_report(
    result: RegressionResult,
    output_dir: Path,
    formats: Optional[List[str]] = None,
    console: Optional[Console] = None,
) -> List[Path]:
    """
    Writes the report artifacts for `result` into `output_dir`.

    Files are named `regression_<SYMBOL>_<YYYY-MM-DD>` with one extension per
    format: .md (rendered report), .json (summary and forecast), .csv
    (forecast table).
    #impure: Writes to the filesystem.

    Returns:
        The paths written.
    """
    formats = list(formats or ["markdown"])
    unknown = set(formats) - set(OUTPUT_FORMATS)
    if unknown:
        raise ValueError(f"Unknown output formats: {sorted(unknown)}")

    output_dir.mkdir(parents=True, exist_ok=True)
    stem = report_basename(result)
    written: List[Path] = []

    if "markdown" in formats:
        path = output_dir / f"{stem}.md"
        path.write_text(render_report(result) + "\n", encoding="utf-8")
        written.append(path)

    if "json" in formats:
        path = output_dir / f"{stem}.json"
        with path.open("w", encoding="utf-8") as f:
            json.dump(_to_json_serializable(_summary_dict(result)), f, indent=2)
        written.append(path)

    if "csv" in formats:
        path = output_dir / f"{stem}.csv"
        result.forecast.to_csv(path, index=False, date_format="%Y-%m-%d")
        written.append(path)

    if console is not None:
        for path in written:
            console.print(f"Saved [cyan]{path}[/cyan]")
    return written


def print_summary(result: RegressionResult, console: Console) -> None:
    """Prints the headline metrics and the forecast table."""
    trend, risk = result.trend, result.risk

    summary = Table(title=f"Regression summary: {result.symbol or 'dataset'}")
    summary.add_column("Metric")
    summary.add_column("Value", justify="right")
    summary.add_row("Model", _model_title(result.model_name))
    summary.add_row("R² / Adj. R²", f"{trend.r_squared:.4f} / {trend.adj_r_squared:.4f}")
    summary.add_row("Trend", f"{trend.direction.value} ({trend.strength_pct:.3f}%/day)")
    summary.add_row("Current price", f"{risk.current_price:.2f}")
    summary.add_row(f"{result.horizon_days}-day price", f"{risk.forecast_price:.2f}")
    summary.add_row("Expected return", f"{risk.expected_return_pct:.2f}%")
    summary.add_row("Volatility", f"{risk.volatility_pct:.2f}%")
    summary.add_row("Uncertainty", f"{risk.uncertainty_pct:.2f}%")
    summary.add_row("Risk level", risk.risk_level.value)
    console.print(summary)

    table = Table(title="Forecast")
    for column in ["Date", "Predicted", "Lower", "Upper"]:
        table.add_column(column, justify="right")
    for row in result.forecast.itertuples(index=False):
        table.add_row(
            f"{row.Date:%Y-%m-%d}",
            f"{row.predicted_price:.2f}",
            f"{row.lower_bound:.2f}",
            f"{row.upper_bound:.2f}",
        )
    console.print(table)


def print_levels(levels: Optional[SupportResistance], console: Console) -> None:
    if levels is None:
        console.print("[yellow]Support/resistance unavailable for this series.[/yellow]")
        return
    table = Table(title=f"Support / resistance (last {levels.window} rows)")
    table.add_column("Level")
    table.add_column("Static", justify="right")
    table.add_column("Trend", justify="right")
    table.add_row("Support", f"{levels.static_support:.2f}", f"{levels.trend_support:.2f}")
    table.add_row("Resistance", f"{levels.static_resistance:.2f}", f"{levels.trend_resistance:.2f}")
    console.print(table)
    console.print(f"Current price: {levels.current_price:.2f}")
