"""
CLI entry point for the trendcast application.
"""
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from trendcast.cache import ResultCache, make_key
from trendcast.config import Config, LoggingConfig, load_config
from trendcast.data import discover_symbols, fetch_and_snapshot, load_prices
from trendcast.errors import TrendcastError
from trendcast.levels import compute_levels
from trendcast.pipeline import analyze
from trendcast.reporting import export_report, print_levels, print_summary

# Console is created once and passed down.
# Log to stderr to separate from potential data output to stdout.
app = typer.Typer(pretty_exceptions_show_locals=False, help="Regression forecasting for NIFTY-50 equities.")
console = Console(stderr=True)

# Shared by commands invoked in the same process; keyed by symbol and horizon.
_result_cache: Optional[ResultCache] = None


def _get_cache(ttl_seconds: int) -> ResultCache:
    global _result_cache
    if _result_cache is None or _result_cache.ttl_seconds != ttl_seconds:
        _result_cache = ResultCache(ttl_seconds=ttl_seconds)
    return _result_cache


def _load_config_or_exit(config_path: Path) -> Config:
    """Helper to load config and exit on failure."""
    try:
        return load_config(config_path)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]Configuration Error:[/bold red] {e}")
        raise typer.Exit(code=1)


def _setup_logging(cfg: LoggingConfig) -> None:
    """Routes log records to the console, and to a file when configured."""
    handlers: list = [RichHandler(console=console, show_path=False)]
    if cfg.file is not None:
        cfg.file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(cfg.file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        handlers.append(file_handler)
    logging.basicConfig(level=cfg.level.upper(), format="%(message)s", handlers=handlers, force=True)


@app.command(name="analyze")
def analyze_command(
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    symbol: str = typer.Option(..., "--symbol", "-s", help="Ticker to analyze."),
    horizon: Optional[int] = typer.Option(
        None, "--horizon", "-n", min=1, max=90, help="Forecast days (defaults to the config value)."
    ),
    export: bool = typer.Option(True, "--export/--no-export", help="Write report files."),
):
    """Fit the regression models for a symbol and forecast its price."""
    config = _load_config_or_exit(config_path)
    _setup_logging(config.logging)
    horizon_days = horizon or config.forecast.horizon_days

    try:
        console.rule(f"[bold]Regression analysis: {symbol}[/bold]")
        prices = load_prices(symbol, config)

        if config.cache.enabled:
            result = _get_cache(config.cache.ttl_seconds).get_or_compute(
                make_key(symbol, horizon_days), lambda: analyze(prices, symbol, horizon_days)
            )
        else:
            result = analyze(prices, symbol, horizon_days)

        print_summary(result, console)
        if config.forecast.support_resistance:
            print_levels(compute_levels(prices), console)

        if export:
            export_report(result, config.run.output_dir, config.reporting.output_formats, console)

    except (TrendcastError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Analysis failed:[/bold red] {e}")
        raise typer.Exit(code=1)

    console.print("[bold green]Analysis finished.[/bold green]")


@app.command()
def levels(
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    symbol: str = typer.Option(..., "--symbol", "-s", help="Ticker to analyze."),
):
    """Show support and resistance levels for a symbol."""
    config = _load_config_or_exit(config_path)
    _setup_logging(config.logging)
    try:
        prices = load_prices(symbol, config)
    except (TrendcastError, FileNotFoundError) as e:
        console.print(f"[bold red]Could not load prices:[/bold red] {e}")
        raise typer.Exit(code=1)
    print_levels(compute_levels(prices), console)


@app.command(name="refresh-data")
def refresh_data(
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
):
    """
    Refresh data snapshots from yfinance.
    """
    config = _load_config_or_exit(config_path)
    console.print("Starting data refresh...")

    symbols_to_refresh = discover_symbols(config)
    if not symbols_to_refresh:
        symbols_to_refresh = config.universe.symbols
        if symbols_to_refresh:
            console.print("No existing snapshots found. Performing initial download for symbols in config.")
        else:
            console.print("[yellow]Warning: No symbols to refresh.[/yellow]")
            console.print("No snapshots found and 'universe.symbols' is empty.")
            raise typer.Exit()
    else:
        console.print(f"Found {len(symbols_to_refresh)} existing symbols. Refreshing them.")

    failed_symbols = fetch_and_snapshot(symbols_to_refresh, config)

    if failed_symbols:
        console.print(f"[bold yellow]Warning:[/bold yellow] Failed to fetch data for {len(failed_symbols)} symbols:")
        for symbol in sorted(failed_symbols):
            console.print(f" - {symbol}")

    console.print("[bold green]Data refresh completed.[/bold green]")


if __name__ == "__main__":
    app()
