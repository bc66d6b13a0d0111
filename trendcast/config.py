"""
Configuration loading and validation for trendcast.

This module uses standard library dataclasses for configuration objects,
with explicit, pure validation functions. Only the CLI reads the
configuration; the analysis functions take plain arguments.
"""

import yaml
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import List, Literal, Dict, Any, Optional, Type, cast

__all__ = ["load_config", "Config"]


# Sections
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class RunConfig:
    name: str
    output_dir: Path


@dataclass(frozen=True)
class DataConfig:
    source: Literal["csv", "yfinance"]
    csv_path: Path
    snapshot_dir: Path
    interval: Literal["1d", "1wk", "1mo"]
    start_date: date
    end_date: date


@dataclass(frozen=True)
class UniverseConfig:
    symbols: List[str]


@dataclass(frozen=True)
class ForecastConfig:
    horizon_days: int
    support_resistance: bool


@dataclass(frozen=True)
class CacheConfig:
    enabled: bool
    ttl_seconds: int


@dataclass(frozen=True)
class ReportingConfig:
    output_formats: List[Literal["markdown", "json", "csv"]]


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    file: Optional[Path] = None


# Root
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class Config:
    """Everything the CLI reads from the YAML file, one attribute per section."""
    run: RunConfig
    data: DataConfig
    universe: UniverseConfig
    forecast: ForecastConfig
    cache: CacheConfig
    reporting: ReportingConfig
    logging: LoggingConfig


# Validation and loading
# --------------------------------------------------------------------------------------

_PATH_TYPES = (Path, Optional[Path])
_SOURCES = ("csv", "yfinance")
_FORMATS = ("markdown", "json", "csv")
_HORIZON_RANGE = (1, 90)


def _from_dict(data_class: Type[Any], data: Any) -> Any:
    """Builds `data_class` from plain YAML data, recursing into nested sections."""
    if isinstance(data, dict):
        fields = data_class.__dataclass_fields__
        # Unknown keys pass through; the dataclass constructor rejects them
        # with a TypeError, which load_config reports.
        return data_class(**{
            key: _from_dict(fields[key].type, value) if key in fields else value
            for key, value in data.items()
        })

    if isinstance(data, str) and data_class is date:
        return date.fromisoformat(data)
    if isinstance(data, str) and data_class in _PATH_TYPES:
        return Path(data)
    return data


def _validate_config(cfg: Dict[str, Any]) -> None:
    """
    Cross-field checks on the raw YAML mapping, run before construction.

    Raises:
        ValueError: on the first inconsistency found.
        KeyError: when a required section or key is absent.
    """
    if not isinstance(cfg, dict):
        raise ValueError("Configuration must be a YAML object.")

    data = cfg["data"]
    if date.fromisoformat(str(data["end_date"])) <= date.fromisoformat(str(data["start_date"])):
        raise ValueError("data.end_date must be after data.start_date")
    if data["source"] not in _SOURCES:
        raise ValueError(f"data.source must be one of {list(_SOURCES)}")

    horizon = cfg["forecast"]["horizon_days"]
    low, high = _HORIZON_RANGE
    if isinstance(horizon, bool) or not isinstance(horizon, int) or not low <= horizon <= high:
        raise ValueError(f"forecast.horizon_days must be an integer between {low} and {high}")

    if cfg["cache"]["ttl_seconds"] <= 0:
        raise ValueError("cache.ttl_seconds must be positive")

    unknown = set(cfg["reporting"]["output_formats"]) - set(_FORMATS)
    if unknown:
        raise ValueError(f"reporting.output_formats has unknown entries: {sorted(unknown)}")


# impure
def load_config(config_path: Path) -> Config:
    """
    Reads, validates and builds the configuration.
    #impure: Reads from the filesystem.

    Raises:
        FileNotFoundError: `config_path` does not exist.
        ValueError: bad YAML, a failed check, or a missing/unknown key.
    """
    if not config_path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        raw_config = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in {config_path}: {e}") from e

    try:
        _validate_config(raw_config)
        # _from_dict is too dynamic for mypy to follow.
        return cast(Config, _from_dict(Config, raw_config))
    except (TypeError, KeyError) as e:
        raise ValueError(f"Configuration validation failed: missing or invalid key. Details: {e}") from e
