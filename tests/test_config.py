"""Tests for configuration loading and validation."""
import copy
from pathlib import Path
from datetime import date
from typing import Dict, Any

import pytest
import yaml

from trendcast.config import Config, load_config, _from_dict, DataConfig

# A complete and valid dictionary that can be used to construct a Config object.
FULL_CONFIG_DICT: Dict[str, Any] = {
    "run": {"name": "test_run", "output_dir": "test_output"},
    "data": {
        "source": "csv", "csv_path": "prices.csv", "snapshot_dir": "test_snapshots",
        "interval": "1d", "start_date": "2023-01-01", "end_date": "2023-12-31",
    },
    "universe": {"symbols": ["TEST.NS"]},
    "forecast": {"horizon_days": 30, "support_resistance": True},
    "cache": {"enabled": False, "ttl_seconds": 3600},
    "reporting": {"output_formats": ["markdown", "json"]},
    "logging": {"level": "INFO", "file": None},
}


def _write(tmp_path: Path, config_dict: Dict[str, Any]) -> Path:
    config_path = tmp_path / "config.yaml"
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(config_dict, f)
    return config_path


@pytest.fixture
def temp_config_file(tmp_path: Path) -> Path:
    """Pytest fixture to create a temporary, valid config file."""
    config_dict = copy.deepcopy(FULL_CONFIG_DICT)
    config_dict["data"]["snapshot_dir"] = str(tmp_path)
    return _write(tmp_path, config_dict)


def test_load_valid_config(temp_config_file: Path, tmp_path: Path) -> None:
    """Test loading a valid configuration file returns a Config object."""
    config = load_config(temp_config_file)
    assert isinstance(config, Config)
    assert config.run.name == "test_run"
    assert config.run.output_dir == Path("test_output")
    assert config.data.snapshot_dir == tmp_path
    assert config.data.start_date == date(2023, 1, 1)
    assert config.forecast.horizon_days == 30
    assert config.reporting.output_formats == ["markdown", "json"]
    assert config.logging.file is None


def test_load_example_config_file() -> None:
    """Test that the shipped example config file is valid."""
    config = load_config(Path(__file__).parent.parent / "config" / "example.yaml")
    assert isinstance(config, Config)
    assert "RELIANCE.NS" in config.universe.symbols


def test_log_file_becomes_path(tmp_path: Path) -> None:
    config_dict = copy.deepcopy(FULL_CONFIG_DICT)
    config_dict["logging"]["file"] = "logs/trendcast.log"

    config = load_config(_write(tmp_path, config_dict))

    assert config.logging.file == Path("logs/trendcast.log")


def test_from_dict_builds_nested_dataclass() -> None:
    data = _from_dict(DataConfig, FULL_CONFIG_DICT["data"])
    assert data.csv_path == Path("prices.csv")
    assert data.end_date == date(2023, 12, 31)


def test_missing_config_file() -> None:
    """Test error handling for missing config file."""
    with pytest.raises(FileNotFoundError):
        load_config(Path("nonexistent.yaml"))


def test_invalid_yaml_syntax(tmp_path: Path) -> None:
    """Test error handling for invalid YAML syntax."""
    config_path = tmp_path / "invalid.yaml"
    config_path.write_text("run: { name: test")
    with pytest.raises(ValueError, match="Invalid YAML syntax"):
        load_config(config_path)


def test_date_validation_fails(tmp_path: Path) -> None:
    """Test that validation fails if end_date is before start_date."""
    invalid_config = copy.deepcopy(FULL_CONFIG_DICT)
    invalid_config["data"]["start_date"] = "2022-01-01"
    invalid_config["data"]["end_date"] = "2021-01-01"

    with pytest.raises(ValueError, match="data.end_date must be after data.start_date"):
        load_config(_write(tmp_path, invalid_config))


@pytest.mark.parametrize("horizon", [0, 91, 2.5])
def test_horizon_validation_fails(tmp_path: Path, horizon) -> None:
    invalid_config = copy.deepcopy(FULL_CONFIG_DICT)
    invalid_config["forecast"]["horizon_days"] = horizon

    with pytest.raises(ValueError, match="forecast.horizon_days"):
        load_config(_write(tmp_path, invalid_config))


def test_unknown_source_fails(tmp_path: Path) -> None:
    invalid_config = copy.deepcopy(FULL_CONFIG_DICT)
    invalid_config["data"]["source"] = "bloomberg"

    with pytest.raises(ValueError, match="data.source"):
        load_config(_write(tmp_path, invalid_config))


def test_non_positive_ttl_fails(tmp_path: Path) -> None:
    invalid_config = copy.deepcopy(FULL_CONFIG_DICT)
    invalid_config["cache"]["ttl_seconds"] = 0

    with pytest.raises(ValueError, match="cache.ttl_seconds"):
        load_config(_write(tmp_path, invalid_config))


def test_unknown_output_format_fails(tmp_path: Path) -> None:
    invalid_config = copy.deepcopy(FULL_CONFIG_DICT)
    invalid_config["reporting"]["output_formats"] = ["markdown", "pdf"]

    with pytest.raises(ValueError, match="pdf"):
        load_config(_write(tmp_path, invalid_config))


def test_missing_section_fails(tmp_path: Path) -> None:
    invalid_config = copy.deepcopy(FULL_CONFIG_DICT)
    del invalid_config["cache"]

    with pytest.raises(ValueError, match="missing or invalid key"):
        load_config(_write(tmp_path, invalid_config))


def test_unknown_key_fails(tmp_path: Path) -> None:
    invalid_config = copy.deepcopy(FULL_CONFIG_DICT)
    invalid_config["forecast"]["confidence"] = 0.9

    with pytest.raises(ValueError, match="missing or invalid key"):
        load_config(_write(tmp_path, invalid_config))
