"""
Utility functions for the OBE attainment engine

Configuration loading and logging setup shared by the export scripts.
"""

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "attainment.yaml"


@dataclass(frozen=True)
class ReportSettings:
    """Report generation options read from config/attainment.yaml."""
    max_workers: int = 1
    action_plan_limit: int = 10
    trend_limit: int = 5
    export_dir: str = "data/reports"
    log_level: str = "INFO"


def get_project_root() -> Path:
    """
    Get the project root directory

    Returns:
        Path to project root
    """
    # Assumes this file is in infrastructure/utilities/
    return Path(__file__).parent.parent.parent


def load_yaml_config(config_path: Union[str, Path]) -> dict:
    """
    Load a YAML configuration file

    Args:
        config_path: Path to YAML file

    Returns:
        Dictionary from YAML file

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If file is not valid YAML
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, 'r') as f:
        try:
            config = yaml.safe_load(f)
            return config if config else {}
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Error parsing YAML: {e}")


def load_report_settings(config_path: Optional[Union[str, Path]] = None) -> ReportSettings:
    """
    Load report settings, falling back to defaults

    Args:
        config_path: YAML file to read (default: config/attainment.yaml
            under the project root)

    Returns:
        ReportSettings; unknown keys are ignored, a missing file yields
        the defaults

    Raises:
        ValueError: If a numeric setting is out of range
    """
    path = Path(config_path) if config_path else get_project_root() / DEFAULT_CONFIG_PATH

    try:
        raw = load_yaml_config(path)
    except FileNotFoundError:
        logger.warning(f"Config file not found: {path}, using defaults")
        return ReportSettings()

    section = raw.get("reports", raw) or {}
    known = {f.name for f in fields(ReportSettings)}
    ignored = sorted(set(section) - known)
    if ignored:
        logger.warning(f"Ignoring unknown report settings: {', '.join(ignored)}")

    settings = ReportSettings(**{k: v for k, v in section.items() if k in known})

    if settings.max_workers < 1:
        raise ValueError(f"max_workers must be at least 1, got {settings.max_workers}")
    if settings.action_plan_limit < 0 or settings.trend_limit < 0:
        raise ValueError("action_plan_limit and trend_limit cannot be negative")

    return settings


def setup_logging(
    log_level: str = 'INFO',
    log_file: Optional[Path] = None
) -> logging.Logger:
    """
    Set up logging configuration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file to write logs to

    Returns:
        Configured logger
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    return root_logger
