"""Configuration loading for the trade ingestion pipeline.

Configuration is read from a single YAML file (config/config.yaml by
default) into an IngestConfig dataclass that is passed explicitly to the
topic provisioner, the publisher and the pipeline.

Usage:
    >>> from config import load_config
    >>> config = load_config()
    >>> config.brokers
    ['localhost:19092']

Custom config path and overrides:
    >>> from pathlib import Path
    >>> config = load_config(
    ...     config_path=Path("/custom/path/config.yaml"),
    ...     overrides={"source": {"path": "replay.csv"}},
    ... )
"""

from config.config import (
    DEFAULT_CONFIG_FILE,
    IngestConfig,
    load_config,
    load_yaml,
    parse_brokers,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "IngestConfig",
    "load_config",
    "load_yaml",
    "parse_brokers",
]
