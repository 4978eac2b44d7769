"""Configuration loading and Pydantic models for the APT S3 method.

Region and role come from APT itself (``Config-Item`` fields). This file
only covers how the process runs: logging and transfer tuning.
"""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field


class LoggingConfig(BaseModel):
    """Diagnostic logging configuration (always written to stderr)."""

    level: str = "WARNING"
    format: Literal["text", "json"] = "text"


class TransferConfig(BaseModel):
    """Download tuning."""

    chunk_size: int = Field(default=64 * 1024, gt=0)


class MethodConfig(BaseModel):
    """Top-level APT S3 method configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    transfer: TransferConfig = Field(default_factory=TransferConfig)


def _parse_logging(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the logging section from YAML data into a dict for Pydantic."""
    if data is None:
        return {}
    return {
        "level": data.get("level", "WARNING"),
        "format": data.get("format", "text"),
    }


def _parse_transfer(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the transfer section from YAML data."""
    if data is None:
        return {}
    return {"chunk_size": data.get("chunk_size", 64 * 1024)}


def load_config(path: Path) -> MethodConfig:
    """Load a MethodConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated MethodConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        pydantic.ValidationError: If a value has the wrong type or range.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    return MethodConfig(
        logging=LoggingConfig(**_parse_logging(raw.get("logging"))),
        transfer=TransferConfig(**_parse_transfer(raw.get("transfer"))),
    )
