"""
Configuration system for fsprocessor.

Implements 12-factor config principles:
- Environment variables as primary config source
- Optional JSON or YAML config file for local development
- Per-kind processor toggles

Usage:
    from fsprocessor.config import get_config

    config = get_config()

    if config.is_kind_enabled("fs.readFile"):
        ...

Explicit keyword arguments passed to ``process()`` always win over
values loaded here.
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fsprocessor.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "FSPROCESSOR_"


class ProcessorToggle(BaseModel):
    """Configuration for a single processor kind."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Whether the processor runs")


class Config(BaseModel):
    """
    fsprocessor configuration.

    Loaded from environment variables and an optional config file.
    """

    model_config = ConfigDict(frozen=True)

    # Output shaping
    include_activities: bool = Field(
        default=False,
        description="Attach the raw activity record to each step",
    )
    separate_functions: bool = Field(
        default=True,
        description="Move step user functions into the operation's userFunctions",
    )
    merge_functions: bool = Field(
        default=True,
        description="Merge user functions sharing a location (needs separate_functions)",
    )

    # Classification
    signatures: str = Field(
        default="node-8",
        description="Name of the call-site signature table to classify with",
    )

    # Failure handling
    fail_fast: bool = Field(
        default=False,
        description="Raise ProcessorError instead of recording a FAIL run",
    )

    # Per-kind toggles, keyed by kind name (e.g. "fs.readFile")
    processors: dict[str, ProcessorToggle] = Field(
        default_factory=dict,
        description="Per-kind processor configuration",
    )

    # Observability
    tracing_enabled: bool = Field(
        default=False,
        description="Record an in-process span tree per process() call",
    )
    metrics_enabled: bool = Field(
        default=True,
        description="Enable metrics collection",
    )

    def is_kind_enabled(self, kind: str) -> bool:
        """Check if a processor kind is enabled."""
        if kind in self.processors:
            return self.processors[kind].enabled
        return True


def _parse_env_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _env_kind_name(raw: str) -> str:
    """
    Map an environment key segment to a kind name.

    READFILE -> fs.readFile, CREATEWRITESTREAM -> fs.createWriteStream.
    Unknown segments are returned lower-cased.
    """
    from fsprocessor.processors.registry import get_registry

    wanted = raw.replace("_", "").replace(".", "").lower()
    for kind in get_registry().all_kinds():
        if kind.replace(".", "").lower() in (wanted, "fs" + wanted):
            return kind
    return raw.lower()


def load_config_from_env() -> Config:
    """
    Load configuration from environment variables.

    Environment variable naming convention:
    - FSPROCESSOR_<SETTING> for global settings
    - FSPROCESSOR_PROCESSOR_<KIND>_ENABLED for per-kind toggles

    Examples:
    - FSPROCESSOR_INCLUDE_ACTIVITIES=true
    - FSPROCESSOR_MERGE_FUNCTIONS=false
    - FSPROCESSOR_PROCESSOR_WRITEFILE_ENABLED=false
    """
    config_kwargs: dict[str, Any] = {
        "include_activities": _parse_env_bool(
            os.environ.get("FSPROCESSOR_INCLUDE_ACTIVITIES"), False
        ),
        "separate_functions": _parse_env_bool(
            os.environ.get("FSPROCESSOR_SEPARATE_FUNCTIONS"), True
        ),
        "merge_functions": _parse_env_bool(
            os.environ.get("FSPROCESSOR_MERGE_FUNCTIONS"), True
        ),
        "signatures": os.environ.get("FSPROCESSOR_SIGNATURES", "node-8"),
        "fail_fast": _parse_env_bool(
            os.environ.get("FSPROCESSOR_FAIL_FAST"), False
        ),
        "tracing_enabled": _parse_env_bool(
            os.environ.get("FSPROCESSOR_TRACING_ENABLED"), False
        ),
        "metrics_enabled": _parse_env_bool(
            os.environ.get("FSPROCESSOR_METRICS_ENABLED"), True
        ),
    }

    processors: dict[str, ProcessorToggle] = {}
    processor_prefix = f"{ENV_PREFIX}PROCESSOR_"

    for key, value in os.environ.items():
        if not key.startswith(processor_prefix):
            continue
        rest = key[len(processor_prefix):]
        raw_kind, _, setting = rest.rpartition("_")
        if not raw_kind:
            continue
        if setting.lower() != "enabled":
            logger.warning("Unknown processor setting %s=%s", key, value)
            continue
        processors[_env_kind_name(raw_kind)] = ProcessorToggle(
            enabled=_parse_env_bool(value, True)
        )

    config_kwargs["processors"] = processors

    return Config(**config_kwargs)


def load_config_from_file(path: Path) -> Config:
    """
    Load configuration from a JSON or YAML file.

    Falls back to environment variables when the file does not exist.

    Raises:
        ConfigurationError: If the file exists but is not valid configuration.
    """
    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Cannot read config file {path}: {e}",
            config_key="FSPROCESSOR_CONFIG_FILE",
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} must contain a mapping",
            config_key="FSPROCESSOR_CONFIG_FILE",
        )

    try:
        return Config(**data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration in {path}: {e.error_count()} error(s)",
            config_key="FSPROCESSOR_CONFIG_FILE",
        ) from e


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the global configuration instance.

    Loads from:
    1. FSPROCESSOR_CONFIG_FILE environment variable (if set)
    2. Environment variables (default)

    Result is cached for the lifetime of the process.
    """
    config_file = os.environ.get("FSPROCESSOR_CONFIG_FILE")

    if config_file:
        return load_config_from_file(Path(config_file))

    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()
