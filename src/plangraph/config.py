"""
Configuration system for plangraph.

Two groups of settings:
- ParserConfig: resource limits and numeric strictness for plan parsing.
  These limits prevent pathological inputs from causing OOM crashes or
  stack overflows.
- LayoutConfig: fixed geometry used by the tree layout.

Environment variables are the primary config source, with an optional
JSON config file for local development.

Usage:
    from plangraph.config import get_config

    config = get_config()
    config.parser.max_nodes
    config.layout.row_height

Environment variables:
    PLANGRAPH_CONFIG_FILE=plangraph.json
    PLANGRAPH_MAX_INPUT_SIZE_MB=10
    PLANGRAPH_MAX_NODES=50000
    PLANGRAPH_MAX_DEPTH=256
    PLANGRAPH_STRICT_NUMBERS=false
    PLANGRAPH_NODE_WIDTH=280
    PLANGRAPH_NODE_HEIGHT=120
    PLANGRAPH_HORIZONTAL_GAP=60
    PLANGRAPH_VERTICAL_GAP=80
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from plangraph.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ParserConfig(BaseModel):
    """
    Configuration for the EXPLAIN parser with resource limits.

    Attributes:
        max_input_size_mb: Maximum size of the input text. Prevents loading
            multi-GB pastes into memory.
        max_nodes: Maximum number of graph nodes a single parse may emit.
        max_depth: Maximum JSON object nesting. Prevents stack overflow
            during recursive validation and parsing.
        strict_numbers: Raise CorruptFieldError on a non-numeric cost or
            row value instead of degrading it to zero.

    Example:
        # Stricter limits for a web API
        config = ParserConfig(max_input_size_mb=1, max_nodes=1000)
    """

    model_config = ConfigDict(frozen=True)

    max_input_size_mb: float = Field(
        default=10.0,
        gt=0,
        description="Maximum input size in megabytes",
    )

    max_nodes: int = Field(
        default=50_000,
        gt=0,
        description="Maximum number of graph nodes",
    )

    max_depth: int = Field(
        default=256,
        gt=0,
        description="Maximum JSON object nesting level",
    )

    strict_numbers: bool = Field(
        default=False,
        description="Raise on non-numeric cost/row fields instead of zeroing them",
    )


class LayoutConfig(BaseModel):
    """Fixed geometry for the tidy tree layout, in pixels."""

    model_config = ConfigDict(frozen=True)

    node_width: float = Field(default=280.0, gt=0, description="Width of one node box")
    node_height: float = Field(default=120.0, gt=0, description="Height of one node box")
    horizontal_gap: float = Field(default=60.0, ge=0, description="Gap between sibling subtrees")
    vertical_gap: float = Field(default=80.0, ge=0, description="Gap between rows")

    @property
    def row_height(self) -> float:
        """Vertical distance covered by one edge hop."""
        return self.node_height + self.vertical_gap


class Config(BaseModel):
    """plangraph configuration."""

    model_config = ConfigDict(frozen=True)

    parser: ParserConfig = Field(default_factory=ParserConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)


# Sensible defaults for different use cases
DEFAULT_CONFIG = ParserConfig()

# Stricter limits for web API / untrusted input
STRICT_CONFIG = ParserConfig(
    max_input_size_mb=1.0,
    max_nodes=5_000,
    max_depth=64,
    strict_numbers=True,
)

DEFAULT_LAYOUT = LayoutConfig()


def _parse_env_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_env_int(value: str | None, default: int) -> int:
    """Parse integer from environment variable."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Could not parse integer setting %r, using %s", value, default)
        return default


def _parse_env_float(value: str | None, default: float) -> float:
    """Parse float from environment variable."""
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Could not parse numeric setting %r, using %s", value, default)
        return default


def load_config_from_env() -> Config:
    """Load configuration from PLANGRAPH_* environment variables."""
    env = os.environ
    parser_kwargs: dict[str, Any] = {
        "max_input_size_mb": _parse_env_float(
            env.get("PLANGRAPH_MAX_INPUT_SIZE_MB"), DEFAULT_CONFIG.max_input_size_mb
        ),
        "max_nodes": _parse_env_int(env.get("PLANGRAPH_MAX_NODES"), DEFAULT_CONFIG.max_nodes),
        "max_depth": _parse_env_int(env.get("PLANGRAPH_MAX_DEPTH"), DEFAULT_CONFIG.max_depth),
        "strict_numbers": _parse_env_bool(env.get("PLANGRAPH_STRICT_NUMBERS"), False),
    }
    layout_kwargs: dict[str, Any] = {
        "node_width": _parse_env_float(env.get("PLANGRAPH_NODE_WIDTH"), DEFAULT_LAYOUT.node_width),
        "node_height": _parse_env_float(env.get("PLANGRAPH_NODE_HEIGHT"), DEFAULT_LAYOUT.node_height),
        "horizontal_gap": _parse_env_float(
            env.get("PLANGRAPH_HORIZONTAL_GAP"), DEFAULT_LAYOUT.horizontal_gap
        ),
        "vertical_gap": _parse_env_float(
            env.get("PLANGRAPH_VERTICAL_GAP"), DEFAULT_LAYOUT.vertical_gap
        ),
    }

    try:
        return Config(
            parser=ParserConfig(**parser_kwargs),
            layout=LayoutConfig(**layout_kwargs),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid environment configuration: {e}") from e


def load_config_from_file(path: Path) -> Config:
    """
    Load configuration from a JSON file.

    Falls back to environment variables when the file does not exist.
    A file that exists but is unreadable or invalid is a ConfigurationError.
    """
    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Cannot read config file {path}: {e}",
            config_key="PLANGRAPH_CONFIG_FILE",
        ) from e

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid config file {path}: {e}",
            config_key="PLANGRAPH_CONFIG_FILE",
        ) from e


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the global configuration instance.

    Loads from:
    1. PLANGRAPH_CONFIG_FILE environment variable (if set)
    2. Environment variables (default)

    Result is cached for the lifetime of the process.
    """
    config_file = os.environ.get("PLANGRAPH_CONFIG_FILE")

    if config_file:
        return load_config_from_file(Path(config_file))

    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()
