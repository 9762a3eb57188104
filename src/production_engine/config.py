"""Configuration management for Production Engine.

Provides a simple, environment-aware configuration system backed by
an optional YAML file.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import yaml

# Store write limits documented by the document-store collaborator
MIN_BATCH_SIZE = 50
MAX_BATCH_SIZE = 100


@dataclass(frozen=True)
class ImportConfig:
    """Import pipeline configuration."""

    batch_size: int = 100
    default_user_id: str = "system"

    def __post_init__(self) -> None:
        """Validate parameters."""
        if not MIN_BATCH_SIZE <= self.batch_size <= MAX_BATCH_SIZE:
            raise ValueError(
                f"batch_size must be between {MIN_BATCH_SIZE} and {MAX_BATCH_SIZE}, "
                f"got {self.batch_size}"
            )


@dataclass(frozen=True)
class AnalyticsConfig:
    """Derived-metrics configuration."""

    boe_gas_divisor: float = 6.0  # 6 Mcf ~ 1 BOE
    pickup_threshold_bbl: float = 130.0


@dataclass(frozen=True)
class StorageConfig:
    """Storage layer configuration."""

    backend: Literal["memory", "sql"] = "memory"
    url: str = "sqlite:///production_engine.db"
    table: str = "records"


@dataclass(frozen=True)
class Config:
    """Main configuration container."""

    environment: Literal["dev", "staging", "prod"] = "dev"
    imports: ImportConfig = field(default_factory=ImportConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    The file may contain ``imports``, ``analytics`` and ``storage``
    sections; unknown keys are ignored and a missing file yields defaults.

    Args:
        config_path: Path to config.yaml (default: ./config.yaml)

    Returns:
        Config instance

    Example:
        >>> config = load_config("config.yaml")
        >>> config.imports.batch_size
        100
    """
    path = Path(config_path) if config_path is not None else Path("config.yaml")
    if not path.exists():
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    def section(name: str, cls: type) -> object:
        values = data.get(name) or {}
        known = {k: v for k, v in values.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    return Config(
        environment=data.get("environment", "dev"),
        imports=section("imports", ImportConfig),
        analytics=section("analytics", AnalyticsConfig),
        storage=section("storage", StorageConfig),
    )


def get_config() -> Config:
    """Get the default configuration."""
    return Config()
