"""Configuration management."""

from .loader import DEFAULT_CONFIG_PATH, Config, load_config, save_config
from .models import (
    BatchConfig,
    CalibrationConfig,
    ConfigModel,
    FetcherConfig,
    LLMConfig,
    PlanLimits,
    PlanQuota,
    PostgresConfig,
)

__all__ = [
    "BatchConfig",
    "CalibrationConfig",
    "Config",
    "ConfigModel",
    "DEFAULT_CONFIG_PATH",
    "FetcherConfig",
    "LLMConfig",
    "PlanLimits",
    "PlanQuota",
    "PostgresConfig",
    "load_config",
    "save_config",
]
