"""Configuration loader."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ValidationError

from ..errors import ConfigurationError
from .models import ConfigModel, PlanLimits

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "newstrust" / "config.yaml"
CONFIG_PATH_ENV = "NEWSTRUST_CONFIG"


def _with_secret(section: BaseModel, field: str, env_field: str) -> Dict[str, Any]:
    """Dump a config section, taking `field` from the variable named by `env_field`."""
    data = section.model_dump()
    env_name = data.get(env_field)
    if env_name and os.environ.get(env_name):
        data[field] = os.environ[env_name]
    return data


class Config:
    """Configuration manager."""

    def __init__(self, config_path: Optional[Path] = None, allow_missing: bool = False) -> None:
        """
        Initialize config manager.

        Args:
            config_path: YAML file, defaults to $NEWSTRUST_CONFIG or ~/.config/newstrust/config.yaml
            allow_missing: Use built-in defaults when the file does not exist
        """
        if config_path is None:
            config_path = Path(os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH))
        self.config_path = Path(config_path).expanduser()
        self.allow_missing = allow_missing
        self._config: Optional[ConfigModel] = None

    @property
    def config(self) -> ConfigModel:
        """
        Get loaded config.

        Raises:
            ConfigurationError: file missing (unless allowed) or invalid
        """
        if self._config is None:
            if self.allow_missing and not self.config_path.exists():
                self._config = ConfigModel()
            else:
                try:
                    self._config = load_config(self.config_path)
                except (FileNotFoundError, ValueError) as e:
                    raise ConfigurationError(f"{e}. Run 'newstrust init' first.", e)
        return self._config

    def get_db_config(self) -> Dict[str, Any]:
        """Postgres settings with the password resolved."""
        return _with_secret(self.config.postgres, "password", "password_env")

    def get_llm_config(self) -> Dict[str, Any]:
        """LLM settings with the API key resolved."""
        return _with_secret(self.config.llm, "api_key", "api_key_env")

    def get_plan_limits(self) -> PlanLimits:
        """Quota table for the QuotaGuard."""
        return self.config.plan_limits


def load_config(config_path: Path) -> ConfigModel:
    """Load configuration from YAML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}
        return ConfigModel(**config_data)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}")
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}")


def save_config(config: ConfigModel, config_path: Path) -> None:
    """Save configuration to YAML file."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)
