"""Configuration loader for the catalog sync system.

``config/default.yaml`` holds the full configuration. When ``APP_ENV`` names
another environment and ``config/<APP_ENV>.yaml`` exists, that file is read
as an overlay: its mappings are merged key by key over the defaults, so it
only needs the settings that differ.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import ValidationError

from catalog_sync.errors import CatalogSyncError
from catalog_sync.models.config import AppConfig

log = structlog.stdlib.get_logger()

DEFAULT_CONFIG_DIR = Path(__file__).parent.parent.parent / "config"

# ${NAME} or ${NAME:-fallback}
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


class ConfigurationError(CatalogSyncError):
    """Raised when configuration is invalid or missing."""


def merge_config(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``overlay`` over a copy of ``base``; nested mappings merge, other values replace."""
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Loads and validates application configuration from YAML files and environment variables."""

    def __init__(self, config_dir: Path | str = DEFAULT_CONFIG_DIR) -> None:
        self.config_dir = Path(config_dir)

    def load_config(self, config_path: Optional[str] = None) -> AppConfig:
        """Load configuration, resolving ``${VAR}`` references from the environment.

        Args:
            config_path: Explicit YAML file to load as is. If None, loads
                default.yaml from the config directory with the APP_ENV overlay

        Returns:
            AppConfig: Validated application configuration

        Raises:
            ConfigurationError: If a file is missing, unparsable or invalid, or
                a referenced environment variable is unset
        """
        if config_path is not None:
            log.info("loading_configuration", config_path=config_path)
            config_dict = self._load_yaml_file(config_path)
        else:
            config_dict = self._load_layered()

        config_dict = self._substitute_env_vars(config_dict)

        try:
            app_config = AppConfig(**config_dict)
        except ValidationError as e:
            log.error("configuration_validation_failed", error=str(e))
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        log.info(
            "configuration_loaded",
            accounts=sorted(app_config.shopify.accounts),
            render_descriptions=app_config.sync.render_descriptions,
        )
        return app_config

    def _load_layered(self) -> Dict[str, Any]:
        default_file = self.config_dir / "default.yaml"
        if not default_file.exists():
            raise ConfigurationError(
                f"Configuration file not found: {default_file}. "
                f"Please create config/default.yaml or pass an explicit path."
            )

        log.info("loading_configuration", config_path=str(default_file))
        config_dict = self._load_yaml_file(str(default_file))

        env = os.getenv("APP_ENV", "default")
        overlay_file = self.config_dir / f"{env}.yaml"
        if env != "default" and overlay_file.exists():
            log.info("applying_configuration_overlay", app_env=env, config_path=str(overlay_file))
            config_dict = merge_config(config_dict, self._load_yaml_file(str(overlay_file)))
        elif env != "default":
            log.warning("configuration_overlay_missing", app_env=env)

        return config_dict

    def _load_yaml_file(self, config_path: str) -> Dict[str, Any]:
        """Load one YAML mapping.

        Raises:
            ConfigurationError: If file cannot be read or parsed
        """
        try:
            with open(config_path, "r") as f:
                config_dict = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML file {config_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration file {config_path}: {e}")

        if config_dict is None:
            raise ConfigurationError(f"Configuration file is empty: {config_path}")
        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")
        return config_dict

    def _substitute_env_vars(self, config: Any) -> Any:
        if isinstance(config, dict):
            return {key: self._substitute_env_vars(value) for key, value in config.items()}
        if isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        if isinstance(config, str):
            return ENV_VAR_PATTERN.sub(self._resolve_env_var, config)
        return config

    @staticmethod
    def _resolve_env_var(match: re.Match) -> str:
        var_name, fallback = match.group(1), match.group(2)
        value = os.getenv(var_name)
        if value is not None:
            return value
        if fallback is not None:
            return fallback
        raise ConfigurationError(
            f"Required environment variable not set: {var_name}. "
            f"Please set {var_name} in your environment or .env file."
        )

    def validate_config(self, config: AppConfig) -> list[str]:
        """Return warnings for settings that are legal but probably not intended.

        Args:
            config: Application configuration to validate

        Returns:
            List of warning messages (empty if no warnings)
        """
        warnings = []

        if not config.shopify.accounts:
            warnings.append(
                "shopify.accounts is empty; every sync run will fail with a missing credential"
            )

        for account_id, account in config.shopify.accounts.items():
            if not account.shop_domain.endswith(".myshopify.com"):
                warnings.append(
                    f"shopify.accounts.{account_id}.shop_domain '{account.shop_domain}' "
                    f"is not a .myshopify.com domain"
                )

        if config.sync.retry_base_delay > config.sync.retry_max_delay:
            warnings.append(
                f"sync.retry_base_delay ({config.sync.retry_base_delay}) is greater than "
                f"sync.retry_max_delay ({config.sync.retry_max_delay})"
            )

        if not config.sync.render_descriptions:
            warnings.append(
                "sync.render_descriptions is disabled; description drift will not be detected"
            )

        if warnings:
            log.warning("configuration_validation_warnings", warnings=warnings)

        return warnings
