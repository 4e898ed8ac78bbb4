"""Configuration management with YAML and environment variable support."""

import copy
import os
from typing import Any, Callable

import yaml

from ensis_gateway.logging_config import get_logger
from ensis_gateway.validators import is_valid_address, is_valid_rpc_url

logger = get_logger(__name__)


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value


class ConfigManager:
    """Configuration manager for the Ensis gateway."""

    DEFAULT_CONFIG: dict[str, Any] = {
        "ensis": {"contract_address": None, "abi_url": None, "abi_cache_ttl": 0},
        "rpc": {"url": None, "timeout": 15},
        "signer": {
            "private_key": None,
            "encrypted": False,
            "password": None,
            "salt": None,
        },
        "transaction": {"receipt_timeout": 120},
        "deploy": {
            "initial_price": 1_000_000_000,
            "contract_name": "Lock",
            "artifact": None,
        },
        "logging": {
            "level": "INFO",
            "file": None,
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
    }

    ENV_MAPPINGS: dict[str, tuple[str, str, Callable[[str], Any]]] = {
        "ENSIS_CONTRACT_ADDRESS": ("ensis", "contract_address", str),
        "ENSIS_ABI_URL": ("ensis", "abi_url", str),
        "ENSIS_ABI_CACHE_TTL": ("ensis", "abi_cache_ttl", int),
        "RPC_URL": ("rpc", "url", str),
        "ENSIS_RPC_TIMEOUT": ("rpc", "timeout", int),
        "PRIVATE_KEY": ("signer", "private_key", str),
        "ENSIS_PRIVATE_KEY_ENCRYPTED": ("signer", "encrypted", _to_bool),
        "ENSIS_KEY_PASSWORD": ("signer", "password", str),
        "ENSIS_KEY_SALT": ("signer", "salt", str),
        "ENSIS_RECEIPT_TIMEOUT": ("transaction", "receipt_timeout", int),
        "ENSIS_INITIAL_PRICE": ("deploy", "initial_price", int),
        "ENSIS_LOG_LEVEL": ("logging", "level", str),
        "ENSIS_LOG_FILE": ("logging", "file", str),
    }

    def __init__(self, config_path: str | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to config file (uses default or env var).
        """
        self.config_path: str = config_path or os.getenv(  # type: ignore[assignment]
            "ENSIS_CONFIG_PATH", "ensis_config.yaml"
        )
        self.config: dict[str, Any] = copy.deepcopy(self.DEFAULT_CONFIG)

    def load(self) -> None:
        """Load configuration from YAML file, then apply env overrides."""
        if os.path.exists(self.config_path):
            try:
                with open(self.config_path) as f:
                    loaded_config = yaml.safe_load(f)

                if isinstance(loaded_config, dict):
                    _merge(self.config, loaded_config)
                elif loaded_config is not None:
                    logger.warning(
                        f"Ignoring config file {self.config_path}: top level is not a mapping"
                    )
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load config: {e}")
        else:
            logger.debug("Config file not found, using defaults")

        self._apply_env_overrides()

    def save(self) -> None:
        """Save configuration to YAML file."""
        try:
            with open(self.config_path, "w") as f:
                yaml.dump(self.config, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            logger.error(f"Failed to save config: {e}")

    def get(self, *keys: str) -> Any:
        """Get configuration value using dot notation.

        Args:
            *keys: Nested keys (e.g., "rpc", "timeout").

        Returns:
            Configuration value or None if not found.
        """
        value: Any = self.config
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return None
        return value

    def set(self, *keys: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            *keys: Nested keys (e.g., "rpc", "timeout").
            value: Value to set.
        """
        config = self.config
        for key in keys[:-1]:
            if key not in config:
                config[key] = {}
            config = config[key]

        config[keys[-1]] = value

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides listed in ENV_MAPPINGS.

        ENSIS_CONFIG_PATH is handled in __init__.
        """
        for env_var, (section, key, type_converter) in self.ENV_MAPPINGS.items():
            value = os.getenv(env_var)
            if value is None or value == "":
                continue
            try:
                converted_value = type_converter(value)
            except ValueError:
                logger.warning(f"Ignoring {env_var}: cannot convert {value!r}")
                continue
            self.set(section, key, value=converted_value)

    def validate(self) -> list[str]:
        """Validate the settings every request depends on.

        Returns:
            List of validation errors (empty if valid).
        """
        errors = []

        contract_address = self.get("ensis", "contract_address")
        if not contract_address:
            errors.append("ensis.contract_address is required (ENSIS_CONTRACT_ADDRESS)")
        elif not is_valid_address(contract_address):
            errors.append("ensis.contract_address is not a valid address")

        rpc_url = self.get("rpc", "url")
        if not rpc_url:
            errors.append("rpc.url is required (RPC_URL)")
        elif not is_valid_rpc_url(rpc_url):
            errors.append("rpc.url must start with http:// or https://")

        rpc_timeout = self.get("rpc", "timeout")
        if not isinstance(rpc_timeout, int) or rpc_timeout <= 0:
            errors.append("rpc.timeout must be a positive integer")

        receipt_timeout = self.get("transaction", "receipt_timeout")
        if not isinstance(receipt_timeout, int) or receipt_timeout <= 0:
            errors.append("transaction.receipt_timeout must be a positive integer")

        cache_ttl = self.get("ensis", "abi_cache_ttl")
        if not isinstance(cache_ttl, int) or cache_ttl < 0:
            errors.append("ensis.abi_cache_ttl must be a non-negative integer")

        return errors


# Global config manager instance
_config_manager: ConfigManager | None = None


def get_config_manager() -> ConfigManager:
    """Get global config manager instance.

    Returns:
        ConfigManager instance.
    """
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
        _config_manager.load()
    return _config_manager


def reset_config_manager() -> None:
    """Drop the global instance so the next call re-reads file and env."""
    global _config_manager
    _config_manager = None
