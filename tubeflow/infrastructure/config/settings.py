"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.tubeflow/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from tubeflow.domain.models.request import ExecutorConfig

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".tubeflow"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "TUBEFLOW_"
DEFAULT_API_BASE_URL = "http://localhost:5001"

# config key -> ExecutorConfig field
EXECUTOR_CONFIG_KEYS = {
    "http.timeout_ms": "timeout_ms",
    "http.max_retries": "max_retries",
    "http.initial_retry_delay_ms": "initial_retry_delay_ms",
    "http.retry_backoff_multiplier": "retry_backoff_multiplier",
    "http.notify_on_error": "notify_on_error",
}

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None, force: bool = False) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
        else:
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a mapping.")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file (override=False: real environment variables take precedence)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above current directory.")

    _loaded = True


def _coerce(value: str) -> Any:
    """Converts environment strings to bool/int/float where they look like one."""
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return value


def _lookup_nested(config: Dict[str, Any], key: str) -> Any:
    if key in config:
        return config[key]
    node: Any = config
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def get_config(key: str, default: Any = None) -> Any:
    """Get a configuration value by key.

    Priority:
    1. Test configuration (if set)
    2. Environment variable (`TUBEFLOW_<KEY>` then `<KEY>`, dots become underscores)
    3. YAML config (dotted keys address nested mappings)
    4. Default value

    Args:
        key: The configuration key, e.g. 'http.timeout_ms'.
        default: Default value if the key is not found.

    Returns:
        The configuration value.
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper().replace(".", "_")
    for candidate in (ENV_PREFIX + env_key, env_key):
        if candidate in os.environ:
            return _coerce(os.environ[candidate])

    value = _lookup_nested(_config, key)
    if value is not None:
        return value

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def get_api_base_url() -> str:
    """Base URL of the workflow backend, without trailing slash."""
    url = get_config("API_URL") or get_config("api.base_url", DEFAULT_API_BASE_URL)
    return str(url).rstrip("/")


def get_api_url(endpoint: str) -> str:
    """Joins an endpoint path onto the base URL without doubling slashes."""
    clean_endpoint = endpoint[1:] if endpoint.startswith("/") else endpoint
    return f"{get_api_base_url()}/{clean_endpoint}"


def get_api_token() -> Optional[str]:
    token = get_config("API_TOKEN") or get_config("api.token")
    return str(token) if token else None


def get_executor_config(**overrides: Any) -> ExecutorConfig:
    """Builds an ExecutorConfig from configuration, then applies non-None overrides."""
    values = {}
    for key, field_name in EXECUTOR_CONFIG_KEYS.items():
        value = get_config(key)
        if value is not None:
            values[field_name] = value
    values.update({name: value for name, value in overrides.items() if value is not None})
    return ExecutorConfig.from_overrides(values)


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Set configuration values that override every other source (tests only)."""
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
