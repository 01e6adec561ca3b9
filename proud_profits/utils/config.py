import copy
import json
import os
from typing import Dict, Any, Optional

from dotenv import find_dotenv, load_dotenv

from proud_profits.models.model_definitions import get_default_config

# Environment variable -> dotted config path
ENV_OVERRIDES = {
    "PROUD_PROFITS_API_BASE_URL": "api.base_url",
    "PROUD_PROFITS_API_TOKEN": "api.token",
    "PROUD_PROFITS_LOG_LEVEL": "logging.level",
    "PROUD_PROFITS_LOG_DIR": "logging.dir",
    "PROUD_PROFITS_TIMEZONE": "display.timezone",
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None, use_env: bool = True) -> Dict[str, Any]:
    """
    Load configuration from a JSON file layered over the defaults.

    Args:
        config_path: Path to the configuration file. A missing file is not an
            error; the defaults are used instead.
        use_env: Whether to apply PROUD_PROFITS_* environment overrides
            (a local .env file is loaded first)

    Returns:
        Configuration dictionary
    """
    config = get_default_config()

    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                file_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ValueError(f"Error loading configuration from {config_path}: {str(e)}")
        config = _merge(config, file_config)

    if use_env:
        load_dotenv(find_dotenv(usecwd=True))
        for env_name, key_path in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                set_config_value(config, key_path, value)

    return config


def save_config(config: Dict[str, Any], config_path: str) -> None:
    """
    Save configuration to a JSON file.

    Args:
        config: Configuration dictionary
        config_path: Path to save the configuration file
    """
    try:
        directory = os.path.dirname(config_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(config_path, 'w') as f:
            json.dump(config, f, indent=4)
    except OSError as e:
        raise ValueError(f"Error saving configuration to {config_path}: {str(e)}")


def get_config_value(config: Dict[str, Any], key_path: str, default: Optional[Any] = None) -> Any:
    """
    Get a value from the configuration using a dot-separated path.

    Args:
        config: Configuration dictionary
        key_path: Dot-separated path to the value (e.g., "refresh.ohlc")
        default: Default value to return if the key is not found

    Returns:
        Value from the configuration or default
    """
    keys = key_path.split('.')
    current = config

    try:
        for key in keys:
            current = current[key]
        return current
    except (KeyError, TypeError):
        return default


def set_config_value(config: Dict[str, Any], key_path: str, value: Any) -> None:
    """Set a value in the configuration, creating intermediate sections."""
    keys = key_path.split('.')
    current = config
    for key in keys[:-1]:
        current = current.setdefault(key, {})
    current[keys[-1]] = value
