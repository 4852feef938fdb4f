"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (~/.tiercache/config.yaml). Nested YAML sections are
flattened into dotted keys, so

    redis:
      url: redis://cache:6379/0

is read with get_config('redis.url') and overridden by TIERCACHE_REDIS_URL.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".tiercache"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "TIERCACHE_"

DEFAULTS: Dict[str, Any] = {
    "cache.backend": "memory",
    "redis.url": "redis://localhost:6379/0",
    "disk.directory": str(DEFAULT_CONFIG_DIR / "data"),
    "fast_tier.ttl_seconds": 60,
    "fast_tier.jitter_seconds": 5,
    "increment.max_retries": 3,
    "memory.sweep_threshold": 1024,
    "logging.level": "INFO",
    "logging.file": None,
    "logging.format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}

BACKENDS = ("memory", "disk", "redis")

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. DEFAULTS

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(flatten_config(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False so real environment variables win
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
        else:
            logger.debug(f".env file at {dotenv_path} was empty or unreadable.")
    else:
        logger.debug("Skipping .env file loading (no .env found).")

    # 3. Environment variables are read on every get_config call

    _loaded = True
    logger.debug("Configuration loading process completed.")


def reset_configuration() -> None:
    """Forgets loaded YAML values so the next load_configuration() re-reads them."""
    global _config, _loaded
    _config = {}
    _loaded = False


def flatten_config(data: Dict[str, Any], parent: str = "") -> Dict[str, Any]:
    """Flattens nested dictionaries into dotted keys."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{parent}.{key}" if parent else str(key)
        if isinstance(value, dict):
            flat.update(flatten_config(value, full_key))
        else:
            flat[full_key] = value
    return flat


def env_var_name(key: str) -> str:
    """Environment variable that overrides `key`, e.g. 'redis.url' -> 'TIERCACHE_REDIS_URL'."""
    return ENV_PREFIX + key.upper().replace(".", "_")


def _parse_env_value(value: str) -> Any:
    # Try to convert common types
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable
    3. YAML config
    4. DEFAULTS
    5. `default`

    Args:
        key: The configuration key, e.g. 'redis.url'
        default: Value returned if the key is not found anywhere

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = env_var_name(key)
    if env_key in os.environ:
        return _parse_env_value(os.environ[env_key])

    if key in _config:
        return _config[key]

    if key in DEFAULTS and DEFAULTS[key] is not None:
        return DEFAULTS[key]

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    try:
        cwd = Path.cwd()
    except OSError as e:
        logger.warning(f"Error searching for .env file: {e}")
        return None
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def set_config(key: str, value: Any) -> None:
    """Sets a configuration value for the current process.

    Args:
        key: Configuration key (e.g., 'cache.backend')
        value: Value to set
    """
    _config[key] = value

    env_var = env_var_name(key)
    os.environ[env_var] = str(value)

    logger.debug(f"Config set: {key}={value}, environment variable: {env_var}")


# --- Convenience Functions ---

def _get_int(key: str) -> int:
    value = get_config(key)
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid integer for '{key}': {value!r}. Using default {DEFAULTS[key]}.")
        return DEFAULTS[key]


def _get_float(key: str) -> float:
    value = get_config(key)
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid number for '{key}': {value!r}. Using default {DEFAULTS[key]}.")
        return float(DEFAULTS[key])


def get_cache_backend() -> str:
    """Gets the configured slow-tier backend ('memory', 'disk' or 'redis')."""
    backend = str(get_config("cache.backend")).strip().lower()
    if backend not in BACKENDS:
        logger.warning(f"Unknown cache backend '{backend}'. Defaulting to '{DEFAULTS['cache.backend']}'.")
        return DEFAULTS["cache.backend"]
    return backend


def get_redis_url() -> str:
    return str(get_config("redis.url"))


def get_disk_directory() -> str:
    return str(get_config("disk.directory"))


def get_fast_tier_ttl() -> float:
    """Base TTL (seconds) of entries in the fast tier of a TieredStore."""
    return _get_float("fast_tier.ttl_seconds")


def get_fast_tier_jitter() -> float:
    return _get_float("fast_tier.jitter_seconds")


def get_increment_max_retries() -> int:
    return _get_int("increment.max_retries")


def get_memory_sweep_threshold() -> int:
    return _get_int("memory.sweep_threshold")


def get_log_level() -> int:
    """Gets the configured log level as a logging constant."""
    name = str(get_config("logging.level")).upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        logger.warning(f"Unknown log level '{name}'. Defaulting to INFO.")
        return logging.INFO
    return level


def get_log_file() -> Optional[str]:
    value = get_config("logging.file")
    return str(value) if value else None


def get_log_format() -> str:
    """Gets the log record format string, falling back to the default when invalid."""
    fmt = str(get_config("logging.format"))
    try:
        logging.Formatter(fmt, validate=True)
    except ValueError as e:
        logger.warning(f"Invalid log format {fmt!r}: {e}. Using default.")
        return DEFAULTS["logging.format"]
    return fmt


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")


# Load configuration when the module is imported
load_configuration()
