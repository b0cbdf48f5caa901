"""
Configuration defaults and logging setup.

Defaults live in the packaged defaults.yaml. A user file named by the
SHOTSEARCH_CONFIG environment variable is merged over them. Explicit
constructor arguments always take precedence over either.
"""

import functools
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_ENV_VAR = 'SHOTSEARCH_CONFIG'
DEFAULTS_PATH = Path(__file__).parent / 'defaults.yaml'

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'

logger = logging.getLogger(__name__)


def _read_yaml(yaml_path: Path) -> Dict[str, Any]:
    with open(yaml_path, 'r') as f:
        return yaml.safe_load(f) or {}


@functools.lru_cache(maxsize=None)
def _read_config(override: Optional[str]) -> Dict[str, Any]:
    config = _read_yaml(DEFAULTS_PATH) if DEFAULTS_PATH.exists() else {}

    if override:
        override_path = Path(override).expanduser()
        if not override_path.exists():
            raise FileNotFoundError(
                f"{CONFIG_ENV_VAR} points at '{override_path}', which does not exist"
            )
        config.update(_read_yaml(override_path))

    return config


def load_config() -> Dict[str, Any]:
    """
    Load the effective configuration.

    Files are parsed once per process for each value of SHOTSEARCH_CONFIG;
    call clear_config_cache() after editing them in place.

    Returns:
        Dict of packaged defaults updated with the SHOTSEARCH_CONFIG file, if set

    Raises:
        FileNotFoundError: If SHOTSEARCH_CONFIG names a file that does not exist
    """
    return dict(_read_config(os.environ.get(CONFIG_ENV_VAR) or None))


def clear_config_cache():
    _read_config.cache_clear()


def get_default(key: str, fallback: Any = None) -> Any:
    """
    Look up one configuration value.

    Args:
        key: Configuration key (e.g., 'mds_server')
        fallback: Value returned when the key is missing or null

    Returns:
        Configured value, or fallback
    """
    value = load_config().get(key)
    return fallback if value is None else value


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach a console handler to the shotsearch logger.

    Safe to call more than once; the previous handler is replaced.

    Args:
        level: Log level name ('DEBUG', 'INFO', ...). Defaults to config 'log_level'.

    Returns:
        The configured package logger
    """
    level_name = (level or get_default('log_level', 'INFO')).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    package_logger = logging.getLogger('shotsearch')
    package_logger.setLevel(log_level)
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    package_logger.addHandler(handler)

    logger.debug("Logging configured at %s", level_name)
    return package_logger
