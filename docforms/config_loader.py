"""
Configuration loading for the document form app.

Loads config.yaml over built-in defaults. The template service URL can be
overridden through the DOCFORMS_API_URL environment variable.
"""

import logging
import os
from copy import deepcopy
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

logger = logging.getLogger(__name__)

API_URL_ENV_VAR = "DOCFORMS_API_URL"

REQUIRED_SECTIONS = ['app', 'api', 'storage', 'ui', 'logging']

LOG_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}


def deep_merge(base_dict: Dict[str, Any], update_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with update_dict taking precedence.

    Args:
        base_dict: Base dictionary (defaults)
        update_dict: Dictionary to merge in (user config)

    Returns:
        Merged dictionary
    """
    result = deepcopy(base_dict)

    for key, value in update_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)

    return result


def get_default_config() -> Dict[str, Any]:
    """
    Get the built-in default configuration.

    Returns:
        Dictionary with default configuration
    """
    return {
        'app': {
            'name': 'Document Forms',
            'version': '1.0.0',
            'debug': False
        },
        'api': {
            'base_url': 'http://localhost:4000/api',
            'timeout': 30,
            'token': None
        },
        'storage': {
            'directory': '.docforms',
            'active_template_key': 'templateSpec'
        },
        'ui': {
            'page_title': 'Document Forms',
            'default_locale': 'en',
            'locales': ['en', 'ar'],
            'rtl_locales': ['ar'],
            'validate_on_change': True,
            'download_filename': 'rendered-document.docx'
        },
        'logging': {
            'level': 'INFO'
        }
    }


def _apply_environment(config: Dict[str, Any]) -> Dict[str, Any]:
    api_url = os.environ.get(API_URL_ENV_VAR)
    if api_url:
        config['api']['base_url'] = api_url
        logger.info(f"Using template service URL from {API_URL_ENV_VAR}")
    return config


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load application configuration.

    Args:
        config_path: Optional path to config file (defaults to config.yaml)

    Returns:
        Complete configuration dictionary; defaults are used for anything
        missing and for unreadable files
    """
    if config_path is None:
        config_path = Path("config.yaml")

    default_config = get_default_config()

    if not config_path.exists():
        logger.warning(f"Configuration file not found: {config_path}")
        logger.info("Using default configuration")
        return _apply_environment(default_config)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {config_path}: {e}")
        logger.info("Using default configuration")
        return _apply_environment(default_config)
    except (IOError, OSError) as e:
        logger.error(f"Failed to read configuration file {config_path}: {e}")
        logger.info("Using default configuration")
        return _apply_environment(default_config)

    if user_config is None:
        logger.warning(f"Configuration file is empty: {config_path}")
        return _apply_environment(default_config)

    if not isinstance(user_config, dict):
        logger.error(f"Configuration file is not a valid dictionary: {config_path}")
        logger.info("Using default configuration")
        return _apply_environment(default_config)

    config = deep_merge(default_config, user_config)
    logger.info(f"Successfully loaded configuration from {config_path}")
    return _apply_environment(config)


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate configuration structure and value types.

    Args:
        config: Configuration dictionary to validate

    Returns:
        True if configuration is valid, False otherwise
    """
    for section in REQUIRED_SECTIONS:
        if not isinstance(config.get(section), dict):
            logger.warning(f"Missing required configuration section: {section}")
            return False

    api = config['api']
    base_url = api.get('base_url')
    if not isinstance(base_url, str) or not base_url.startswith(('http://', 'https://')):
        logger.warning("api.base_url must be an http(s) URL")
        return False

    try:
        timeout = float(api.get('timeout', 30))
    except (ValueError, TypeError):
        logger.warning("api.timeout must be a valid number")
        return False
    if timeout <= 0:
        logger.warning("api.timeout must be positive")
        return False

    storage = config['storage']
    for name in ('directory', 'active_template_key'):
        if not isinstance(storage.get(name), str) or not storage.get(name):
            logger.warning(f"storage.{name} must be a non-empty string")
            return False

    ui = config['ui']
    locales = ui.get('locales')
    if not isinstance(locales, list) or not locales:
        logger.warning("ui.locales must be a non-empty list")
        return False
    if ui.get('default_locale') not in locales:
        logger.warning("ui.default_locale must be one of ui.locales")
        return False
    if not isinstance(ui.get('rtl_locales', []), list):
        logger.warning("ui.rtl_locales must be a list")
        return False

    level = str(config['logging'].get('level', 'INFO')).upper()
    if level not in LOG_LEVELS:
        logger.warning(f"Unknown logging level: {level}")
        return False

    return True


def get_logging_level(config: Dict[str, Any]) -> int:
    """Map the configured logging level name to a logging constant."""
    level = str(config.get('logging', {}).get('level', 'INFO')).upper()
    return LOG_LEVELS.get(level, logging.INFO)
