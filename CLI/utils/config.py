import logging
import os
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONFIG = {
    'indent': 2,
    'output_format': 'json',
    'colors': True,
    'log_level': 'INFO',
}


def config_dir() -> str:
    """Configuration directory, ~/.hcl2json unless HCL2JSON_HOME points elsewhere"""
    return os.environ.get('HCL2JSON_HOME') or os.path.join(os.path.expanduser('~'), '.hcl2json')


def config_file() -> str:
    return os.path.join(config_dir(), 'config.yaml')


def init_config_dir() -> str:
    """Initialize configuration directory"""
    os.makedirs(config_dir(), exist_ok=True)

    # Create default configuration if it doesn't exist
    path = config_file()
    if not os.path.exists(path):
        with open(path, 'w') as f:
            yaml.dump(DEFAULT_CONFIG, f)
    return path


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    config = dict(DEFAULT_CONFIG)
    path = path or config_file()
    if not os.path.exists(path):
        return config

    with open(path) as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    for key in DEFAULT_CONFIG:
        if key in loaded:
            config[key] = loaded[key]
    return config


def setup_logging(level: str = 'INFO'):
    """Configure logging for the CLI"""

    # Create logs directory if it doesn't exist
    log_dir = os.path.join(config_dir(), 'logs')
    os.makedirs(log_dir, exist_ok=True)

    # Set up file handler
    log_file = os.path.join(log_dir, 'hcl2json.log')
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)

    # Set up console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)

    # Create formatters and add them to the handlers
    file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    console_formatter = logging.Formatter('%(levelname)s: %(message)s')
    file_handler.setFormatter(file_formatter)
    console_handler.setFormatter(console_formatter)

    # Replace handlers from an earlier call instead of stacking them
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, '_hcl2json', False):
            root_logger.removeHandler(handler)
            handler.close()
    file_handler._hcl2json = True
    console_handler._hcl2json = True

    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)
