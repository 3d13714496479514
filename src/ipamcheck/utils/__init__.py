"""Utility modules for the IPAM checker."""

from .config_loader import load_config, create_output_directories, AppConfig
from .logger import setup_logger, get_logger

__all__ = [
    'load_config',
    'create_output_directories',
    'AppConfig',
    'setup_logger',
    'get_logger'
]
