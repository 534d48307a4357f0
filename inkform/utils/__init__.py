"""
Utility functions and helpers.
"""
from .resource_loader import (
    get_app_data_dir,
    get_config_dir,
    get_log_dir,
)
from .logging_utils import configure_logging

__all__ = [
    'get_app_data_dir',
    'get_config_dir',
    'get_log_dir',
    'configure_logging',
]
