"""
Per-user directory helpers for configuration and log files.
"""
import os
import sys
from pathlib import Path

APP_NAME = "Inkform"


def get_app_data_dir(app_name: str = APP_NAME) -> Path:
    """
    Get the application data directory for storing user data.

    Args:
        app_name: Name of the application

    Returns:
        Path to the app data directory
    """
    if os.name == 'nt':  # Windows
        base_dir = os.environ.get('APPDATA', os.path.expanduser('~'))
    elif sys.platform == 'darwin':  # macOS
        base_dir = os.path.expanduser('~/Library/Application Support')
    else:  # Linux and others
        base_dir = os.path.expanduser('~/.local/share')

    app_dir = Path(base_dir) / app_name
    app_dir.mkdir(parents=True, exist_ok=True)

    return app_dir


def get_config_dir(app_name: str = APP_NAME) -> Path:
    """
    Get the configuration directory for storing settings.

    Args:
        app_name: Name of the application

    Returns:
        Path to the config directory
    """
    if os.name == 'nt':  # Windows
        config_dir = get_app_data_dir(app_name) / "config"
    elif sys.platform == 'darwin':  # macOS
        config_dir = Path.home() / "Library" / "Preferences" / app_name
    else:  # Linux
        config_dir = Path.home() / ".config" / app_name

    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_log_dir(app_name: str = APP_NAME) -> Path:
    """
    Get the directory log files are written to.

    ``INKFORM_LOG_DIR`` overrides the platform default.
    """
    env_dir = os.environ.get("INKFORM_LOG_DIR")
    if env_dir:
        log_dir = Path(env_dir)
    elif os.name == 'nt':
        log_dir = Path(os.environ.get('LOCALAPPDATA', os.path.expanduser('~'))) / app_name / "logs"
    elif sys.platform == 'darwin':
        log_dir = Path.home() / "Library" / "Logs" / app_name
    else:
        log_dir = Path.home() / ".cache" / app_name / "logs"

    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir
