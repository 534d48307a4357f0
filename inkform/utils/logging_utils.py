from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from .resource_loader import get_log_dir


def configure_logging(*, debug: bool = False, log_path: Optional[str] = None) -> None:
    """Configure editor-wide logging.

    - Always logs to a rotating file under the per-user log directory
    - Optionally logs to console when debug is enabled
    """

    level = logging.DEBUG if debug else logging.INFO

    if log_path is None:
        log_path = str(get_log_dir() / "inkform.log")

    root = logging.getLogger()
    root.setLevel(level)

    # Avoid duplicating handlers when called more than once.
    if getattr(root, "_inkform_configured", False):
        return

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    if debug:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(fmt)
        root.addHandler(console)

    setattr(root, "_inkform_configured", True)
