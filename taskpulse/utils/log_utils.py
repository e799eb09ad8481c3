# taskpulse/utils/log_utils.py

import logging
from logging.handlers import RotatingFileHandler
import os
from pathlib import Path
from typing import Optional, Union

LOG_FILE_NAME = "taskpulse.log"


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def setup_logging(level: Optional[Union[int, str]] = None, log_dir: Optional[Path] = None):
    """
    Configure root logger with:
     - RotatingFileHandler writing to <log dir>/taskpulse.log
     - StreamHandler to console
    level and log_dir default to [logging] level and dir from the user config.
    Idempotent: calling multiple times won't add duplicate handlers.
    `level` can be numeric or string (e.g., logging.DEBUG or "DEBUG").
    """
    from taskpulse.config import config_manager as cf

    if level is None:
        level = cf.get_config_value("logging", "level", "INFO") or "INFO"
    if log_dir is None:
        log_dir = cf.get_log_dir()
    try:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
    except Exception as e:
        # If directory creation fails, log to console only
        print(f"WARNING: Could not create log directory {log_dir}: {e}")
        _configure_console_logging(level)
        return

    level = _resolve_level(level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    existing_handlers = list(root_logger.handlers)

    # 1) RotatingFileHandler: only add if not already present for our log file
    file_log_path = log_dir / LOG_FILE_NAME
    add_file = True
    for h in existing_handlers:
        if isinstance(h, RotatingFileHandler):
            base = getattr(h, 'baseFilename', None)
            if base and os.path.abspath(base) == os.path.abspath(file_log_path):
                add_file = False
                break
    if add_file:
        try:
            file_handler = RotatingFileHandler(
                file_log_path,
                maxBytes=5 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            ))
            file_handler.setLevel(level)
            root_logger.addHandler(file_handler)
        except Exception as e:
            print(f"WARNING: Could not set up file logging: {e}")

    # 2) Console handler: RotatingFileHandler is a StreamHandler subclass, skip it
    has_console = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in existing_handlers
    )
    if not has_console:
        _add_console_handler(root_logger, logging.WARNING if level < logging.WARNING else level)


def _add_console_handler(root_logger: logging.Logger, level: int) -> None:
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)


def _configure_console_logging(level: Union[int, str] = logging.INFO):
    """
    Fallback: configure only console logging if file handler cannot be created.
    """
    root_logger = logging.getLogger()
    level = _resolve_level(level)
    root_logger.setLevel(level)

    for h in root_logger.handlers:
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
            return
    _add_console_handler(root_logger, level)
