"""
Minimal structured logging configuration for green-index.

Provides:
- Optional file logging for warnings and errors (rotating)
- Console logging at a configurable level (warnings by default)

Library modules never call this; they only use
``logging.getLogger(__name__)``.  Entry points (main.py) configure once.
"""
import logging
import logging.handlers
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

APP_LOGGER_NAME = "greenindex"
LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(
    log_dir: Optional[Union[str, Path]] = None,
    app_name: str = APP_LOGGER_NAME,
    console_level: int = logging.WARNING,
) -> logging.Logger:
    """
    Setup structured logging.

    Args:
        log_dir: Directory for log files (created if missing).  When None
                 only the console handler is installed.
        app_name: Logger name; "greenindex" covers every package module.
        console_level: Minimum level shown on the console.

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        # File handler: rotating log (max 5MB, keep 3 backups)
        log_file = log_path / f"{app_name}_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding='utf-8',
        )
        file_handler.setLevel(logging.WARNING)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    logger.addHandler(console_handler)

    return logger

