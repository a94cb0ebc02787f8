# src/a11y_audit/logging_config.py

import logging
import logging.handlers
from pathlib import Path
from datetime import datetime
import sys
from typing import Optional

class ColorFormatter(logging.Formatter):
    """Formatter that colors level names when writing to a terminal"""

    COLORS = {
        'DEBUG': '\033[94m',    # Blue
        'INFO': '\033[92m',     # Green
        'WARNING': '\033[93m',  # Yellow
        'ERROR': '\033[91m',    # Red
        'CRITICAL': '\033[95m', # Magenta
        'RESET': '\033[0m'
    }

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, use_color: bool = True):
        super().__init__(fmt=fmt or '%(levelname)s: %(message)s', datefmt=datefmt)
        self.use_color = use_color

    def format(self, record):
        orig_levelname = record.levelname
        orig_msg = record.msg

        if self.use_color and sys.stderr.isatty():
            color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
            record.levelname = f"{color}{record.levelname}{self.COLORS['RESET']}"
            if isinstance(record.msg, str):
                record.msg = f"{color}{record.msg}{self.COLORS['RESET']}"

        formatted_message = super().format(record)

        # Restore original values so other handlers see the plain record
        record.levelname = orig_levelname
        record.msg = orig_msg

        return formatted_message

def setup_logger(
    name: str,
    log_dir: Optional[str] = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Set up a logger with a console handler and an optional rotating file handler

    Args:
        name: Logger name
        log_dir: Directory for log files (optional)
        console_level: Logging level for console output
        file_level: Logging level for file output
        max_bytes: Maximum size of each log file
        backup_count: Number of backup files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(min(console_level, file_level))
    logger.handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColorFormatter())
    logger.addHandler(console_handler)

    if log_dir:
        try:
            log_path = Path(log_dir)
            log_path.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            file_handler = logging.handlers.RotatingFileHandler(
                str(log_path / f"{name}_{timestamp}.log"),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(file_level)
            file_handler.setFormatter(ColorFormatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S',
                use_color=False
            ))
            logger.addHandler(file_handler)
        except Exception as e:
            logger.error(f"Failed to set up file logging: {e}")

    logger.propagate = False
    return logger

def get_logger(name: str, log_dir: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(name)

    # Prevent adding handlers if they already exist
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColorFormatter('%(levelname)s: [%(name)s] %(message)s'))
    logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        log_file = log_path / f"{datetime.now().strftime('%Y-%m-%d')}.log"
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(ColorFormatter(
            '%(asctime)s - %(filename)s-%(funcName)s:%(lineno)d - %(levelname)s: %(message)s',
            use_color=False
        ))
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger
