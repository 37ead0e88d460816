# logger_config.py

import logging
import os
import sys
from datetime import datetime

FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
CONSOLE_HANDLER = "querydrift-console"


def setup_logger(name=None, log_dir=None, debug_mode=False, level=None):
    """
    Setup and return a logger.

    Args:
        name (str): Logger name (None configures the root logger)
        log_dir (str): Directory to save log file. If None, no file logging.
        debug_mode (bool): Set True for DEBUG level, False for `level`.
        level (str): Level name used when debug_mode is False (default INFO).
    """
    logger = logging.getLogger(name)
    if debug_mode:
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(getattr(logging, str(level or "INFO").upper(), logging.INFO))

    # Calling twice (tests, repeated CLI invocations) must not stack handlers
    for handler in logger.handlers:
        if handler.get_name() == CONSOLE_HANDLER:
            handler.stream = sys.stderr
            return logger

    formatter = logging.Formatter(FORMAT)

    # stderr keeps stdout clean for machine-readable command output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.set_name(CONSOLE_HANDLER)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        log_file = os.path.join(log_dir, f"run_{timestamp}.log")
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
