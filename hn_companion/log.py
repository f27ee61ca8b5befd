"""
Logging configuration for the terminal browser.

Curses owns the terminal while the browser runs, so log records go to a
rotating file instead of stderr.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level: <8} | "
    "{module}:{function}:{line} - "
    "{message}"
)


def setup_logging(level: str = "INFO", path: Optional[str] = None) -> None:
    """
    Set up logging configuration.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR)
        path: Log file; when omitted, records go to stderr
    """
    # Remove default handler
    logger.remove()

    if path:
        log_file = Path(path).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=FORMAT,
            level=level,
            rotation="1 MB",
            retention=5,
            backtrace=False,
            diagnose=False,
        )
    else:
        logger.add(sys.stderr, format=FORMAT, level=level)

    logger.debug("Logging initialized with level: {}", level)
