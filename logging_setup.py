import logging
import sys

import config


def setup_logging(level: str = None) -> None:
    """Configure logging to output to stdout with proper formatting."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level or config.LOG_LEVEL)

    # Repeated calls only adjust the level
    for existing in root_logger.handlers:
        if isinstance(existing, logging.StreamHandler) and getattr(existing, "stream", None) is sys.stdout:
            return

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
