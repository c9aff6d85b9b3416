"""
Logging configuration for the MS Archive backend.
"""
import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries that log every request/statement at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "multipart")


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure console logging for the application.

    Safe to call more than once (the app module is imported by the server,
    the CLI tools and every test module); the console handler is only
    attached the first time.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Unknown names fall back to INFO.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not any(getattr(h, "_msarchive", False) for h in root_logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        console_handler._msarchive = True
        root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module (usually called with __name__)."""
    return logging.getLogger(name)
