import logging
import os

LOG_LEVEL = os.environ.get("LOG_LEVEL", "info")

LOGGING_FORMAT = "[{asctime}|{filename}:{funcName}:{lineno:d}]{levelname}  {message}"


def _setup_logger(name: str = "videounique") -> logging.Logger:
    logger = logging.getLogger(name)

    logging_level = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "critical": logging.CRITICAL,
        "error": logging.ERROR,
    }.get(LOG_LEVEL.lower(), logging.INFO)
    logger.setLevel(logging_level)

    formatter = logging.Formatter(LOGGING_FORMAT, style="{", datefmt="%H:%M:%S")

    # Create a handler for console output
    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


logger = _setup_logger()


def get_logger(name: str) -> logging.Logger:
    """Returns a child of the package logger, e.g. `videounique.base.engine`."""
    if name == "videounique" or name.startswith("videounique."):
        return logging.getLogger(name)
    return logger.getChild(name)
