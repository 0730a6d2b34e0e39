"""
Logging configuration for the key-item store client.
"""

import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Third-party loggers that are only opened up at -vvv
_TRACE_LOGGERS = ("httpx", "httpcore", "botocore", "boto3")


def setup_logging(verbose: int = 0) -> None:
    """
    Configure logging based on verbosity count.

    Args:
        verbose: 0 WARNING, 1 INFO, 2 DEBUG, 3+ DEBUG including transport libraries
    """
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    root = logging.getLogger()
    root.handlers = [logging.StreamHandler(sys.stderr)]
    root.handlers[0].setFormatter(logging.Formatter(_FORMAT))
    root.setLevel(level)

    library_level = logging.DEBUG if verbose >= 3 else logging.WARNING
    for name in _TRACE_LOGGERS:
        logging.getLogger(name).setLevel(library_level)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger."""
    return logging.getLogger(name)
