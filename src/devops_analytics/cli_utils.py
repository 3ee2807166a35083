"""Shared CLI utility functions for DevOps Analytics."""

import logging
import sys

PACKAGE_LOGGER = "devops_analytics"
LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def setup_logging(log: str, module_name: str = __name__) -> logging.Logger:
    """Route package log records to stderr at the level chosen with ``--log``.

    ``none`` silences the package entirely; ``INFO`` and ``DEBUG`` attach a
    single stderr handler to the ``devops_analytics`` logger. Calling this
    again replaces the handler instead of stacking a second one.

    Returns:
        The logger for ``module_name``.
    """
    level_name = log.upper()
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        if getattr(handler, "_devops_analytics", False):
            package_logger.removeHandler(handler)

    if level_name == "NONE":
        package_logger.setLevel(logging.CRITICAL)
        package_logger.propagate = True
        return logging.getLogger(module_name)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._devops_analytics = True
    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, level_name))
    package_logger.propagate = False

    module_logger = logging.getLogger(module_name)
    module_logger.info(f"Logging enabled at {level_name} level")
    return module_logger


def format_elapsed(seconds: float) -> str:
    """Format elapsed seconds as ``H:MM:SS``."""
    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"
