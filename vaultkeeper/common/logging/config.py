"""Centralized logging configuration.

Example:
    >>> from vaultkeeper.common.logging import configure_logging
    >>> logger = configure_logging(service_name="vaultkeeper", log_level="INFO")
    >>> logger.info("Service started", extra={"context": {"vault_engine": "kv2"}})
"""

import logging
import sys

from vaultkeeper.common.logging.formatter import JSONFormatter


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    include_context: bool = True,
) -> logging.Logger:
    """Configure structured JSON logging on the root logger.

    Replaces any existing root handlers with a single stdout handler. Call
    once at process startup.

    Args:
        service_name: Name reported in every log line
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        include_context: Whether to include extra fields in output

    Returns:
        Configured root logger

    Raises:
        ValueError: If log_level is invalid
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter(service_name=service_name, include_context=include_context))
    root_logger.addHandler(handler)

    # urllib3 logs every connection at DEBUG, including request lines
    logging.getLogger("urllib3").setLevel(max(numeric_level, logging.INFO))

    return root_logger
