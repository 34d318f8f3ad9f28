"""Structured JSON logging.

Usage:
    from vaultkeeper.common.logging import configure_logging
    configure_logging(service_name="vaultkeeper", log_level="INFO")
"""

from vaultkeeper.common.logging.config import configure_logging
from vaultkeeper.common.logging.formatter import JSONFormatter

__all__ = [
    "configure_logging",
    "JSONFormatter",
]
