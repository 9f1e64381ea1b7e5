"""
Structured logging configuration for the export tool

Usage:
    from utils.logging import setup_logging, ContextLogger

    # Setup logging (call once at application startup)
    setup_logging(level="INFO", log_file="/var/log/export/export.log")

    # Plain module logger
    logger = logging.getLogger(__name__)

    # Logger with bound context
    table_logger = ContextLogger(__name__, table="CUSTOMERS")
    table_logger.info("Table exported", rows=1000)
"""

from .config import setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
