"""
Structured logging configuration.

Usage:
    from domain_recon.utils.logging import ContextLogger, setup_logging

    setup_logging(level="INFO", log_file="/var/log/domain-recon/run.log")
    log = ContextLogger(__name__, start_row=1, end_row=500)
    log.info("Range complete")
"""

from .config import configure_from_env, setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "configure_from_env",
    "shutdown_logging",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
