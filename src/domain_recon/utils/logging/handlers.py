"""
Logger wrappers.

ContextLogger binds key-value context (a worker's row range, for example)
to every record it emits.
"""

import logging
from typing import Any


class ContextLogger:
    """
    Logger wrapper that adds contextual information to all log messages

    Usage:
        logger = ContextLogger(__name__, start_row=1, end_row=500)
        logger.info("Wrote discrepancy", key="ORG-17")
        # Output includes start_row, end_row and key
    """

    def __init__(self, name: str, **context):
        self.logger = logging.getLogger(name)
        self.context = context

    def _log(self, level: int, msg: str, *args, exc_info=None, **kwargs) -> None:
        self.logger.log(
            level,
            msg,
            *args,
            exc_info=exc_info,
            extra={**self.context, **kwargs},
            stacklevel=3,
        )

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, exc_info=None, **kwargs) -> None:
        self._log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def critical(self, msg: str, *args, exc_info=None, **kwargs) -> None:
        self._log(logging.CRITICAL, msg, *args, exc_info=exc_info, **kwargs)

    def update_context(self, **context) -> None:
        self.context.update(context)

    def get_context(self) -> dict[str, Any]:
        return self.context.copy()
