"""
Exception hierarchy for domain reconciliation.

Every failure raised by the store adapters, the result sink and the
coordinator derives from ReconciliationError so a worker can catch one
type per state, log it and abort its own scope.
"""

from typing import Any, Sequence


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    def __init__(
        self,
        message: str,
        query: str | None = None,
        params: Sequence[Any] | None = None,
    ):
        super().__init__(message)
        self.query = query
        self.params = tuple(params) if params is not None else None

    def __str__(self) -> str:
        message = super().__str__()
        if self.query:
            message += f" [query: {self.query}]"
        if self.params is not None:
            message += f" [params: {self.params!r}]"
        return message


class ConfigurationError(ReconciliationError):
    """Raised when settings or credentials are missing or invalid."""

    pass


class DriverUnavailableError(ReconciliationError):
    """Raised when a database driver is not installed."""

    pass


class StoreConnectionError(ReconciliationError):
    """Raised when a store connection cannot be opened."""

    pass


class StatementPreparationError(ReconciliationError):
    """Raised when a cursor or statement cannot be prepared."""

    pass


class QueryExecutionError(ReconciliationError):
    """Raised when a statement fails to execute."""

    pass


class ResultFetchError(ReconciliationError):
    """Raised when fetching the next row of a result fails."""

    pass


class ResultWriteError(ReconciliationError):
    """Raised when a result row cannot be written to its sink."""

    pass


class InterruptedWaitError(ReconciliationError):
    """Raised when the coordinator's wait on its workers is interrupted."""

    pass
