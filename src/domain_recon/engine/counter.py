"""Counting the target rows a run has to test."""

import logging
from typing import Any

from domain_recon.errors import (
    QueryExecutionError,
    ResultFetchError,
    StatementPreparationError,
)
from domain_recon.store import ConnectionFactory

logger = logging.getLogger(__name__)


def _execute_count(conn: Any, query: str) -> int:
    try:
        cursor = conn.cursor()
    except Exception as e:
        raise StatementPreparationError(
            f"Failed to create cursor on target connection: {e}", query=query
        ) from e

    try:
        try:
            cursor.execute(query)
        except Exception as e:
            raise QueryExecutionError(f"Failed to execute query: {e}", query=query) from e

        try:
            row = cursor.fetchone()
        except Exception as e:
            raise ResultFetchError(
                f"Failed to fetch result of count query: {e}", query=query
            ) from e
    finally:
        cursor.close()

    if row is None:
        raise ResultFetchError("Count query returned no rows", query=query)
    return int(row[0])


def count_target_records(target: ConnectionFactory, query: str) -> int:
    """
    Count the rows of the target table.

    Opens a dedicated connection and closes it before returning.

    Args:
        target: Factory for the target store
        query: ``SELECT COUNT(*)`` statement for the target table

    Returns:
        Number of rows to test

    Raises:
        ReconciliationError: If connecting, executing or fetching fails
    """
    with target.session() as conn:
        total = _execute_count(conn, query)

    logger.debug(f"Target table holds {total} rows")
    return total
