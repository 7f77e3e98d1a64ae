"""
Row range partitioning.

Splits the target table's 1-based row ordering into one contiguous,
non-overlapping range per worker. Remainder rows go to the leading
workers, so range sizes never differ by more than one.
"""

from .models import RowRange


def partition(total: int, workers: int) -> list[RowRange]:
    """
    Split rows 1..total into at most ``workers`` balanced ranges.

    Args:
        total: Number of rows to test (>= 0)
        workers: Number of workers available (>= 1)

    Returns:
        Ranges in increasing order covering [1, total] exactly once.
        Empty when total is 0. When total < workers only ``total``
        single-row ranges are returned.

    Raises:
        ValueError: If total is negative or workers is less than 1

    Example:
        >>> partition(10, 3)
        [RowRange(start=1, end=4), RowRange(start=5, end=7), RowRange(start=8, end=10)]
    """
    if total < 0:
        raise ValueError(f"Row total cannot be negative: {total}")
    if workers < 1:
        raise ValueError(f"Worker count must be at least 1: {workers}")

    if total == 0:
        return []

    if total < workers:
        return [RowRange(row, row) for row in range(1, total + 1)]

    quotient, remainder = divmod(total, workers)

    ranges = []
    start = 1
    for index in range(workers):
        share = quotient + 1 if index < remainder else quotient
        end = start + share - 1
        ranges.append(RowRange(start, end))
        start = end + 1

    return ranges
