"""
Whole-token membership for comma-joined domain lists.

The target stores each organization's domains as one delimited string.
A domain counts as present only when it equals one of the tokens, so
"ab.com" is not found inside "xab.com,b.com".
"""

from collections.abc import Iterable, Iterator

DOMAIN_DELIMITER = ","


def split_tokens(actual_value: str | None, delimiter: str = DOMAIN_DELIMITER) -> frozenset[str]:
    """Parse a delimited value into its set of tokens (NULL is the empty set)."""
    if actual_value is None:
        return frozenset()
    return frozenset(actual_value.split(delimiter))


def contains_token(
    actual_value: str | None,
    candidate: str,
    delimiter: str = DOMAIN_DELIMITER,
) -> bool:
    """Return True if ``candidate`` is a whole token of ``actual_value``."""
    return candidate in split_tokens(actual_value, delimiter)


def missing_values(
    actual_value: str | None,
    expected_values: Iterable[str],
    delimiter: str = DOMAIN_DELIMITER,
) -> Iterator[str]:
    """
    Yield expected values absent from ``actual_value``, in input order.

    Each missing value is yielded at most once.

    Example:
        >>> list(missing_values("x.com,y.com", ["x.com", "w.com", "w.com"]))
        ['w.com']
    """
    present = split_tokens(actual_value, delimiter)
    seen: set[str] = set()
    for expected in expected_values:
        if expected in present or expected in seen:
            continue
        seen.add(expected)
        yield expected
