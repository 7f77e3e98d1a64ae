"""
Delimited-text result files.

Each worker owns one CsvResultSink. start() creates or truncates the file
and writes the header; every write_row() call then opens the file in append
mode, writes one row and closes it again, so nothing is buffered between
calls. A value containing a row or column delimiter is wrapped in
double quotes; quotes inside values are not escaped.
"""

import csv
import io
import logging
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

FILE_NAME = "RESULTS"
FILE_EXT = "csv"
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
QUOTE = '"'


def result_file_name(run_timestamp: str, start_row: int, end_row: int) -> str:
    """
    Name of the result file for one range, e.g. ``20240131120000_RESULTS_1_500.csv``.

    Args:
        run_timestamp: Run start formatted with TIMESTAMP_FORMAT
        start_row: First row of the range
        end_row: Last row of the range
    """
    return f"{run_timestamp}_{FILE_NAME}_{start_row}_{end_row}.{FILE_EXT}"


class CsvResultSink:
    """Appends delimited rows to one result file."""

    def __init__(
        self,
        path: str | Path,
        row_delimiter: str = "\n",
        column_delimiter: str = ",",
        encoding: str = "utf-8",
    ):
        if not row_delimiter or not column_delimiter:
            raise ValueError("Row and column delimiters must be non-empty")

        self.path = Path(path)
        self.row_delimiter = row_delimiter
        self.column_delimiter = column_delimiter
        self.encoding = encoding

    def __repr__(self) -> str:
        return f"CsvResultSink({str(self.path)!r})"

    def quote(self, value: str | None) -> str:
        """Wrap a value in quotes if it contains a delimiter."""
        if value is None:
            return ""
        if self.column_delimiter in value or self.row_delimiter in value:
            return f"{QUOTE}{value}{QUOTE}"
        return value

    def format_row(self, values: Sequence[str | None]) -> str:
        return (
            self.column_delimiter.join(self.quote(value) for value in values)
            + self.row_delimiter
        )

    def start(self, header: Sequence[str]) -> bool:
        """
        Create the result file, replacing any earlier content, and write the header.

        Returns:
            True if the header was written
        """
        return self._write(header, mode="w")

    def write_row(self, values: Sequence[str | None]) -> bool:
        """
        Append one row to the result file.

        Args:
            values: Column values in order; an empty sequence writes nothing

        Returns:
            True if the row was written (or there was nothing to write)
        """
        if not values:
            return True
        return self._write(values, mode="a")

    def _write(self, values: Sequence[str | None], mode: str) -> bool:
        line = self.format_row(values)
        try:
            with open(self.path, mode, encoding=self.encoding, newline="") as f:
                f.write(line)
        except OSError as e:
            logger.error(
                f"Failed to write row to {self.path}: {e}. Row had value: {line!r}",
                exc_info=True,
            )
            return False

        return True


def parse_rows(
    text: str,
    row_delimiter: str = "\n",
    column_delimiter: str = ",",
) -> list[list[str]]:
    """
    Split result-file text back into rows of values.

    Default delimiters are read with the csv module. For custom delimiters a
    value that starts with a quote runs until the next quote that is
    followed by a delimiter or the end of the text; the wrapping quotes
    are removed.

    Example:
        >>> parse_rows('K1,"x.com,y.com",w.com\\n')
        [['K1', 'x.com,y.com', 'w.com']]
    """
    if row_delimiter == "\n" and column_delimiter == ",":
        return list(csv.reader(io.StringIO(text)))
    return _split_delimited(text, row_delimiter, column_delimiter)


def _split_delimited(text: str, row_delimiter: str, column_delimiter: str) -> list[list[str]]:
    rows: list[list[str]] = []
    row: list[str] = []
    pos = 0
    length = len(text)

    while pos < length:
        if text.startswith(QUOTE, pos):
            search_from = pos + 1
            while True:
                close = text.find(QUOTE, search_from)
                if close == -1:
                    raise ValueError(f"Unterminated quoted value at offset {pos}")
                after = close + 1
                if (
                    after == length
                    or text.startswith(column_delimiter, after)
                    or text.startswith(row_delimiter, after)
                ):
                    break
                search_from = after
            value = text[pos + 1:close]
            pos = after
        else:
            col_end = text.find(column_delimiter, pos)
            row_end = text.find(row_delimiter, pos)
            ends = [i for i in (col_end, row_end) if i != -1]
            end = min(ends) if ends else length
            value = text[pos:end]
            pos = end

        row.append(value)

        if pos >= length:
            rows.append(row)
            row = []
        elif text.startswith(column_delimiter, pos):
            pos += len(column_delimiter)
            if pos >= length:
                row.append("")
                rows.append(row)
                row = []
        else:
            pos += len(row_delimiter)
            rows.append(row)
            row = []

    return rows


def read_result_file(
    path: str | Path,
    row_delimiter: str = "\n",
    column_delimiter: str = ",",
    encoding: str = "utf-8",
) -> list[list[str]]:
    """Read and parse a whole result file, header row included."""
    with open(path, encoding=encoding, newline="") as f:
        return parse_rows(f.read(), row_delimiter, column_delimiter)
