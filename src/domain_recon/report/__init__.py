"""
Result files and their summaries.

- sink: per-worker delimited result files
- summary: discrepancy counts over previously written files
"""

from .sink import (
    TIMESTAMP_FORMAT,
    CsvResultSink,
    parse_rows,
    read_result_file,
    result_file_name,
)
from .summary import export_summary_json, format_summary_console, summarize_result_files

__all__ = [
    "CsvResultSink",
    "TIMESTAMP_FORMAT",
    "parse_rows",
    "read_result_file",
    "result_file_name",
    "summarize_result_files",
    "format_summary_console",
    "export_summary_json",
]
