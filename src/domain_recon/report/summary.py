"""
Summaries of result files from previous runs.

Used by the ``summarize`` command to count discrepancies per file and per
organization key without re-running a reconciliation.
"""

import json
from collections import Counter
from pathlib import Path
from typing import Any

from domain_recon.engine.models import RESULT_HEADER

from .sink import read_result_file


def summarize_result_files(paths: list[str | Path]) -> dict[str, Any]:
    """
    Count discrepancy rows in one or more result files.

    Args:
        paths: Result files written by CsvResultSink

    Returns:
        Dictionary with structure:
        {
            'files': [{'path': str, 'discrepancies': int, 'keys': int}],
            'total_discrepancies': int,
            'total_keys': int,
            'top_keys': [(key, count), ...]  # up to 10, most discrepancies first
        }

    Raises:
        ValueError: If a file does not start with the result header
    """
    files = []
    per_key: Counter[str] = Counter()

    for path in paths:
        rows = read_result_file(path)
        if not rows or tuple(rows[0]) != RESULT_HEADER:
            raise ValueError(f"{path} is not a result file (missing header)")

        data_rows = rows[1:]
        keys = Counter(row[0] for row in data_rows)
        per_key.update(keys)
        files.append({
            "path": str(path),
            "discrepancies": len(data_rows),
            "keys": len(keys),
        })

    return {
        "files": files,
        "total_discrepancies": sum(f["discrepancies"] for f in files),
        "total_keys": len(per_key),
        "top_keys": per_key.most_common(10),
    }


def format_summary_console(summary: dict[str, Any]) -> str:
    """
    Format a summary for console output

    Args:
        summary: Output of summarize_result_files()

    Returns:
        Formatted string for console display
    """
    lines = []

    lines.append("=" * 80)
    lines.append("DOMAIN RECONCILIATION RESULTS")
    lines.append("=" * 80)
    for f in summary["files"]:
        lines.append(f"{f['path']}: {f['discrepancies']:,} missing domain(s) across {f['keys']:,} key(s)")
    lines.append("-" * 80)
    lines.append(f"Total missing domains: {summary['total_discrepancies']:,}")
    lines.append(f"Organizations affected: {summary['total_keys']:,}")

    if summary["top_keys"]:
        lines.append("")
        lines.append("MOST AFFECTED ORGANIZATIONS")
        lines.append("-" * 80)
        for i, (key, count) in enumerate(summary["top_keys"], 1):
            lines.append(f"{i}. {key}: {count}")

    lines.append("=" * 80)

    return "\n".join(lines)


def export_summary_json(summary: dict[str, Any], output_path: str) -> None:
    """Write a summary to a JSON file."""
    with open(output_path, 'w') as f:
        json.dump(summary, f, indent=2)
