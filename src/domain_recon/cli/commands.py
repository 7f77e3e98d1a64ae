"""
CLI command implementations.

- run: one reconciliation, one result file per row range
- summarize: discrepancy counts over previously written result files
"""

import argparse
import logging
import os
from datetime import datetime

from domain_recon.config import load_settings
from domain_recon.engine import Coordinator
from domain_recon.engine.metrics import push_metrics
from domain_recon.errors import ConfigurationError, DriverUnavailableError
from domain_recon.report import (
    export_summary_json,
    format_summary_console,
    summarize_result_files,
)
from domain_recon.utils.tracing import initialize_tracing, shutdown_tracing

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INCOMPLETE = 1
EXIT_ABORTED = 2


def _now() -> str:
    return datetime.now().strftime("%a %b %d %H:%M:%S %Y")


def cmd_run(args: argparse.Namespace) -> int:
    """
    Run a reconciliation

    Args:
        args: Parsed command-line arguments

    Returns:
        Process exit status. Worker failures only change it under --strict.
    """
    print(f"Starting at: {_now()}")

    try:
        settings = load_settings(args)
        queries = settings.create_queries()
        connections = settings.create_connections()
    except (ConfigurationError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}. No records were tested")
        return EXIT_ABORTED

    try:
        connections.require_drivers()
    except DriverUnavailableError as e:
        logger.error(f"Database driver not found. No records were tested ({e})")
        return EXIT_ABORTED

    otlp_endpoint = args.otlp_endpoint or os.getenv("OTLP_ENDPOINT")
    tracing_enabled = bool(otlp_endpoint)
    if tracing_enabled:
        initialize_tracing(otlp_endpoint=otlp_endpoint)

    try:
        coordinator = Coordinator(
            connections=connections,
            queries=queries,
            workers=settings.workers,
            output_dir=settings.output_dir,
            fetch_size=args.fetch_size,
        )
        succeeded = coordinator.run()
    finally:
        if args.pushgateway:
            push_metrics(args.pushgateway)
        if tracing_enabled:
            shutdown_tracing()

    summary = coordinator.summary
    logger.info(
        f"Run finished in {summary.duration_seconds:.2f}s: "
        f"{len(summary.ranges)} range(s), {len(summary.failed_ranges)} failed, "
        f"{summary.rows_written} discrepancies"
    )

    print(f"Ending at: {_now()}")

    if not succeeded and args.strict:
        return EXIT_INCOMPLETE
    return EXIT_OK


def cmd_summarize(args: argparse.Namespace) -> int:
    """
    Summarize result files from a previous run

    Args:
        args: Parsed command-line arguments

    Returns:
        Process exit status
    """
    try:
        summary = summarize_result_files(args.input)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read result files: {e}")
        return EXIT_INCOMPLETE

    if args.format == "json":
        if not args.output:
            logger.error("Output file required for JSON format")
            return EXIT_INCOMPLETE
        export_summary_json(summary, args.output)
        logger.info(f"Summary exported to {args.output}")
    else:
        print(format_summary_console(summary))

    return EXIT_OK
