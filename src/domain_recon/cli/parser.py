"""
Command-line argument parser configuration.

This module sets up the argument parser for the domain-recon CLI tool,
defining all commands and their options.
"""

import argparse


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="domain-recon",
        description="Find organization email domains missing from the denormalized domain table",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Reconcile with one worker per CPU, credentials from the environment
  domain-recon run

  # Eight workers, results under ./results, non-zero exit if any range fails
  domain-recon run --workers 8 --output-dir results --strict

  # Use Vault for credentials
  domain-recon run --use-vault

  # Count discrepancies in result files from an earlier run
  domain-recon summarize --input results/20240131120000_RESULTS_*.csv
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Emit logs as JSON'
    )
    parser.add_argument(
        '--log-file',
        help='Also write logs to this file (rotated)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands (default: run)')

    # ========== Run command ==========
    run_parser = subparsers.add_parser('run', help='Run a reconciliation')
    run_parser.add_argument(
        '--workers',
        type=positive_int,
        help='Number of concurrent workers (default: RECON_WORKERS or CPU count)'
    )
    run_parser.add_argument(
        '--output-dir',
        help='Directory for result files (default: RECON_OUTPUT_DIR or current directory)'
    )
    run_parser.add_argument(
        '--fetch-size',
        type=positive_int,
        default=500,
        help='Target rows fetched per round trip (default: 500)'
    )
    run_parser.add_argument(
        '--strict',
        action='store_true',
        help='Exit with status 1 if any range failed or the run was interrupted'
    )
    run_parser.add_argument(
        '--use-vault',
        action='store_true',
        help='Fetch credentials from HashiCorp Vault'
    )
    run_parser.add_argument(
        '--otlp-endpoint',
        help='Export traces to this OTLP collector (default: OTLP_ENDPOINT, if set)'
    )
    run_parser.add_argument(
        '--pushgateway',
        help='Push run metrics to this Prometheus Pushgateway when done'
    )
    # Source database options
    run_parser.add_argument('--source-host', help='SQL Server host')
    run_parser.add_argument('--source-port', help='SQL Server port')
    run_parser.add_argument('--source-database', help='SQL Server database name')
    run_parser.add_argument('--source-user', help='SQL Server username')
    run_parser.add_argument('--source-password', help='SQL Server password')
    # Target database options
    run_parser.add_argument('--target-host', help='PostgreSQL host')
    run_parser.add_argument('--target-port', help='PostgreSQL port')
    run_parser.add_argument('--target-database', help='PostgreSQL database name')
    run_parser.add_argument('--target-user', help='PostgreSQL username')
    run_parser.add_argument('--target-password', help='PostgreSQL password')

    # ========== Summarize command ==========
    summarize_parser = subparsers.add_parser(
        'summarize', help='Summarize result files from a previous run'
    )
    summarize_parser.add_argument(
        '--input',
        nargs='+',
        required=True,
        help='Result file(s) to summarize'
    )
    summarize_parser.add_argument(
        '--format',
        choices=['console', 'json'],
        default='console',
        help='Output format (default: console)'
    )
    summarize_parser.add_argument(
        '--output',
        help='Output file path (required for json format)'
    )

    return parser
