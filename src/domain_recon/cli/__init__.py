"""
Command-line interface for domain reconciliation.

Available commands:
- run: Execute one reconciliation (the default when no command is given)
- summarize: Count discrepancies in earlier result files
"""

import sys

from domain_recon.utils.logging import setup_logging

from .commands import EXIT_ABORTED, EXIT_INCOMPLETE, EXIT_OK, cmd_run, cmd_summarize
from .parser import create_parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the domain-recon CLI"""
    argv = sys.argv[1:] if argv is None else list(argv)
    parser = create_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        args = parser.parse_args([*argv, 'run'])

    setup_logging(
        level=args.log_level,
        log_file=args.log_file,
        json_format=args.log_json,
    )

    if args.command == 'summarize':
        sys.exit(cmd_summarize(args))
    sys.exit(cmd_run(args))


__all__ = [
    'main',
    'cmd_run',
    'cmd_summarize',
    'create_parser',
    'EXIT_OK',
    'EXIT_INCOMPLETE',
    'EXIT_ABORTED',
]


if __name__ == '__main__':
    main()
