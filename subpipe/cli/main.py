"""Main CLI entry point for subpipe."""

import argparse
import sys
from typing import Optional

from .commands import run_script_command


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the subpipe CLI."""
    parser = argparse.ArgumentParser(
        prog='subpipe',
        description='Run subprocess pipelines without a shell'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    run_parser = subparsers.add_parser('run', help='Run a pipeline script')
    run_parser.add_argument(
        'script',
        type=str,
        help='Path to pipeline script YAML file'
    )
    run_parser.add_argument(
        '--var',
        action='append',
        metavar='KEY=VALUE',
        help='Exported variables (can be specified multiple times)'
    )
    run_parser.add_argument(
        '--print-var',
        action='append',
        metavar='NAME',
        help='Print a variable after the run (can be specified multiple times)'
    )
    run_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Validate without execution'
    )
    run_parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    run_parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress non-error output'
    )
    run_parser.add_argument(
        '--log-level',
        choices=['debug', 'info', 'warn', 'error'],
        default='info',
        help='Set log level'
    )

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'run':
        return run_script_command(parsed_args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
