"""Main CLI entry point for tagpack."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

import structlog

from .. import __version__
from ..exceptions import TagpackError
from .analyze import analyze_file
from .dump import dump_file

EPILOG = """
Examples:
  tagpack --analyze messages.py          Show wire layout of message classes
  tagpack --dump capture.bin             Decode and print every value in a file
  tagpack --version                      Show version
"""


def configure_logging(verbose: bool) -> None:
    """Route structlog output to stderr, showing debug events only when verbose."""
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tagpack",
        description="tagpack: self-describing binary codec",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )

    command = parser.add_mutually_exclusive_group()
    command.add_argument(
        "--analyze",
        metavar="FILE",
        type=Path,
        help="Analyze message classes and show field wire types and sizes",
    )
    command.add_argument(
        "--dump",
        metavar="FILE",
        type=Path,
        help="Decode a file of concatenated messages and print the values",
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug log output on stderr")
    parser.add_argument("--version", action="version", version=f"tagpack {__version__}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the tagpack CLI.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    command: Callable[[Path], object]
    if args.analyze is not None:
        command, file_path = analyze_file, args.analyze
    elif args.dump is not None:
        command, file_path = dump_file, args.dump
    else:
        parser.print_help()
        return 0

    if not file_path.exists():
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        return 1

    try:
        command(file_path)
    except TagpackError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error processing {file_path}: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
