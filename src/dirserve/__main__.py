"""
=============================================================================
COMMAND LINE INTERFACE
=============================================================================

    dirserve PORT ROOT_DIR [--host H] [--workers N]
                           [--log-level L] [--log-format text|json]

    python -m dirserve 8000 /srv/files

=============================================================================
EXIT CODES
=============================================================================

    0   Server stopped normally (SIGINT / SIGTERM)
    1   Usage error, invalid configuration, or server failure (e.g. bind)
    4   Could not change into ROOT_DIR

=============================================================================
"""

import argparse
import logging
import os
import sys
from typing import Optional

from . import __version__
from .config import ServerConfig
from .server import create_app, setup_logging


logger = logging.getLogger("dirserve.cli")


EXIT_OK = 0
EXIT_USAGE = 1
EXIT_CHDIR = 4


class ArgumentParser(argparse.ArgumentParser):
    """argparse with usage errors exiting 1 instead of 2."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="dirserve",
        description="Serve a directory tree over HTTP with generated index pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dirserve 8000 .                       # Current directory on port 8000
  dirserve 8000 /srv/files --host 127.0.0.1
  dirserve 8000 ~/Downloads --workers 8 --log-format json

Environment:
  DIRSERVE_HOST, DIRSERVE_WORKERS, DIRSERVE_TIMEOUT and DIRSERVE_LOG_LEVEL
  supply defaults; command-line options override them.
        """,
    )

    parser.add_argument("port", metavar="PORT", type=int, help="Port to listen on")
    parser.add_argument("root_dir", metavar="ROOT_DIR", help="Directory to serve")

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Address to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Worker threads at startup; max is twice this (default: 4)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Access log format (default: text)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"dirserve {__version__}",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Parse arguments, enter the root directory and serve until stopped.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        parser.print_usage(sys.stderr)
        print(f"dirserve: error: invalid environment setting: {e}", file=sys.stderr)
        return EXIT_USAGE

    config.port = args.port
    config.log_format = args.log_format
    if args.host:
        config.host = args.host
    if args.workers:
        config.min_workers = args.workers
        config.max_workers = args.workers * 2
    if args.log_level:
        config.log_level = args.log_level

    setup_logging(config.log_level)

    root = os.path.abspath(args.root_dir)
    try:
        os.chdir(root)
    except OSError as e:
        logger.error(f"Could not change into {root}: {e}")
        return EXIT_CHDIR
    config.root_dir = root

    try:
        server = create_app(config)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_USAGE

    try:
        server.run()
    except OSError as e:
        logger.error(f"Server error: {e}")
        return EXIT_USAGE

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
