"""
Command-line interface for schema export.

Available commands:
- run: Export the schema to MySQL scripts
- validate: Check configuration and target directory
"""

import logging
import sys

from utils.logging import setup_logging, shutdown_logging

from ..errors import ConfigurationError
from .commands import EXIT_CONFIG, cmd_run, cmd_validate
from .parser import create_parser

logger = logging.getLogger(__name__)

COMMANDS = {
    'run': cmd_run,
    'validate': cmd_validate,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the schema-export CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=args.log_level,
        log_file=args.log_file,
        json_format=args.log_json,
    )

    try:
        command = COMMANDS.get(args.command)
        if command is None:
            parser.print_help()
            return EXIT_CONFIG
        return command(args)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG
    finally:
        shutdown_logging()


__all__ = [
    'main',
    'cmd_run',
    'cmd_validate',
    'create_parser',
]


if __name__ == '__main__':
    sys.exit(main())
