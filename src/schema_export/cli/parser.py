"""
Command-line argument parser configuration.

Defines the ``run`` and ``validate`` commands of the schema-export tool.
Every configuration option can be given as a flag; flags override the
properties file and the environment.
"""

import argparse

from ..config import (
    EXCLUDE_COLUMNS,
    EXCLUDE_TABLES,
    PARALLEL_THREADS,
    SOURCE_DRIVER,
    SOURCE_PASSWORD,
    SOURCE_URL,
    SOURCE_USER,
    TARGET_IMPORT_DIR,
    TARGET_PATH,
    TARGET_ZIP,
)
from ..source import SOURCE_DRIVERS

# Flag destination -> configuration key
CONFIG_FLAGS = {
    "source_url": SOURCE_URL,
    "source_user": SOURCE_USER,
    "source_password": SOURCE_PASSWORD,
    "source_driver": SOURCE_DRIVER,
    "exclude_tables": EXCLUDE_TABLES,
    "exclude_columns": EXCLUDE_COLUMNS,
    "threads": PARALLEL_THREADS,
    "target_path": TARGET_PATH,
    "zip": TARGET_ZIP,
    "import_dir": TARGET_IMPORT_DIR,
}


def add_config_arguments(parser: argparse.ArgumentParser) -> None:
    """Options shared by all commands that load a configuration."""
    parser.add_argument(
        '--config',
        help='Properties file (default: export.properties in the working directory)'
    )
    parser.add_argument('--source-url', help='Oracle DSN or ODBC connection string')
    parser.add_argument('--source-user', help='Source database user')
    parser.add_argument(
        '--source-password',
        help='Source database password (prefer EXPORT_SOURCE_PASSWORD)'
    )
    parser.add_argument(
        '--source-driver',
        choices=sorted(SOURCE_DRIVERS),
        help='Source driver (default: oracle)'
    )
    parser.add_argument(
        '--exclude-tables',
        help='Comma-separated list of tables to skip'
    )
    parser.add_argument(
        '--exclude-columns',
        help='Comma-separated list of table.column entries to skip'
    )
    parser.add_argument(
        '--threads',
        type=int,
        help='Number of parallel workers (default: 3)'
    )
    parser.add_argument('--target-path', help='Existing, empty output directory')
    parser.add_argument(
        '--zip',
        choices=['yes', 'no'],
        help='Write scripts and large objects as zip archives (default: yes)'
    )
    parser.add_argument(
        '--import-dir',
        help='Directory the export is loaded from on the MySQL host (default: /tmp/import/)'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='schema-export',
        description="Export a relational schema into replayable MySQL scripts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export using export.properties in the working directory
  schema-export run

  # Export to another directory without zip archives, 6 workers
  schema-export run --target-path /data/export --zip no --threads 6

  # Keep exporting the other tables when one fails
  schema-export run --continue-on-error --summary-file summary.json

  # Export from an ODBC source
  schema-export run --source-driver odbc \\
      --source-url "DRIVER={ODBC Driver 18 for SQL Server};SERVER=db;DATABASE=sales"

  # Check configuration and target directory only
  schema-export validate --config prod.properties
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )
    parser.add_argument('--log-file', help='Also log to this file (rotated)')
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Log as JSON lines'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Run command ==========
    run_parser = subparsers.add_parser('run', help='Export the schema')
    add_config_arguments(run_parser)
    run_parser.add_argument(
        '--continue-on-error',
        action='store_true',
        help='Continue with remaining tables if one fails'
    )
    run_parser.add_argument(
        '--summary-file',
        help='Write the run summary as JSON to this file'
    )
    run_parser.add_argument(
        '--metrics-port',
        type=int,
        help='Expose Prometheus metrics on this port while exporting'
    )
    run_parser.add_argument(
        '--otlp-endpoint',
        help='Send traces to this OTLP collector (e.g. localhost:4317)'
    )

    # ========== Validate command ==========
    validate_parser = subparsers.add_parser(
        'validate',
        help='Check configuration and target directory without exporting'
    )
    add_config_arguments(validate_parser)

    return parser
