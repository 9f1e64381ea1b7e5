"""
CLI command implementations.

- run: Export the schema
- validate: Check configuration and target directory

Commands return the process exit code.
"""

import argparse
import json
import logging
import os
from typing import Any

from utils.metrics import MetricsPublisher
from utils.tracing import initialize_tracing, shutdown_tracing

from .. import __version__
from ..config import assert_empty_directory, load_config
from ..errors import ExportError, ExportFailedError
from ..orchestrator import ExportOrchestrator
from .parser import CONFIG_FLAGS

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def config_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Map the configuration flags that were given to their option keys."""
    return {
        key: getattr(args, dest)
        for dest, key in CONFIG_FLAGS.items()
        if getattr(args, dest, None) is not None
    }


def write_summary(summary: dict[str, Any], path: str) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(summary, f, indent=2, default=str)
    logger.info(f"Summary written to {path}")


def cmd_validate(args: argparse.Namespace) -> int:
    """
    Load the configuration and check the target directory

    Args:
        args: Parsed command-line arguments

    Raises:
        ConfigurationError: If anything is invalid
    """
    config = load_config(args.config, config_overrides(args))
    assert_empty_directory(config.target_path)
    logger.info(f"Configuration is valid, target {config.target_path} is empty")
    print("Configuration OK")
    return EXIT_OK


def cmd_run(args: argparse.Namespace) -> int:
    """
    Run a complete export

    Args:
        args: Parsed command-line arguments

    Returns:
        EXIT_OK when every table was exported, EXIT_FAILED otherwise

    Raises:
        ConfigurationError: If the configuration or target directory is invalid
    """
    config = load_config(args.config, config_overrides(args))
    assert_empty_directory(config.target_path)

    if args.metrics_port:
        MetricsPublisher(port=args.metrics_port, version=__version__).start()

    if args.otlp_endpoint or os.getenv("OTLP_ENDPOINT"):
        initialize_tracing(otlp_endpoint=args.otlp_endpoint)

    logger.info(
        f"Starting export of {config.source_user}@{config.source_url} "
        f"to {config.target_path}"
    )

    try:
        summary = ExportOrchestrator(config, fail_fast=not args.continue_on_error).run()
    except ExportFailedError as e:
        logger.error(str(e))
        for error in e.summary.get("errors", []):
            logger.error(f"  {error.get('table') or 'connection'}: {error['type']}: {error['error']}")
        if args.summary_file:
            write_summary(e.summary, args.summary_file)
        return EXIT_FAILED
    except ExportError as e:
        logger.error(f"Export failed: {e}")
        return EXIT_FAILED
    finally:
        shutdown_tracing()

    if args.summary_file:
        write_summary(summary, args.summary_file)

    print(
        f"Exported {summary['successful']} of {summary['total_tables']} tables "
        f"to {config.target_path} in {summary['duration_seconds']:.2f}s"
    )
    return EXIT_OK
