"""
Export of a relational schema into replayable MySQL scripts.

This package provides:
- Value encoding to MySQL literals (encode)
- Streaming of large objects to side files or archives (lobs)
- Order-independent column checksums and check queries (checksum)
- The per-table export job (table_job) and its worker pool (parallel)
- The complete export run (orchestrator) and its command line (cli)
"""

__version__ = "1.0.0"

from .config import ExportConfig, assert_empty_directory, load_config
from .errors import (
    ConfigurationError,
    ExportError,
    ExportFailedError,
    ExportIOError,
    SourceQueryError,
    UnsupportedValueTypeError,
)
from .orchestrator import ExportOrchestrator
from .table_job import JobState, TableExportJob, TableExportResult

__all__ = [
    '__version__',
    'ExportConfig',
    'assert_empty_directory',
    'load_config',
    'ConfigurationError',
    'ExportError',
    'ExportFailedError',
    'ExportIOError',
    'SourceQueryError',
    'UnsupportedValueTypeError',
    'ExportOrchestrator',
    'JobState',
    'TableExportJob',
    'TableExportResult',
]
