"""
Exception types for the export engine.

Every failure is raised, never swallowed. Which ones end the whole run is
decided by the worker pool (see parallel.pool).
"""

from typing import Any


class ExportError(Exception):
    """Base exception for all export failures."""

    pass


class ConfigurationError(ExportError, ValueError):
    """Raised for missing or invalid options and a bad target directory."""

    pass


class UnsupportedValueTypeError(ExportError):
    """
    Raised when a column value has no destination literal.

    Always fatal for the whole run: writing a guessed literal would leave an
    artifact that cannot be verified.
    """

    def __init__(self, table: str, column: str, value: Any):
        self.table = table
        self.column = column
        self.value_type = type(value).__name__
        super().__init__(
            f"Unsupported value type {self.value_type} "
            f"in column {table}.{column}"
        )


class ExportIOError(ExportError):
    """Raised when a table's script, side file or archive cannot be written."""

    def __init__(self, table: str | None, path: Any, cause: BaseException):
        self.table = table
        self.path = str(path)
        self.cause = cause
        target = f"exporting table {table} to" if table else "writing"
        super().__init__(
            f"I/O error {target} {self.path}: {type(cause).__name__}: {cause}"
        )


class SourceQueryError(ExportError):
    """Raised when a query against the source database fails."""

    def __init__(self, table: str, sql: str, cause: BaseException):
        self.table = table
        self.sql = sql
        self.cause = cause
        super().__init__(f"Query failed for table {table} ({sql}): {cause}")


class ExportFailedError(ExportError):
    """Raised by the orchestrator when the worker pool reported failures."""

    def __init__(self, summary: dict[str, Any]):
        self.summary = summary
        errors = summary.get("errors", [])
        failed = [error["table"] for error in errors if error.get("table")]
        message = f"Export failed for {len(failed)} table(s)"
        if failed:
            message += ": " + ", ".join(failed)
        if len(failed) < len(errors):
            message += f" ({len(errors) - len(failed)} worker connection error(s))"
        skipped = summary.get("skipped", [])
        if skipped:
            message += f", {len(skipped)} table(s) skipped"
        super().__init__(message)
