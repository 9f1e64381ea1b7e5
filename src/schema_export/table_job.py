"""
Export of a single table.

A job reads every row of one table through its own cursor and writes:

- the table's INSERT script (loose or as a single-entry zip),
- the table's large objects (side files or one archive),
- its verification lines, appended to the shared check script.

Jobs run on worker threads. Nothing a job owns is shared with other jobs
except the verification sink, which serializes its writes.

States::

    OPENING -> SCANNING_COLUMNS -> STREAMING_ROWS -> FINALIZING -> DONE
    any state -> FAILED
"""

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from opentelemetry import trace

from utils.logging import ContextLogger
from utils.tracing import add_span_attributes, trace_operation

from .checksum import ChecksumAccumulator, column_check, lob_load_check
from .encode import ChecksumRule, ColumnDescriptor, ValueEncoder, describe_columns
from .errors import ExportIOError, SourceQueryError
from .lobs import CopyBuffer, LargeObjectStreamer, LargeObjectWriter
from .metrics import ROWS_EXPORTED, TABLE_EXPORT_TIME
from .naming import escape_mysql_name, insert_sql_file_name, script_path
from .scripts import ScriptWriter, VerificationSink, banner

SELECT_ALL_FROM = "SELECT * FROM "
FETCH_SIZE = 500


class JobState(str, Enum):
    OPENING = "opening"
    SCANNING_COLUMNS = "scanning_columns"
    STREAMING_ROWS = "streaming_rows"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class TableExportResult:
    """
    Outcome of one table export.

    Attributes:
        table: Source table name
        status: "success" or "failed"
        rows: Rows written to the INSERT script
        blobs: Binary large objects written
        clobs: Character large objects written
        lob_bytes: Total bytes of large objects written
        checksums: Final checksum per checksummed column
        duration_seconds: Wall time of the job
        error: Error message for failed jobs
        error_type: Exception class name for failed jobs
    """

    table: str
    status: str = "success"
    rows: int = 0
    blobs: int = 0
    clobs: int = 0
    lob_bytes: int = 0
    checksums: dict[str, int] = field(default_factory=dict)
    duration_seconds: float = 0.0
    error: str | None = None
    error_type: str | None = None

    @property
    def success(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def failure(cls, table: str, error: BaseException, duration_seconds: float = 0.0) -> "TableExportResult":
        return cls(
            table=table,
            status="failed",
            duration_seconds=duration_seconds,
            error=str(error),
            error_type=type(error).__name__,
        )


class TableExportJob:
    """
    Exports one table using one source connection.

    A job is run once. ``state`` shows how far it got, which is mainly
    useful when it failed.
    """

    def __init__(
        self,
        table_name: str,
        connection: Any,
        target_path: str | Path,
        verification: VerificationSink,
        excluded_columns: frozenset[str] | set[str] = frozenset(),
        archive: bool = True,
        buffer: CopyBuffer | None = None,
        fetch_size: int = FETCH_SIZE,
    ):
        """
        Args:
            table_name: Table to export, as reported by the source
            connection: DB-API connection owned by the calling worker
            target_path: Output directory
            verification: Shared check script
            excluded_columns: Lower-cased names of columns to leave out
            archive: Write scripts and large objects as zip archives
            buffer: Copy buffer of the calling worker
            fetch_size: Rows fetched per round trip
        """
        self.table_name = table_name
        self.connection = connection
        self.target_path = Path(target_path)
        self.verification = verification
        self.excluded_columns = frozenset(excluded_columns)
        self.archive = archive
        self.fetch_size = fetch_size

        self.state = JobState.OPENING
        self.columns: list[ColumnDescriptor] = []
        self.checksums: ChecksumAccumulator | None = None
        self.encoder = ValueEncoder(table_name)
        self.lobs = LargeObjectWriter(
            table_name, self.target_path, archive, LargeObjectStreamer(buffer)
        )
        self.logger = ContextLogger(__name__, table=table_name)

        self._sql = SELECT_ALL_FROM + table_name
        self._script_path = script_path(
            self.target_path, insert_sql_file_name(table_name), archive
        )

    @property
    def included_columns(self) -> list[ColumnDescriptor]:
        return [column for column in self.columns if not column.excluded]

    def run(self) -> TableExportResult:
        """
        Export the table

        Returns:
            TableExportResult with row and large-object counts

        Raises:
            SourceQueryError: If the source query or a fetch fails
            ExportIOError: If an output file cannot be written
            UnsupportedValueTypeError: If a value has no MySQL literal
        """
        start = time.monotonic()
        cursor = None
        script = None

        with trace_operation(
            "export_table",
            kind=trace.SpanKind.INTERNAL,
            table=self.table_name,
            archive=self.archive,
        ):
            try:
                self.logger.debug(f"SQL query: {self._sql}")
                cursor = self._open_cursor()

                self.state = JobState.SCANNING_COLUMNS
                self._scan_columns(cursor)
                script = self._open_script()

                self.state = JobState.STREAMING_ROWS
                rows = self._stream_rows(cursor, script)

                self.state = JobState.FINALIZING
                self._finalize(script)
                script = None

                self.state = JobState.DONE
            except Exception as e:
                self.state = JobState.FAILED
                self.logger.error(f"Export of table {self.table_name} failed: {e}")
                raise
            finally:
                self._release(cursor, script)

            duration = time.monotonic() - start
            TABLE_EXPORT_TIME.labels(table=self.table_name).observe(duration)
            result = TableExportResult(
                table=self.table_name,
                rows=rows,
                blobs=self.lobs.counters.blob_id,
                clobs=self.lobs.counters.clob_id,
                lob_bytes=self.lobs.bytes_written,
                checksums=self.checksums.values(self._checksummed_columns()),
                duration_seconds=duration,
            )
            add_span_attributes(rows=rows, blobs=result.blobs, clobs=result.clobs)
            self.logger.info(
                f"Table {self.table_name} exported: {rows} rows in {duration:.2f}s",
                rows=rows,
                blobs=result.blobs,
                clobs=result.clobs,
            )
            return result

    def _open_cursor(self) -> Any:
        cursor = None
        try:
            cursor = self.connection.cursor()
            cursor.execute(self._sql)
        except Exception as e:
            if cursor is not None:
                self._close_quietly(cursor.close, "cursor")
            raise SourceQueryError(self.table_name, self._sql, e) from e
        return cursor

    def _scan_columns(self, cursor: Any) -> None:
        self.columns = describe_columns(cursor.description, self.excluded_columns)
        self.checksums = ChecksumAccumulator(len(self.columns))

        has_lob_column = False
        for column in self.columns:
            if column.excluded:
                self.logger.debug(f"column #{column.ordinal}: {column.name}: is excluded")
                continue
            self.logger.debug(
                f"column #{column.ordinal}: {column.name}: "
                f"{column.type_name} ({column.precision} {column.scale})"
            )
            if column.kind.is_large_object:
                has_lob_column = True
                self.verification.append(
                    lob_load_check(self.table_name, column), self.table_name
                )

        if has_lob_column:
            self.lobs.prepare()

        column_list = ", ".join(
            escape_mysql_name(column.name) for column in self.included_columns
        )
        self._insert_prefix = (
            f"INSERT INTO {escape_mysql_name(self.table_name)} ({column_list}) VALUES ("
        )

    def _open_script(self) -> ScriptWriter:
        try:
            script = ScriptWriter(self.target_path, insert_sql_file_name(self.table_name), self.archive)
        except OSError as e:
            raise ExportIOError(self.table_name, self._script_path, e) from e
        try:
            script.write_line(banner(f"INSERT INTO {self.table_name.lower()}"))
        except OSError as e:
            self._close_quietly(script.close, "script")
            raise ExportIOError(self.table_name, self._script_path, e) from e
        return script

    def _fetch(self, cursor: Any) -> list:
        try:
            return cursor.fetchmany(self.fetch_size)
        except Exception as e:
            raise SourceQueryError(self.table_name, self._sql, e) from e

    def _stream_rows(self, cursor: Any, script: ScriptWriter) -> int:
        columns = self.included_columns
        rows = 0
        while True:
            batch = self._fetch(cursor)
            if not batch:
                break
            for row in batch:
                literals = []
                for column in columns:
                    encoded = self.encoder.encode(row[column.ordinal - 1], column, self.lobs)
                    self.checksums.add(column, encoded.checksum)
                    literals.append(encoded.literal)
                try:
                    script.write_line(self._insert_prefix + ", ".join(literals) + ");")
                except OSError as e:
                    raise ExportIOError(self.table_name, self._script_path, e) from e
            rows += len(batch)
            ROWS_EXPORTED.labels(table=self.table_name).inc(len(batch))
        return rows

    def _checksummed_columns(self) -> list[ColumnDescriptor]:
        return [
            column for column in self.included_columns
            if column.checksum_rule is not ChecksumRule.NONE
        ]

    def _finalize(self, script: ScriptWriter) -> None:
        self.lobs.close()
        for column in self.included_columns:
            line = column_check(self.table_name, column, self.checksums.value(column))
            if line is not None:
                self.verification.append(line, self.table_name)
        try:
            script.close()
        except OSError as e:
            raise ExportIOError(self.table_name, self._script_path, e) from e

    def _release(self, cursor: Any, script: ScriptWriter | None) -> None:
        # Only reached with open resources after a failure, or for the cursor
        if script is not None:
            self._close_quietly(script.close, "script")
        self._close_quietly(self.lobs.close, "large-object archive")
        if cursor is not None:
            self._close_quietly(cursor.close, "cursor")

    def _close_quietly(self, close, what: str) -> None:
        try:
            close()
        except Exception as e:
            self.logger.warning(f"Error closing {what} of table {self.table_name}: {e}")
