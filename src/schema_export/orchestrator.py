"""
One complete export run.

The orchestrator discovers the tables of the source schema, writes the
truncate script and the row-count checks, queues every non-empty table
for the worker pool and finally completes the master script.

Nothing is cleaned up after a failure: the target directory keeps
whatever was written, and the master script lacks its closing part, so a
partial export cannot be mistaken for a complete one.
"""

import logging
import time
from pathlib import Path
from typing import Any

from opentelemetry import trace

from utils.tracing import add_span_attributes, trace_operation

from .checksum import row_count_check
from .config import ExportConfig, assert_empty_directory
from .errors import ExportFailedError, ExportIOError
from .lobs import CopyBuffer
from .naming import CHECK_SQL, MAIN_SQL, TRUNCATE_SQL, insert_sql_file_name
from .parallel import ExportWorkerPool, build_table_queue
from .scripts import (
    ScriptWriter,
    VerificationSink,
    banner,
    main_foot,
    main_head,
    source_statement,
    truncate_statement,
)
from .source import SourceDatabase, create_source
from .table_job import FETCH_SIZE, TableExportJob

logger = logging.getLogger(__name__)


class ExportOrchestrator:
    """
    Runs an export from configuration to finished target directory.
    """

    def __init__(
        self,
        config: ExportConfig,
        source: SourceDatabase | None = None,
        fail_fast: bool = True,
        fetch_size: int = FETCH_SIZE,
    ):
        """
        Args:
            config: Validated export configuration
            source: Source database (default: created from the configuration)
            fail_fast: Abort on the first failed table (default: True)
            fetch_size: Rows fetched per round trip by each job
        """
        self.config = config
        self.source = source or create_source(
            config.source_driver,
            config.source_url,
            config.source_user,
            config.source_password,
        )
        self.fail_fast = fail_fast
        self.fetch_size = fetch_size
        self.target_path = Path(config.target_path)
        self.verification: VerificationSink | None = None

    def run(self) -> dict[str, Any]:
        """
        Export the schema

        Returns:
            Summary of the worker pool plus discovery counts
            (``tables_discovered``, ``tables_excluded``, ``empty_tables``)

        Raises:
            ConfigurationError: If the target directory is missing or not empty
            SourceQueryError: If discovery queries fail
            ExportIOError: If a script cannot be written
            ExportFailedError: If any table failed or the run was aborted
        """
        start = time.monotonic()
        assert_empty_directory(self.target_path)

        with trace_operation(
            "export_schema",
            kind=trace.SpanKind.INTERNAL,
            source=self.source.url,
            schema=self.source.user,
            workers=self.config.parallel_threads,
            zip=self.config.zip,
        ):
            main = truncate = check = None
            self.verification = None
            try:
                truncate = self._open_script(TRUNCATE_SQL)
                check = self._open_script(CHECK_SQL)
                self.verification = VerificationSink(check)
                main = self._open_script(MAIN_SQL)

                self._write(truncate, truncate.write_line, banner("TRUNCATE TABLES"))
                self.verification.append(banner("VALIDITY CHECKS"))
                self._write(
                    main,
                    main.write,
                    main_head(self.source.url, self.source.user, self.config.import_dir),
                )

                discovery = self._discover(truncate, main)

                pool = ExportWorkerPool(
                    workers=self.config.parallel_threads,
                    connect=self.source.connect,
                    job_factory=self._create_job,
                    fail_fast=self.fail_fast,
                )
                summary = pool.run(
                    build_table_queue(discovery["tables"], self.config.parallel_threads)
                )
                summary.update(
                    tables_discovered=discovery["discovered"],
                    tables_excluded=discovery["excluded"],
                    empty_tables=discovery["empty"],
                )

                succeeded = not summary["errors"] and not summary["aborted"]
                if succeeded:
                    self._write(main, main.write, main_foot())
            finally:
                close_error = self._close_scripts(main, check, truncate)
            if close_error is not None:
                raise close_error

            add_span_attributes(
                tables=summary["total_tables"],
                successful=summary["successful"],
                failed=summary["failed"],
            )

        if not succeeded:
            raise ExportFailedError(summary)

        logger.info("Export finished successfully")
        logger.info(f"Elapsed time: {time.monotonic() - start:,.2f} sec")
        return summary

    def _discover(self, truncate: ScriptWriter, main: ScriptWriter) -> dict[str, Any]:
        """
        List the source tables and write their truncate and count lines.

        Every table that is not excluded is truncated and row-counted, also
        empty ones. Only non-empty tables are sourced and queued.
        """
        discovery = {"tables": [], "discovered": 0, "excluded": [], "empty": []}
        connection = self.source.connect()
        try:
            for table in self.source.list_tables(connection):
                discovery["discovered"] += 1
                logger.debug(f"tableName: {table}")
                if self.config.is_table_excluded(table):
                    logger.debug(f"  {table} is excluded table")
                    discovery["excluded"].append(table)
                    continue

                self._write(truncate, truncate.write_line, truncate_statement(table))
                row_count = self.source.count_rows(connection, table)
                self.verification.append(row_count_check(table, row_count), table)

                if row_count == 0:
                    logger.debug(f"  {table} is empty table")
                    discovery["empty"].append(table)
                    continue

                self._write(main, main.write_line, source_statement(insert_sql_file_name(table)))
                discovery["tables"].append(table)
        finally:
            connection.close()

        logger.info(
            f"Discovered {discovery['discovered']} tables: "
            f"{len(discovery['tables'])} to export, "
            f"{len(discovery['empty'])} empty, "
            f"{len(discovery['excluded'])} excluded"
        )
        return discovery

    def _create_job(self, table: str, connection: Any, buffer: CopyBuffer) -> TableExportJob:
        return TableExportJob(
            table_name=table,
            connection=connection,
            target_path=self.target_path,
            verification=self.verification,
            excluded_columns=self.config.excluded_columns_for_table(table),
            archive=self.config.zip,
            buffer=buffer,
            fetch_size=self.fetch_size,
        )

    def _open_script(self, file_name: str) -> ScriptWriter:
        try:
            return ScriptWriter(self.target_path, file_name, self.config.zip)
        except OSError as e:
            raise ExportIOError(None, self.target_path / file_name, e) from e

    @staticmethod
    def _write(script: ScriptWriter, write, text: str) -> None:
        try:
            write(text)
        except OSError as e:
            raise ExportIOError(None, script.path, e) from e

    def _close_scripts(self, *scripts: ScriptWriter | None) -> ExportIOError | None:
        """Close every script; return the first close error instead of raising it."""
        first_error = None
        for script in scripts:
            if script is None:
                continue
            try:
                script.close()
            except OSError as e:
                logger.error(f"Error closing {script.path}: {e}")
                if first_error is None:
                    first_error = ExportIOError(None, script.path, e)
        return first_error
