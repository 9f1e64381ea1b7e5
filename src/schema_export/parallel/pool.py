"""
Parallel export of tables with a fixed number of workers.

The table queue is filled completely before the workers start and ends
with one sentinel per worker, so every worker stops after it took its
sentinel and no worker waits forever.

Each worker opens its own source connection and owns one copy buffer.
Jobs on different workers share nothing but the verification sink.

Failure policy:
- UnsupportedValueTypeError always aborts the run.
- Any other job error aborts the run when ``fail_fast`` is set (the
  default), otherwise it is recorded for that table and the run goes on.
- After an abort, running tables finish and queued tables are skipped.
"""

import logging
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Protocol

from opentelemetry import trace

from utils.tracing import trace_operation

from ..errors import UnsupportedValueTypeError
from ..lobs import CopyBuffer
from ..metrics import ACTIVE_WORKERS, EXPORT_RUN_TIME, QUEUE_SIZE, TABLES_EXPORTED
from ..table_job import TableExportResult

logger = logging.getLogger(__name__)

# Marks the end of the table queue for one worker
SENTINEL = object()


class ExportJob(Protocol):
    def run(self) -> TableExportResult:
        ...


JobFactory = Callable[[str, Any, CopyBuffer], ExportJob]


def build_table_queue(tables: Iterable[str], workers: int) -> queue.Queue:
    """
    Build the work queue for a run

    Args:
        tables: Table names in export order
        workers: Number of workers that will consume the queue

    Returns:
        Queue holding the tables followed by exactly ``workers`` sentinels
    """
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")
    tables_queue = queue.Queue()
    for table in tables:
        tables_queue.put(table)
    for _ in range(workers):
        tables_queue.put(SENTINEL)
    return tables_queue


class ExportWorkerPool:
    """
    Runs table export jobs on N worker threads.
    """

    def __init__(
        self,
        workers: int,
        connect: Callable[[], Any],
        job_factory: JobFactory,
        fail_fast: bool = True,
    ):
        """
        Initialize the pool.

        Args:
            workers: Number of worker threads (and source connections)
            connect: Opens a new source connection; called once per worker
            job_factory: Builds the job for (table, connection, buffer)
            fail_fast: Abort the run on the first failed table (default: True)
        """
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.workers = workers
        self.connect = connect
        self.job_factory = job_factory
        self.fail_fast = fail_fast

        self._abort = threading.Event()
        self._lock = threading.Lock()
        self._summary: dict[str, Any] = {}

        logger.info(
            f"ExportWorkerPool initialized: workers={workers}, fail_fast={fail_fast}"
        )

    @property
    def aborted(self) -> bool:
        return self._abort.is_set()

    def run(self, tables_queue: queue.Queue) -> dict[str, Any]:
        """
        Export every table in the queue.

        Args:
            tables_queue: Queue built by ``build_table_queue`` with the same
                worker count

        Returns:
            Summary dictionary with structure:
            {
                'total_tables': int,
                'successful': int,
                'failed': int,
                'skipped': List[str],
                'results': List[Dict],
                'errors': List[Dict],
                'aborted': bool,
                'duration_seconds': float,
                'timestamp': str (ISO format),
                'workers': int
            }
        """
        table_count = max(tables_queue.qsize() - self.workers, 0)

        with trace_operation(
            "export_tables",
            kind=trace.SpanKind.INTERNAL,
            table_count=table_count,
            workers=self.workers,
        ):
            with EXPORT_RUN_TIME.labels(worker_count=self.workers).time():
                start_time = datetime.now(timezone.utc)
                self._abort.clear()
                self._summary = {
                    "total_tables": table_count,
                    "successful": 0,
                    "failed": 0,
                    "skipped": [],
                    "results": [],
                    "errors": [],
                    "aborted": False,
                    "workers": self.workers,
                }

                logger.info(
                    f"Starting export of {table_count} tables with {self.workers} workers"
                )
                QUEUE_SIZE.set(table_count)

                with ThreadPoolExecutor(
                    max_workers=self.workers, thread_name_prefix="export-worker"
                ) as executor:
                    futures = [
                        executor.submit(self._worker, number, tables_queue)
                        for number in range(self.workers)
                    ]
                    for future in as_completed(futures):
                        # Workers record their own failures; this only
                        # surfaces bugs in the worker loop itself
                        future.result()

                ACTIVE_WORKERS.set(0)
                QUEUE_SIZE.set(0)

                end_time = datetime.now(timezone.utc)
                summary = self._summary
                summary["aborted"] = self.aborted
                summary["duration_seconds"] = (end_time - start_time).total_seconds()
                summary["timestamp"] = end_time.isoformat()

                logger.info(
                    f"Export complete: "
                    f"{summary['successful']} successful, "
                    f"{summary['failed']} failed, "
                    f"{len(summary['skipped'])} skipped "
                    f"out of {summary['total_tables']} tables "
                    f"in {summary['duration_seconds']:.2f}s"
                )
                return summary

    def _worker(self, number: int, tables_queue: queue.Queue) -> None:
        try:
            connection = self.connect()
        except Exception as e:
            logger.error(f"Worker {number} cannot connect to the source: {e}")
            with self._lock:
                self._summary["errors"].append(
                    {"table": None, "worker": number, "error": str(e), "type": type(e).__name__}
                )
            self._abort.set()
            self._drain(tables_queue)
            return

        buffer = CopyBuffer()
        try:
            while True:
                table = tables_queue.get()
                if table is SENTINEL:
                    break
                if self.aborted:
                    self._skip(table)
                    continue
                self._export(table, connection, buffer)
        finally:
            try:
                connection.close()
            except Exception as e:
                logger.warning(f"Worker {number} failed to close its connection: {e}")
        logger.debug(f"Worker {number} finished")

    def _drain(self, tables_queue: queue.Queue) -> None:
        while True:
            table = tables_queue.get()
            if table is SENTINEL:
                return
            self._skip(table)

    def _skip(self, table: str) -> None:
        logger.warning(f"Skipping table {table}, export aborted")
        with self._lock:
            self._summary["skipped"].append(table)
        QUEUE_SIZE.dec()

    def _export(self, table: str, connection: Any, buffer: CopyBuffer) -> None:
        QUEUE_SIZE.dec()
        ACTIVE_WORKERS.inc()
        start = time.monotonic()
        try:
            result = self.job_factory(table, connection, buffer).run()
        except UnsupportedValueTypeError as e:
            logger.critical(f"✗ Table {table}: {e}, aborting export")
            self._record_failure(table, e, time.monotonic() - start)
            self._abort.set()
        except Exception as e:
            logger.error(f"✗ Table {table} export failed: {e}", exc_info=True)
            self._record_failure(table, e, time.monotonic() - start)
            if self.fail_fast:
                logger.warning("Fail-fast enabled, skipping remaining tables")
                self._abort.set()
        else:
            with self._lock:
                self._summary["successful"] += 1
                self._summary["results"].append(result.to_dict())
            TABLES_EXPORTED.labels(status="success").inc()
            logger.info(f"✓ Table {table} exported ({result.rows} rows)")
        finally:
            ACTIVE_WORKERS.dec()

    def _record_failure(self, table: str, error: Exception, duration: float) -> None:
        failure = TableExportResult.failure(table, error, duration)
        with self._lock:
            self._summary["failed"] += 1
            self._summary["results"].append(failure.to_dict())
            self._summary["errors"].append(
                {"table": table, "error": failure.error, "type": failure.error_type}
            )
        TABLES_EXPORTED.labels(status="failed").inc()
