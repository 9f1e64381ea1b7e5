"""
Prometheus metrics for export runs.

Exposed over HTTP only when the CLI is started with ``--metrics-port``.
"""

from prometheus_client import Counter, Gauge, Histogram

from utils.metrics import get_or_create_metric

TABLES_EXPORTED = get_or_create_metric(
    lambda: Counter(
        "export_tables_total",
        "Tables processed by the export workers",
        ["status"],  # success, failed
    ),
    "export_tables",
)

ROWS_EXPORTED = get_or_create_metric(
    lambda: Counter(
        "export_rows_total",
        "Rows written to INSERT scripts",
        ["table"],
    ),
    "export_rows",
)

LOB_BYTES_WRITTEN = get_or_create_metric(
    lambda: Counter(
        "export_lob_bytes_total",
        "Bytes of large objects written to side files or archives",
        ["kind"],  # blob, clob
    ),
    "export_lob_bytes",
)

LOBS_WRITTEN = get_or_create_metric(
    lambda: Counter(
        "export_lobs_total",
        "Large objects written to side files or archives",
        ["kind"],
    ),
    "export_lobs",
)

TABLE_EXPORT_TIME = get_or_create_metric(
    lambda: Histogram(
        "export_table_seconds",
        "Time to export one table",
        ["table"],
        buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600],
    ),
    "export_table_seconds",
)

EXPORT_RUN_TIME = get_or_create_metric(
    lambda: Histogram(
        "export_run_seconds",
        "Time for a complete export run",
        ["worker_count"],
        buckets=[1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600, 7200],
    ),
    "export_run_seconds",
)

ACTIVE_WORKERS = get_or_create_metric(
    lambda: Gauge("export_active_workers", "Number of workers exporting a table"),
    "export_active_workers",
)

QUEUE_SIZE = get_or_create_metric(
    lambda: Gauge("export_queue_size", "Tables waiting to be exported"),
    "export_queue_size",
)
