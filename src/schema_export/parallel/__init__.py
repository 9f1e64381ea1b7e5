"""
Worker pool running table exports in parallel.
"""

from .pool import SENTINEL, ExportWorkerPool, build_table_queue

__all__ = [
    'SENTINEL',
    'ExportWorkerPool',
    'build_table_queue',
]
