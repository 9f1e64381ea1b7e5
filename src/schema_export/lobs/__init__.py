"""
Large-object output for exported tables.

This submodule provides:
- Chunked copying with a running CRC-32 (streamer)
- Side-file and archive sinks (streamer)
- The per-table writer that numbers and references objects (writer)
"""

from .streamer import (
    ArchiveSink,
    CopyBuffer,
    LargeObjectStreamer,
    LooseFileSink,
)
from .writer import (
    LargeObjectCounters,
    LargeObjectWriter,
    OracleLobReader,
    open_large_object,
)

__all__ = [
    'ArchiveSink',
    'CopyBuffer',
    'LargeObjectStreamer',
    'LooseFileSink',
    'LargeObjectCounters',
    'LargeObjectWriter',
    'OracleLobReader',
    'open_large_object',
]
