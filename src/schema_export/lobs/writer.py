"""
Per-table large-object output.

A ``LargeObjectWriter`` belongs to exactly one table export job. It numbers
the table's BLOBs and CLOBs (separate sequences, both starting at 0),
streams each object to a side file or archive entry and returns the
expression that loads it back at import time.
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, TextIO

import oracledb

from ..encode.columns import CLOB_TYPES, ColumnDescriptor, ColumnKind, native_type_name
from ..encode.literals import lob_reference
from ..errors import ExportIOError, UnsupportedValueTypeError
from ..metrics import LOB_BYTES_WRITTEN, LOBS_WRITTEN
from ..naming import (
    BLOB_SUFFIX,
    CLOB_SUFFIX,
    lob_archive_path,
    lob_dir_path,
    lob_file_name,
    relative_lob_path,
)
from .streamer import ArchiveSink, LargeObjectStreamer, LooseFileSink

logger = logging.getLogger(__name__)


@dataclass
class LargeObjectCounters:
    """Next id to assign per large-object kind."""

    blob_id: int = 0
    clob_id: int = 0

    def next_id(self, kind: ColumnKind) -> int:
        """Return the next id for ``kind`` and advance that sequence."""
        if kind is ColumnKind.BLOB:
            lob_id, self.blob_id = self.blob_id, self.blob_id + 1
        elif kind is ColumnKind.CLOB:
            lob_id, self.clob_id = self.clob_id, self.clob_id + 1
        else:
            raise ValueError(f"Not a large-object kind: {kind}")
        return lob_id


def is_text_lob(lob: oracledb.LOB) -> bool:
    return native_type_name(lob.type) in CLOB_TYPES


def utf16_units(text: str) -> int:
    """Length of ``text`` in UTF-16 code units, the unit of CLOB offsets."""
    return len(text.encode("utf-16-le", "surrogatepass")) // 2


class OracleLobReader:
    """
    File-like view of a python-oracledb LOB.

    Reads by offset (1-based, in UTF-16 code units for CLOBs and bytes for
    BLOBs) until the size reported when the reader was created is exhausted.
    A read never ends between the two halves of a surrogate pair. The LOB
    itself is left open; it belongs to the cursor row.
    """

    def __init__(self, lob: oracledb.LOB):
        self.lob = lob
        self.is_text = is_text_lob(lob)
        self._offset = 1
        self._remaining = lob.size()
        self._empty = "" if self.is_text else b""

    def read(self, size: int = -1) -> bytes | str:
        if self._remaining <= 0:
            return self._empty
        amount = self._remaining if size is None or size < 0 else min(size, self._remaining)
        chunk = self.lob.read(self._offset, amount)
        if not chunk:
            self._remaining = 0
            return self._empty
        if not self.is_text:
            self._offset += len(chunk)
            self._remaining -= len(chunk)
            return chunk

        units = utf16_units(chunk)
        if "\ud800" <= chunk[-1] <= "\udbff" and units < self._remaining:
            # Complete the pair with its low surrogate
            tail = self.lob.read(self._offset + units, 1)
            units += utf16_units(tail)
            joined = (chunk + tail).encode("utf-16-le", "surrogatepass")
            chunk = joined.decode("utf-16-le", "surrogatepass")
        self._offset += units
        self._remaining -= units
        return chunk

    def close(self) -> None:
        self._remaining = 0


def open_large_object(
    value: Any, table_name: str, column: ColumnDescriptor
) -> tuple[BinaryIO | TextIO, bool]:
    """
    Adapt a large-object value to a readable stream

    Args:
        value: bytes-like, str, python-oracledb LOB or an open stream
        table_name: Table being exported, for error reporting
        column: Column of the value, for error reporting

    Returns:
        Tuple of (stream, True if the stream yields str)

    Raises:
        UnsupportedValueTypeError: If the value cannot be read as a stream
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return io.BytesIO(value), False
    if isinstance(value, str):
        return io.StringIO(value), True
    if isinstance(value, oracledb.LOB):
        return OracleLobReader(value), is_text_lob(value)
    if isinstance(value, io.TextIOBase):
        return value, True
    if hasattr(value, "read"):
        return value, False
    raise UnsupportedValueTypeError(table_name, column.name, value)


class LargeObjectWriter:
    """
    Writes the large objects of one table.

    Loose mode creates ``lobs_<table>/<id>.blob|clob`` files, archive mode
    puts the same names into ``lobs_<table>/lobs.zip``.
    """

    def __init__(
        self,
        table_name: str,
        target_path: str | Path,
        archive: bool,
        streamer: LargeObjectStreamer,
    ):
        self.table_name = table_name
        self.target_path = Path(target_path)
        self.directory = lob_dir_path(target_path, table_name)
        self.archive = archive
        self.streamer = streamer
        self.counters = LargeObjectCounters()
        self.bytes_written = 0
        self._sink: LooseFileSink | ArchiveSink | None = None

    def prepare(self) -> None:
        """
        Create the table's large-object directory

        Raises:
            ExportIOError: If the directory cannot be created
        """
        if self._sink is not None:
            return
        try:
            self.directory.mkdir(exist_ok=True)
        except OSError as e:
            raise ExportIOError(self.table_name, self.directory, e) from e
        if self.archive:
            self._sink = ArchiveSink(lob_archive_path(self.target_path, self.table_name))
        else:
            self._sink = LooseFileSink(self.directory)

    def externalize(
        self, value: Any, column: ColumnDescriptor, kind: ColumnKind
    ) -> tuple[str, int]:
        """
        Stream one object out and return its reference

        Zero-length objects still produce an (empty) file or entry.

        Args:
            value: The large-object value of the current row
            column: Column of the value
            kind: ColumnKind.BLOB or ColumnKind.CLOB

        Returns:
            Tuple of (LOAD_FILE() expression, CRC-32 of the bytes written)

        Raises:
            ExportIOError: If the file or archive entry cannot be written
            UnsupportedValueTypeError: If the value cannot be read as a stream
        """
        self.prepare()
        suffix = CLOB_SUFFIX if kind is ColumnKind.CLOB else BLOB_SUFFIX
        lob_id = self.counters.next_id(kind)
        name = lob_file_name(suffix, lob_id)

        source, is_text = open_large_object(value, self.table_name, column)
        try:
            destination = self._sink.open(name)
        except OSError as e:
            source.close()
            raise ExportIOError(self.table_name, self._sink.location(name), e) from e

        try:
            if is_text:
                crc, size = self.streamer.copy_text(source, destination)
            else:
                crc, size = self.streamer.copy_binary(source, destination)
        except OSError as e:
            raise ExportIOError(self.table_name, self._sink.location(name), e) from e

        self.bytes_written += size
        LOBS_WRITTEN.labels(kind=kind.value).inc()
        LOB_BYTES_WRITTEN.labels(kind=kind.value).inc(size)

        return lob_reference(relative_lob_path(self.table_name, suffix, lob_id)), crc

    def close(self) -> None:
        """
        Close the archive, if one was opened

        Raises:
            ExportIOError: If the archive cannot be finished
        """
        if self._sink is None:
            return
        sink, self._sink = self._sink, None
        try:
            sink.close()
        except OSError as e:
            raise ExportIOError(self.table_name, self.directory, e) from e
