"""
Chunked copying of large objects with a running CRC-32.

Objects are never held in memory as a whole. Each worker owns one
``CopyBuffer`` and reuses it for every object it copies.
"""

import logging
import zipfile
import zlib
from pathlib import Path
from typing import BinaryIO, TextIO

logger = logging.getLogger(__name__)

BYTE_BUFFER_SIZE = 1 << 13
CHAR_CHUNK_SIZE = 1 << 12


class CopyBuffer:
    """Reusable scratch space for one worker."""

    def __init__(self, byte_size: int = BYTE_BUFFER_SIZE, char_size: int = CHAR_CHUNK_SIZE):
        if byte_size <= 0 or char_size <= 0:
            raise ValueError("Buffer sizes must be positive")
        self.data = bytearray(byte_size)
        self.view = memoryview(self.data)
        self.char_size = char_size

    @property
    def byte_size(self) -> int:
        return len(self.data)


class LargeObjectStreamer:
    """
    Copies one large object from a source stream to a destination stream.

    Both streams are closed when the copy ends, whether it succeeded or not.
    """

    def __init__(self, buffer: CopyBuffer | None = None):
        self.buffer = buffer or CopyBuffer()

    def copy_binary(self, source: BinaryIO, destination: BinaryIO) -> tuple[int, int]:
        """
        Copy bytes in chunks of at most the buffer size

        Args:
            source: Readable binary stream. ``readinto`` is used when the
                stream has it, ``read`` otherwise.
            destination: Writable binary stream

        Returns:
            Tuple of (CRC-32 of all bytes copied, number of bytes copied)
        """
        crc = 0
        total = 0
        view = self.buffer.view
        try:
            try:
                readinto = getattr(source, "readinto", None)
                while True:
                    if readinto is not None:
                        count = readinto(view) or 0
                        chunk = view[:count]
                    else:
                        chunk = source.read(self.buffer.byte_size)
                        count = len(chunk)
                    if count == 0:
                        break
                    destination.write(chunk)
                    crc = zlib.crc32(chunk, crc)
                    total += count
            finally:
                destination.close()
        finally:
            source.close()
        return crc & 0xFFFFFFFF, total

    def copy_text(self, source: TextIO, destination: BinaryIO) -> tuple[int, int]:
        """
        Copy characters in chunks, writing them as UTF-8

        The CRC covers the UTF-8 bytes written, which is what MySQL's
        CRC32() sees after LOAD_FILE().

        Args:
            source: Readable text stream
            destination: Writable binary stream

        Returns:
            Tuple of (CRC-32 of the encoded bytes, number of bytes written)
        """
        crc = 0
        total = 0
        try:
            try:
                while True:
                    chars = source.read(self.buffer.char_size)
                    if not chars:
                        break
                    encoded = chars.encode("utf-8")
                    destination.write(encoded)
                    crc = zlib.crc32(encoded, crc)
                    total += len(encoded)
            finally:
                destination.close()
        finally:
            source.close()
        return crc & 0xFFFFFFFF, total


class LooseFileSink:
    """Writes every large object of a table to its own file."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def location(self, name: str) -> Path:
        return self.directory / name

    def open(self, name: str) -> BinaryIO:
        return open(self.location(name), "wb")

    def close(self) -> None:
        pass


class ArchiveSink:
    """
    Writes every large object of a table as an entry of one zip archive.

    The archive file is created with the first object. A table without any
    non-NULL large object gets no archive.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._zip: zipfile.ZipFile | None = None

    def location(self, name: str) -> Path:
        return self.path

    def open(self, name: str) -> BinaryIO:
        if self._zip is None:
            self._zip = zipfile.ZipFile(self.path, "w", compression=zipfile.ZIP_DEFLATED)
            logger.debug(f"Opened large-object archive {self.path}")
        # Entry size is unknown up front
        return self._zip.open(name, "w", force_zip64=True)

    def close(self) -> None:
        if self._zip is not None:
            zf, self._zip = self._zip, None
            zf.close()
