"""
Unit tests for large-object streaming and the per-table writer.
"""

import io
import zipfile
import zlib
from unittest.mock import Mock

import pytest

from schema_export.encode import ColumnDescriptor, ColumnKind
from schema_export.errors import ExportIOError, UnsupportedValueTypeError
from schema_export.lobs import (
    ArchiveSink,
    CopyBuffer,
    LargeObjectCounters,
    LargeObjectStreamer,
    LargeObjectWriter,
    OracleLobReader,
    open_large_object,
)


class TrackingBytesIO(io.BytesIO):
    """BytesIO that remembers its content after close."""

    def close(self):
        self.final = self.getvalue()
        super().close()


class TestCopyBuffer:
    """Test CopyBuffer"""

    def test_default_sizes(self):
        buffer = CopyBuffer()

        assert buffer.byte_size == 8192
        assert buffer.char_size == 4096

    def test_rejects_empty_buffer(self):
        with pytest.raises(ValueError):
            CopyBuffer(byte_size=0)


class TestLargeObjectStreamer:
    """Test LargeObjectStreamer"""

    def test_crc_independent_of_chunk_boundaries(self):
        # Arrange
        data = bytes(range(256)) * 100
        streamer = LargeObjectStreamer(CopyBuffer(byte_size=7))
        source = io.BytesIO(data)
        destination = TrackingBytesIO()

        # Act
        crc, size = streamer.copy_binary(source, destination)

        # Assert
        assert size == len(data)
        assert crc == zlib.crc32(data)
        assert destination.final == data

    def test_both_streams_closed(self):
        source = io.BytesIO(b"abc")
        destination = io.BytesIO()

        LargeObjectStreamer().copy_binary(source, destination)

        assert source.closed
        assert destination.closed

    def test_streams_closed_when_write_fails(self):
        source = io.BytesIO(b"abc")
        destination = Mock()
        destination.write.side_effect = OSError("disk full")

        with pytest.raises(OSError):
            LargeObjectStreamer().copy_binary(source, destination)

        assert source.closed
        destination.close.assert_called_once()

    def test_source_without_readinto(self):
        source = Mock(spec=["read", "close"])
        source.read.side_effect = [b"abc", b"de", b""]
        destination = TrackingBytesIO()

        crc, size = LargeObjectStreamer().copy_binary(source, destination)

        assert size == 5
        assert destination.final == b"abcde"
        assert crc == zlib.crc32(b"abcde")

    def test_empty_object(self):
        destination = TrackingBytesIO()

        crc, size = LargeObjectStreamer().copy_binary(io.BytesIO(b""), destination)

        assert (crc, size) == (0, 0)
        assert destination.final == b""

    def test_text_written_as_utf8(self):
        text = "Dörte zahlt 5 € " * 1000
        streamer = LargeObjectStreamer(CopyBuffer(char_size=3))
        destination = TrackingBytesIO()

        crc, size = streamer.copy_text(io.StringIO(text), destination)

        encoded = text.encode("utf-8")
        assert destination.final == encoded
        assert size == len(encoded)
        assert crc == zlib.crc32(encoded)


class FakeBlob:
    """BLOB double: 1-based byte offsets."""

    type = "BLOB"

    def __init__(self, data: bytes):
        self.data = data
        self.reads = []

    def size(self):
        return len(self.data)

    def read(self, offset, amount):
        self.reads.append((offset, amount))
        return self.data[offset - 1:offset - 1 + amount]


class FakeClob:
    """CLOB double: offsets and size in UTF-16 code units, like python-oracledb."""

    type = "CLOB"

    def __init__(self, text: str):
        self.data = text.encode("utf-16-le")
        self.reads = []

    def size(self):
        return len(self.data) // 2

    def read(self, offset, amount):
        self.reads.append((offset, amount))
        start = (offset - 1) * 2
        return self.data[start:start + amount * 2].decode("utf-16-le", "surrogatepass")


class TestOracleLobReader:
    """Test OracleLobReader"""

    def test_blob_in_chunks(self):
        # Arrange
        data = bytes(range(256)) * 3
        lob = FakeBlob(data)
        destination = TrackingBytesIO()

        # Act
        crc, size = LargeObjectStreamer(CopyBuffer(byte_size=100)).copy_binary(
            OracleLobReader(lob), destination
        )

        # Assert
        assert destination.final == data
        assert (crc, size) == (zlib.crc32(data), len(data))
        assert lob.reads[:3] == [(1, 100), (101, 100), (201, 100)]
        assert lob.reads[-1] == (701, 68)

    def test_clob_in_chunks(self):
        text = "Grüße aus Köln " * 20
        destination = TrackingBytesIO()

        LargeObjectStreamer(CopyBuffer(char_size=7)).copy_text(
            OracleLobReader(FakeClob(text)), destination
        )

        assert destination.final == text.encode("utf-8")

    @pytest.mark.parametrize("char_size", [1, 2, 3, 4, 5, 4096])
    def test_clob_outside_basic_plane(self, char_size):
        text = "\U0001F600" * 3 + "abcdef"
        destination = TrackingBytesIO()

        crc, size = LargeObjectStreamer(CopyBuffer(char_size=char_size)).copy_text(
            OracleLobReader(FakeClob(text)), destination
        )

        encoded = text.encode("utf-8")
        assert destination.final == encoded
        assert (crc, size) == (zlib.crc32(encoded), len(encoded))

    def test_clob_reads_advance_by_code_units(self):
        lob = FakeClob("\U0001F600\U0001F600ab")

        reader = OracleLobReader(lob)

        assert reader.read(4) == "\U0001F600\U0001F600"
        assert reader.read(4) == "ab"
        assert reader.read(4) == ""
        assert lob.reads == [(1, 4), (5, 2)]

    def test_split_surrogate_pair_completed(self):
        lob = FakeClob("a\U0001F600b")

        reader = OracleLobReader(lob)

        assert reader.read(2) == "a\U0001F600"
        assert reader.read(2) == "b"
        assert lob.reads == [(1, 2), (3, 1), (4, 1)]

    def test_empty_lob(self):
        reader = OracleLobReader(FakeClob(""))

        assert reader.read(10) == ""


class TestLargeObjectCounters:
    """Test LargeObjectCounters"""

    def test_separate_sequences(self):
        counters = LargeObjectCounters()

        assert counters.next_id(ColumnKind.BLOB) == 0
        assert counters.next_id(ColumnKind.BLOB) == 1
        assert counters.next_id(ColumnKind.CLOB) == 0
        assert counters.next_id(ColumnKind.BLOB) == 2

    def test_rejects_other_kinds(self):
        with pytest.raises(ValueError):
            LargeObjectCounters().next_id(ColumnKind.CHARACTER)


class TestOpenLargeObject:
    """Test open_large_object"""

    def setup_method(self):
        self.column = ColumnDescriptor(1, "DOC", "BLOB")

    def test_bytes(self):
        stream, is_text = open_large_object(b"abc", "T", self.column)

        assert stream.read() == b"abc"
        assert is_text is False

    def test_str(self):
        stream, is_text = open_large_object("abc", "T", self.column)

        assert stream.read() == "abc"
        assert is_text is True

    def test_unreadable_value(self):
        with pytest.raises(UnsupportedValueTypeError):
            open_large_object(3.14, "T", self.column)


class TestLargeObjectWriter:
    """Test LargeObjectWriter"""

    def setup_method(self):
        self.blob = ColumnDescriptor(2, "PHOTO", "BLOB")
        self.clob = ColumnDescriptor(3, "NOTES", "CLOB")

    def test_loose_files(self, target_dir):
        writer = LargeObjectWriter("T1", target_dir, archive=False, streamer=LargeObjectStreamer())

        reference, crc = writer.externalize(b"\x89PNG", self.blob, ColumnKind.BLOB)
        writer.close()

        assert reference == "IFNULL(LOAD_FILE(CONCAT(@import_dir, 'lobs_t1/0.blob')), 'iMpOrTeRrOr')"
        assert crc == zlib.crc32(b"\x89PNG")
        assert (target_dir / "lobs_t1" / "0.blob").read_bytes() == b"\x89PNG"
        assert writer.bytes_written == 4

    def test_zero_length_object_still_written(self, target_dir):
        writer = LargeObjectWriter("T1", target_dir, archive=False, streamer=LargeObjectStreamer())

        writer.externalize(b"", self.blob, ColumnKind.BLOB)
        reference, crc = writer.externalize(b"", self.blob, ColumnKind.BLOB)

        assert "lobs_t1/1.blob" in reference
        assert crc == 0
        assert (target_dir / "lobs_t1" / "1.blob").read_bytes() == b""

    def test_clob_numbering_separate_from_blob(self, target_dir):
        writer = LargeObjectWriter("T1", target_dir, archive=False, streamer=LargeObjectStreamer())

        writer.externalize(b"x", self.blob, ColumnKind.BLOB)
        reference, _ = writer.externalize("Grüße", self.clob, ColumnKind.CLOB)

        assert "lobs_t1/0.clob" in reference
        assert (target_dir / "lobs_t1" / "0.clob").read_text(encoding="utf-8") == "Grüße"

    def test_archive_entries(self, target_dir):
        writer = LargeObjectWriter("T1", target_dir, archive=True, streamer=LargeObjectStreamer())

        reference, _ = writer.externalize(b"abc", self.blob, ColumnKind.BLOB)
        writer.externalize(b"", self.blob, ColumnKind.BLOB)
        writer.close()

        assert "lobs_t1/0.blob" in reference
        with zipfile.ZipFile(target_dir / "lobs_t1" / "lobs.zip") as zf:
            assert zf.namelist() == ["0.blob", "1.blob"]
            assert zf.read("0.blob") == b"abc"
            assert zf.read("1.blob") == b""

    def test_prepare_without_objects_creates_no_archive(self, target_dir):
        writer = LargeObjectWriter("T1", target_dir, archive=True, streamer=LargeObjectStreamer())

        writer.prepare()
        writer.close()

        assert (target_dir / "lobs_t1").is_dir()
        assert not (target_dir / "lobs_t1" / "lobs.zip").exists()

    def test_missing_target_raises_export_io_error(self, tmp_path):
        writer = LargeObjectWriter(
            "T1", tmp_path / "missing", archive=False, streamer=LargeObjectStreamer()
        )

        with pytest.raises(ExportIOError) as exc_info:
            writer.externalize(b"x", self.blob, ColumnKind.BLOB)

        assert exc_info.value.table == "T1"


class TestArchiveSink:
    """Test ArchiveSink"""

    def test_close_without_entries(self, tmp_path):
        sink = ArchiveSink(tmp_path / "lobs.zip")

        sink.close()

        assert not (tmp_path / "lobs.zip").exists()
