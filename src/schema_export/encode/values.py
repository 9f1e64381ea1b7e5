"""
Mapping of source values to MySQL literals and checksum contributions.

The encoder is stateless. Large objects are handed to the per-table
large-object writer passed in by the caller, which owns the id counters and
the output files.
"""

import datetime
import decimal
from dataclasses import dataclass
from typing import Any, Protocol

import oracledb

from ..checksum.crc import crc32_of, crc32_of_text
from ..errors import UnsupportedValueTypeError
from .columns import (
    BLOB_TYPES,
    CLOB_TYPES,
    ChecksumRule,
    ColumnDescriptor,
    ColumnKind,
    native_type_name,
)
from .literals import (
    NULL_LITERAL,
    date_literal,
    decimal_text,
    mysql_string,
    timestamp_literal,
)

BINARY_TYPES = (bytes, bytearray, memoryview)


class LargeObjectSink(Protocol):
    """What the encoder needs from the table's large-object writer."""

    def externalize(
        self, value: Any, column: ColumnDescriptor, kind: ColumnKind
    ) -> tuple[str, int]:
        ...


@dataclass(frozen=True)
class EncodedValue:
    """
    Result of encoding one column value.

    Attributes:
        literal: Text placed in the VALUES list of the INSERT statement
        checksum: Contribution to the column checksum (flag value for sum
            columns, CRC-32 for CRC columns), None if nothing is folded
    """

    literal: str
    checksum: int | None = None


def large_object_kind(value: Any, column: ColumnDescriptor) -> ColumnKind | None:
    """
    Decide whether a value is exported as a large object, and of which kind

    Returns:
        ColumnKind.BLOB or ColumnKind.CLOB, or None for inline values
    """
    if column.kind.is_large_object:
        return column.kind
    if isinstance(value, BINARY_TYPES):
        return ColumnKind.BLOB
    if isinstance(value, oracledb.LOB):
        lob_type = native_type_name(value.type)
        if lob_type in CLOB_TYPES:
            return ColumnKind.CLOB
        if lob_type in BLOB_TYPES:
            return ColumnKind.BLOB
    return None


class ValueEncoder:
    """Encodes single column values for one table."""

    def __init__(self, table_name: str):
        self.table_name = table_name

    def encode(
        self,
        value: Any,
        column: ColumnDescriptor,
        lobs: LargeObjectSink,
    ) -> EncodedValue:
        """
        Encode one value

        Args:
            value: Value as returned by the source cursor
            column: Descriptor of the value's column
            lobs: Large-object writer of the current table

        Returns:
            EncodedValue with literal and checksum contribution

        Raises:
            UnsupportedValueTypeError: If no literal exists for the value's type
        """
        if value is None:
            return EncodedValue(NULL_LITERAL)

        lob_kind = large_object_kind(value, column)
        if lob_kind is not None:
            reference, crc = lobs.externalize(value, column, lob_kind)
            return EncodedValue(reference, self._crc_contribution(column, crc))

        if isinstance(value, (bool, int, decimal.Decimal)):
            return self._encode_number(value, column)

        if isinstance(value, str):
            return EncodedValue(
                mysql_string(value),
                self._crc_contribution(column, crc32_of_text(value)),
            )

        # datetime is a subclass of date, so it must be tested first
        if isinstance(value, datetime.datetime):
            return EncodedValue(timestamp_literal(value))
        if isinstance(value, datetime.date):
            return EncodedValue(date_literal(value))

        raise UnsupportedValueTypeError(self.table_name, column.name, value)

    def _encode_number(
        self, value: bool | int | decimal.Decimal, column: ColumnDescriptor
    ) -> EncodedValue:
        scale = column.scale if column.kind is ColumnKind.NUMERIC else None
        text = decimal_text(value, scale)
        rule = column.checksum_rule
        if rule is ChecksumRule.SUM:
            return EncodedValue(text, int(value))
        if rule is ChecksumRule.CRC_XOR:
            return EncodedValue(text, crc32_of(text.encode("ascii")))
        return EncodedValue(text)

    @staticmethod
    def _crc_contribution(column: ColumnDescriptor, crc: int) -> int | None:
        if column.checksum_rule is ChecksumRule.CRC_XOR:
            return crc
        return None
