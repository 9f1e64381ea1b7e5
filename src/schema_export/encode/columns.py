"""
Column metadata for one exported table.

Descriptors are built once from DB-API ``cursor.description`` and never
change while the table is exported. The column kind decides both how a
value is checksummed and which verification query is generated for it, so
the two sides can never disagree.
"""

import datetime
import decimal
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence


class ColumnKind(str, Enum):
    """Classification of a column by its native type tag."""

    FLAG = "flag"
    NUMERIC = "numeric"
    CHARACTER = "character"
    BLOB = "blob"
    CLOB = "clob"
    TEMPORAL = "temporal"
    OTHER = "other"

    @property
    def is_large_object(self) -> bool:
        return self in (ColumnKind.BLOB, ColumnKind.CLOB)


class ChecksumRule(str, Enum):
    """How values of a column are combined into its running checksum."""

    SUM = "sum"
    CRC_XOR = "crc_xor"
    NONE = "none"


NUMERIC_TYPES = frozenset({
    "NUMBER", "NUMERIC", "DECIMAL", "INTEGER", "INT", "SMALLINT", "BIGINT",
    "TINYINT", "BIT",
})
CHARACTER_TYPES = frozenset({
    "VARCHAR", "VARCHAR2", "CHAR", "NCHAR", "NVARCHAR", "NVARCHAR2",
})
BLOB_TYPES = frozenset({"BLOB", "RAW", "LONG_RAW", "BINARY", "VARBINARY"})
CLOB_TYPES = frozenset({"CLOB", "NCLOB", "LONG"})
TEMPORAL_TYPES = frozenset({
    "DATE", "DATETIME", "TIMESTAMP", "TIMESTAMP_TZ", "TIMESTAMP_LTZ",
})

# pyodbc reports Python types instead of database type names
PYTHON_TYPE_NAMES = {
    decimal.Decimal: "NUMBER",
    int: "NUMBER",
    bool: "BIT",
    float: "FLOAT",
    str: "VARCHAR",
    bytes: "BLOB",
    bytearray: "BLOB",
    datetime.datetime: "TIMESTAMP",
    datetime.date: "DATE",
}


def native_type_name(type_code: Any) -> str:
    """
    Normalize a DB-API type code to an upper-case type tag

    Handles python-oracledb ``DbType`` objects (``DB_TYPE_NUMBER`` becomes
    ``NUMBER``), pyodbc Python type codes and plain strings.

    Args:
        type_code: Second element of a ``cursor.description`` entry

    Returns:
        Type tag such as ``NUMBER``, ``VARCHAR`` or ``BLOB``
    """
    if isinstance(type_code, type):
        return PYTHON_TYPE_NAMES.get(type_code, type_code.__name__.upper())
    name = getattr(type_code, "name", None)
    if not isinstance(name, str):
        name = str(type_code)
    name = name.upper()
    if name.startswith("DB_TYPE_"):
        name = name[len("DB_TYPE_"):]
    return name


@dataclass(frozen=True)
class ColumnDescriptor:
    """Immutable description of one source column."""

    ordinal: int
    name: str
    type_name: str
    precision: int | None = None
    scale: int | None = None
    excluded: bool = False

    @classmethod
    def from_description(
        cls,
        ordinal: int,
        description: Sequence[Any],
        excluded_columns: frozenset[str] | set[str] = frozenset(),
    ) -> "ColumnDescriptor":
        """
        Build a descriptor from one ``cursor.description`` entry.

        Args:
            ordinal: 1-based column position
            description: DB-API 7-item sequence
                (name, type_code, display_size, internal_size, precision, scale, null_ok)
            excluded_columns: Lower-cased names of excluded columns of this table
        """
        name = description[0]
        return cls(
            ordinal=ordinal,
            name=name,
            type_name=native_type_name(description[1]),
            precision=description[4] if len(description) > 4 else None,
            scale=description[5] if len(description) > 5 else None,
            excluded=name.lower() in excluded_columns,
        )

    @property
    def is_flag(self) -> bool:
        # NUMBER(1) becomes BIT(1) in MySQL, where CRC32() of the value is
        # not the CRC32 of the text '0'/'1'
        return (
            self.type_name in NUMERIC_TYPES
            and self.precision == 1
            and self.scale == 0
        )

    @property
    def kind(self) -> ColumnKind:
        if self.type_name in NUMERIC_TYPES:
            return ColumnKind.FLAG if self.is_flag else ColumnKind.NUMERIC
        if self.type_name in CHARACTER_TYPES:
            return ColumnKind.CHARACTER
        if self.type_name in BLOB_TYPES:
            return ColumnKind.BLOB
        if self.type_name in CLOB_TYPES:
            return ColumnKind.CLOB
        if self.type_name in TEMPORAL_TYPES:
            return ColumnKind.TEMPORAL
        return ColumnKind.OTHER

    @property
    def checksum_rule(self) -> ChecksumRule:
        kind = self.kind
        if kind is ColumnKind.FLAG:
            return ChecksumRule.SUM
        if kind in (
            ColumnKind.NUMERIC,
            ColumnKind.CHARACTER,
            ColumnKind.BLOB,
            ColumnKind.CLOB,
        ):
            return ChecksumRule.CRC_XOR
        return ChecksumRule.NONE


def describe_columns(
    description: Sequence[Sequence[Any]],
    excluded_columns: frozenset[str] | set[str] = frozenset(),
) -> list[ColumnDescriptor]:
    """Build descriptors for every column of a cursor, in cursor order."""
    return [
        ColumnDescriptor.from_description(ordinal, entry, excluded_columns)
        for ordinal, entry in enumerate(description, start=1)
    ]
