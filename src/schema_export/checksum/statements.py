"""
Verification queries written to the check script.

Each function returns one complete, self-contained line. Lines are appended
to the shared check script in whatever order workers finish, which is safe
because every line only compares one stored value with one aggregate.
"""

from ..encode.columns import ChecksumRule, ColumnDescriptor
from ..encode.literals import IMPORT_ERROR_LITERAL
from ..naming import escape_mysql_name


def _check(expected: str, actual: str, label: str, table_name: str, where: str = "") -> str:
    line = (
        f"SELECT IF({expected} = {actual}, 'ok', 'FAILED') AS Result,"
        f" '{label}' AS Test"
        f" FROM {escape_mysql_name(table_name)}"
    )
    if where:
        line += f" WHERE {where}"
    return line + ";"


def row_count_check(table_name: str, row_count: int) -> str:
    """Compare the number of rows loaded with the number of rows exported."""
    table = escape_mysql_name(table_name)
    return _check(str(row_count), "COUNT(*)", f"{table} COUNT {row_count}", table_name)


def sum_check(table_name: str, column: ColumnDescriptor, expected: int) -> str:
    table = escape_mysql_name(table_name)
    col = escape_mysql_name(column.name)
    return _check(
        str(expected),
        f"IFNULL(SUM({col}), 0)",
        f"{table}.{col} SUM {expected}",
        table_name,
    )


def crc_xor_check(table_name: str, column: ColumnDescriptor, expected: int) -> str:
    table = escape_mysql_name(table_name)
    col = escape_mysql_name(column.name)
    return _check(
        str(expected),
        f"IFNULL(BIT_XOR(CRC32({col})), 0)",
        f"{table}.{col} checksum",
        table_name,
    )


def lob_load_check(table_name: str, column: ColumnDescriptor) -> str:
    """Count rows where LOAD_FILE() failed and the sentinel was stored instead."""
    table = escape_mysql_name(table_name)
    col = escape_mysql_name(column.name)
    return _check(
        "0",
        "COUNT(*)",
        f"{table}.{col} LOAD_FILE()",
        table_name,
        where=f"{col} = {IMPORT_ERROR_LITERAL}",
    )


def column_check(table_name: str, column: ColumnDescriptor, expected: int) -> str | None:
    """
    Build the checksum line for a column, or None if it is not checksummed

    The line type follows ``column.checksum_rule``, the same rule used when
    the value was accumulated.
    """
    rule = column.checksum_rule
    if rule is ChecksumRule.SUM:
        return sum_check(table_name, column, expected)
    if rule is ChecksumRule.CRC_XOR:
        return crc_xor_check(table_name, column, expected)
    return None
