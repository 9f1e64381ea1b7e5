"""
Order-independent running checksums per column.

The destination recomputes the same aggregate after the load
(``BIT_XOR(CRC32(col))`` or ``SUM(col)``), so rows may be delivered and
combined in any order.
"""

from collections.abc import Iterable

from ..encode.columns import ChecksumRule, ColumnDescriptor


class ChecksumAccumulator:
    """
    Running checksum per column ordinal.

    Slot 0 is unused so that the slot index equals the 1-based column
    ordinal of the cursor.
    """

    def __init__(self, column_count: int):
        self._values = [0] * (column_count + 1)

    def add(self, column: ColumnDescriptor, contribution: int | None) -> None:
        """
        Fold one value's contribution into the column's running value

        Args:
            column: Column the value belongs to
            contribution: Flag value for SUM columns, CRC-32 for CRC_XOR
                columns, None if the value does not contribute (NULL)
        """
        if contribution is None:
            return
        rule = column.checksum_rule
        if rule is ChecksumRule.SUM:
            self._values[column.ordinal] += contribution
        elif rule is ChecksumRule.CRC_XOR:
            self._values[column.ordinal] ^= contribution

    def value(self, column: ColumnDescriptor) -> int:
        return self._values[column.ordinal]

    def values(self, columns: Iterable[ColumnDescriptor]) -> dict[str, int]:
        """Current values keyed by column name, for logging and tests."""
        return {column.name: self._values[column.ordinal] for column in columns}
