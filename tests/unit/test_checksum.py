"""
Unit tests for CRC-32 helpers, checksum accumulation and check queries.

The CRC-32 reference values are those returned by MySQL's CRC32() for the
same text.
"""

import pytest

from schema_export.checksum import (
    ChecksumAccumulator,
    column_check,
    crc32_of,
    crc32_of_text,
    crc_xor_check,
    lob_load_check,
    row_count_check,
    sum_check,
)
from schema_export.encode import ColumnDescriptor


class TestCrc32:
    """Test crc32_of_text against MySQL CRC32() values"""

    @pytest.mark.parametrize("text,expected", [
        ("hallo", 3111268817),
        ("Dörte", 2455371663),
        ("€", 2213726422),
        ("ß", 3250460839),
        ("9999", 3596399514),
        ("9.999", 1355099722),
        ("2021-12-31 23:59:59.012349", 3506123114),
    ])
    def test_known_values(self, text, expected):
        assert crc32_of_text(text) == expected

    def test_empty_input(self):
        assert crc32_of(b"") == 0

    def test_result_is_unsigned(self):
        assert crc32_of_text("hallo") > 2 ** 31


class TestChecksumAccumulator:
    """Test ChecksumAccumulator"""

    def setup_method(self):
        self.flag = ColumnDescriptor(1, "ACTIVE", "NUMBER", 1, 0)
        self.name = ColumnDescriptor(2, "NAME", "VARCHAR2", 50, None)
        self.created = ColumnDescriptor(3, "CREATED", "DATE")
        self.accumulator = ChecksumAccumulator(3)

    def test_initial_values_are_zero(self):
        assert self.accumulator.values([self.flag, self.name]) == {"ACTIVE": 0, "NAME": 0}

    def test_flag_values_are_summed(self):
        for value in (1, 0, 1, 1):
            self.accumulator.add(self.flag, value)

        assert self.accumulator.value(self.flag) == 3

    def test_crc_values_are_xored(self):
        self.accumulator.add(self.name, crc32_of_text("a"))
        self.accumulator.add(self.name, crc32_of_text("b"))

        assert self.accumulator.value(self.name) == crc32_of_text("a") ^ crc32_of_text("b")

    def test_same_value_twice_cancels_out(self):
        self.accumulator.add(self.name, crc32_of_text("a"))
        self.accumulator.add(self.name, crc32_of_text("a"))

        assert self.accumulator.value(self.name) == 0

    def test_null_contribution_ignored(self):
        self.accumulator.add(self.flag, None)
        self.accumulator.add(self.name, None)

        assert self.accumulator.values([self.flag, self.name]) == {"ACTIVE": 0, "NAME": 0}

    def test_unchecked_column_ignored(self):
        self.accumulator.add(self.created, 42)

        assert self.accumulator.value(self.created) == 0


class TestCheckStatements:
    """Test generated verification queries"""

    def test_row_count_check(self):
        assert row_count_check("CUSTOMERS", 2) == (
            "SELECT IF(2 = COUNT(*), 'ok', 'FAILED') AS Result,"
            " 'customers COUNT 2' AS Test FROM customers;"
        )

    def test_sum_check(self):
        column = ColumnDescriptor(1, "ACTIVE", "NUMBER", 1, 0)

        assert sum_check("T1", column, 3) == (
            "SELECT IF(3 = IFNULL(SUM(active), 0), 'ok', 'FAILED') AS Result,"
            " 't1.active SUM 3' AS Test FROM t1;"
        )

    def test_crc_xor_check(self):
        column = ColumnDescriptor(2, "NAME", "VARCHAR2")

        assert crc_xor_check("T1", column, 3111268817) == (
            "SELECT IF(3111268817 = IFNULL(BIT_XOR(CRC32(name)), 0), 'ok', 'FAILED') AS Result,"
            " 't1.name checksum' AS Test FROM t1;"
        )

    def test_lob_load_check(self):
        column = ColumnDescriptor(3, "PHOTO", "BLOB")

        assert lob_load_check("T1", column) == (
            "SELECT IF(0 = COUNT(*), 'ok', 'FAILED') AS Result,"
            " 't1.photo LOAD_FILE()' AS Test FROM t1 WHERE photo = 'iMpOrTeRrOr';"
        )

    def test_reserved_names_are_quoted(self):
        column = ColumnDescriptor(1, "NO#", "VARCHAR2")

        line = crc_xor_check("ORDER#ITEMS", column, 0)

        assert "CRC32(`no#`)" in line
        assert "FROM `order#items`;" in line

    def test_column_check_follows_checksum_rule(self):
        assert "SUM(" in column_check("T", ColumnDescriptor(1, "F", "NUMBER", 1, 0), 1)
        assert "BIT_XOR(" in column_check("T", ColumnDescriptor(1, "N", "NUMBER", 5, 0), 1)
        assert column_check("T", ColumnDescriptor(1, "D", "DATE"), 0) is None
