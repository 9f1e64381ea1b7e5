"""
Checksum accumulation and verification queries.

This submodule provides:
- Per-column running checksums (sum for flag columns, CRC-32 XOR otherwise)
- The matching check queries for the destination database
"""

from .accumulator import ChecksumAccumulator
from .crc import crc32_of, crc32_of_text
from .statements import (
    column_check,
    crc_xor_check,
    lob_load_check,
    row_count_check,
    sum_check,
)

__all__ = [
    'ChecksumAccumulator',
    'crc32_of',
    'crc32_of_text',
    'column_check',
    'crc_xor_check',
    'lob_load_check',
    'row_count_check',
    'sum_check',
]
