"""
Value encoding for generated MySQL statements.

This submodule provides:
- Column descriptors and their classification (columns)
- MySQL literal formatting (literals)
- The per-value encoder with checksum contributions (values)
"""

from .columns import (
    ChecksumRule,
    ColumnDescriptor,
    ColumnKind,
    describe_columns,
    native_type_name,
)
from .literals import (
    IMPORT_ERROR_LITERAL,
    NULL_LITERAL,
    date_literal,
    decimal_text,
    lob_reference,
    mysql_string,
    timestamp_literal,
)
from .values import EncodedValue, ValueEncoder, large_object_kind

__all__ = [
    'ChecksumRule',
    'ColumnDescriptor',
    'ColumnKind',
    'describe_columns',
    'native_type_name',
    'IMPORT_ERROR_LITERAL',
    'NULL_LITERAL',
    'date_literal',
    'decimal_text',
    'lob_reference',
    'mysql_string',
    'timestamp_literal',
    'EncodedValue',
    'ValueEncoder',
    'large_object_kind',
]
