"""
MySQL literal formatting.

Pure functions, no I/O.
"""

import datetime
import decimal

NULL_LITERAL = "null"

# Returned by the destination when LOAD_FILE() cannot read the side file
IMPORT_ERROR_LITERAL = "'iMpOrTeRrOr'"

_STRING_ESCAPES = {
    "'": "\\'",
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}
_STRING_TRANSLATION = str.maketrans(_STRING_ESCAPES)

# Oracle NUMBER holds up to 38 significant digits, more than the default 28
_WIDE_CONTEXT = decimal.Context(prec=80)


def mysql_string(value: str) -> str:
    """
    Quote a string as a MySQL string literal

    Backslash, single quote, newline, carriage return and tab are
    backslash-escaped. All other characters pass through unchanged.
    """
    return "'" + value.translate(_STRING_TRANSLATION) + "'"


def decimal_text(value: decimal.Decimal | int, scale: int | None = None) -> str:
    """
    Render an exact number as plain decimal text

    Never uses exponent notation or digit grouping. With a positive scale
    the result has exactly that many fraction digits, the way MySQL prints
    a DECIMAL(p,s) value.
    """
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, int):
        if scale and scale > 0:
            value = decimal.Decimal(value)
        else:
            return str(value)
    if scale and scale > 0 and value.is_finite():
        value = value.quantize(
            decimal.Decimal(1).scaleb(-scale), context=_WIDE_CONTEXT
        )
    if value.is_zero():
        value = abs(value)
    return format(value, "f")


def timestamp_literal(value: datetime.datetime) -> str:
    """
    Quote a point in time as ``'YYYY-MM-DD HH:MM:SS.fffffffff'``

    Nine fraction digits. Timezone-aware values are shown in the local zone
    of this process; naive values are printed as they are.
    """
    if value.tzinfo is not None:
        value = value.astimezone()
    nanos = value.microsecond * 1000
    return (
        f"'{value.year:04d}-{value.month:02d}-{value.day:02d} "
        f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}.{nanos:09d}'"
    )


def date_literal(value: datetime.date) -> str:
    return f"'{value.year:04d}-{value.month:02d}-{value.day:02d}'"


def lob_reference(import_path: str) -> str:
    """
    Build the expression that loads a side file at import time

    Falls back to the import-error sentinel if the file cannot be read, so
    a missing file shows up in the LOAD_FILE() check instead of as NULL.
    """
    return (
        f"IFNULL(LOAD_FILE(CONCAT(@import_dir, {mysql_string(import_path)})), "
        f"{IMPORT_ERROR_LITERAL})"
    )
