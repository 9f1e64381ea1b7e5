"""CRC-32 helpers matching MySQL's CRC32() function."""

import zlib


def crc32_of(data: bytes) -> int:
    """CRC-32 as computed by MySQL's CRC32() on the same bytes."""
    return zlib.crc32(data) & 0xFFFFFFFF


def crc32_of_text(text: str) -> int:
    return crc32_of(text.encode("utf-8"))
