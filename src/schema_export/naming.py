"""
Identifier escaping and artifact file names.

All names that end up in generated MySQL text or in file names go through
this module, so a table is spelled the same way in its INSERT script, its
truncate line, its check queries and its side-file directory.
"""

from pathlib import Path

# Oracle allows '#' in unquoted identifiers, MySQL does not.
RESERVED_MARKER = "#"

MAIN_SQL = "main.sql"
TRUNCATE_SQL = "truncate_all.sql"
CHECK_SQL = "checks.sql"
LOB_ARCHIVE = "lobs.zip"
ZIP_SUFFIX = ".zip"

BLOB_SUFFIX = "blob"
CLOB_SUFFIX = "clob"


def escape_mysql_name(name: str) -> str:
    """
    Escape a table or column name for MySQL

    Names are lower-cased for readability. Names containing the reserved
    marker character are additionally quoted with backticks.

    Args:
        name: Raw identifier as reported by the source database

    Returns:
        Identifier safe to embed in generated statements
    """
    lower = name.lower()
    if RESERVED_MARKER in lower:
        return f"`{lower}`"
    return lower


def insert_sql_file_name(table_name: str) -> str:
    """Name of the file with the INSERT statements for a table."""
    return f"insert_into_{table_name.lower()}.sql"


def lob_dir_name(table_name: str) -> str:
    """Directory holding the large objects of a table."""
    return f"lobs_{table_name.lower()}"


def lob_file_name(suffix: str, lob_id: int) -> str:
    """Name of one large-object file or archive entry, e.g. ``0.blob``."""
    return f"{lob_id}.{suffix}"


def relative_lob_path(table_name: str, suffix: str, lob_id: int) -> str:
    """
    Path of a large-object file relative to the master script.

    Always uses '/' because the path is read by the MySQL server, not by
    this process.
    """
    return f"{lob_dir_name(table_name)}/{lob_file_name(suffix, lob_id)}"


def script_path(target_path: str | Path, file_name: str, archive: bool) -> Path:
    """Absolute path of a generated script, with ``.zip`` appended in archive mode."""
    path = Path(target_path) / file_name
    if archive:
        return path.with_name(path.name + ZIP_SUFFIX)
    return path


def lob_dir_path(target_path: str | Path, table_name: str) -> Path:
    return Path(target_path) / lob_dir_name(table_name)


def lob_archive_path(target_path: str | Path, table_name: str) -> Path:
    return lob_dir_path(target_path, table_name) / LOB_ARCHIVE
