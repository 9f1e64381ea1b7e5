"""
Output streams for the generated SQL scripts.

A script is either a plain UTF-8 text file or the single entry of a zip
archive named after it (``insert_into_t.sql`` inside ``insert_into_t.sql.zip``).
Lines always end with '\\n' so the scripts are identical on every platform.
"""

import datetime
import io
import threading
import zipfile
from pathlib import Path

from .encode.literals import mysql_string
from .errors import ExportIOError
from .naming import CHECK_SQL, TRUNCATE_SQL, escape_mysql_name, script_path

DEFAULT_IMPORT_DIR = "/tmp/import/"


class ScriptWriter:
    """
    Line-oriented writer for one generated script.

    Usable as a context manager. ``close`` is safe to call more than once.

    Raises:
        OSError: If the file or archive cannot be created or written
    """

    def __init__(self, target_path: str | Path, file_name: str, archive: bool = False):
        self.path = script_path(target_path, file_name, archive)
        self.entry_name = file_name
        self.archive = archive
        self._zip: zipfile.ZipFile | None = None

        if archive:
            self._zip = zipfile.ZipFile(self.path, "w", compression=zipfile.ZIP_DEFLATED)
            try:
                entry = self._zip.open(file_name, "w", force_zip64=True)
            except Exception:
                self._zip.close()
                raise
            self._stream = io.TextIOWrapper(entry, encoding="utf-8", newline="\n")
        else:
            self._stream = open(self.path, "w", encoding="utf-8", newline="\n")

    def write(self, text: str) -> None:
        self._stream.write(text)

    def write_line(self, line: str = "") -> None:
        self._stream.write(line + "\n")

    def close(self) -> None:
        try:
            if not self._stream.closed:
                self._stream.close()
        finally:
            if self._zip is not None:
                zf, self._zip = self._zip, None
                zf.close()

    def __enter__(self) -> "ScriptWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class VerificationSink:
    """
    The check script, shared by all workers.

    Each line is written under one lock, so lines from different workers
    never interleave.
    """

    def __init__(self, writer: ScriptWriter):
        self.writer = writer
        self.lines_written = 0
        self._lock = threading.Lock()

    def append(self, line: str, table_name: str | None = None) -> None:
        """
        Write one complete line

        Args:
            line: Statement to write
            table_name: Table the line belongs to, for error reporting

        Raises:
            ExportIOError: If the check script cannot be written
        """
        with self._lock:
            try:
                self.writer.write_line(line)
            except OSError as e:
                raise ExportIOError(table_name, self.writer.path, e) from e
            self.lines_written += 1

    def close(self) -> None:
        with self._lock:
            self.writer.close()


def banner(message: str) -> str:
    """Statement that prints ``message`` when the script is sourced."""
    return f"SELECT {mysql_string(message)} AS '';"


def truncate_statement(table_name: str) -> str:
    return f"TRUNCATE TABLE {escape_mysql_name(table_name)};"


def source_statement(file_name: str) -> str:
    return f"source {file_name}"


def main_head(
    source_url: str,
    schema: str,
    import_dir: str = DEFAULT_IMPORT_DIR,
    exported_at: datetime.datetime | None = None,
) -> str:
    """
    Head of the master script

    Comments describing the export, then the session settings every other
    script relies on, then sourcing of the truncate script.

    Args:
        source_url: Connection URL or DSN of the source database
        schema: Exported schema (the user name for Oracle)
        import_dir: Directory the scripts and side files are loaded from
        exported_at: Timestamp for the header comment (default: now)
    """
    exported_at = exported_at or datetime.datetime.now()
    return (
        "-- this dump file set was generated using schema-export\n"
        f"-- source database: {source_url}\n"
        f"-- schema: {schema}\n"
        f"-- exported: {exported_at:%Y-%m-%d %H:%M:%S}\n"
        "\n"
        f"SET @import_dir={mysql_string(import_dir)};\n"
        "\n"
        "SET foreign_key_checks=0;\n"
        "SET autocommit=1;\n"
        "\n"
        f"{source_statement(TRUNCATE_SQL)}\n"
    )


def main_foot() -> str:
    """Tail of the master script: re-enable foreign keys and run the checks."""
    return (
        "\n"
        "SET foreign_key_checks=1;\n"
        f"{source_statement(CHECK_SQL)}\n"
    )
