"""
Pytest configuration and fixtures for schema export tests.
Provides an in-memory DB-API source and target directory fixtures.
"""

from pathlib import Path
from typing import Any, Sequence

import pytest

from schema_export.scripts import ScriptWriter, VerificationSink
from schema_export.source import SourceDatabase


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")


def col(name: str, type_name: str, precision: int | None = None, scale: int | None = None) -> tuple:
    """One ``cursor.description`` entry."""
    return (name, type_name, None, None, precision, scale, True)


class FakeTable:
    def __init__(self, description: Sequence[tuple], rows: Sequence[Sequence[Any]] = ()):
        self.description = list(description)
        self.rows = [tuple(row) for row in rows]


class FakeCursor:
    """Answers ``SELECT * FROM t`` and ``SELECT COUNT(*) FROM t`` for known tables."""

    def __init__(self, connection: "FakeConnection"):
        self.connection = connection
        self.description = None
        self.executed: list[str] = []
        self.closed = False
        self._rows: list[tuple] = []

    def execute(self, sql: str) -> None:
        self.executed.append(sql)
        self.connection.executed.append(sql)
        if sql in self.connection.failing_sql:
            raise RuntimeError("ORA-00942: table or view does not exist")
        if sql.startswith("SELECT COUNT(*) FROM "):
            table = self.connection.tables[sql[len("SELECT COUNT(*) FROM "):]]
            self.description = [col("COUNT(*)", "NUMBER")]
            self._rows = [(len(table.rows),)]
        elif sql.startswith("SELECT * FROM "):
            table = self.connection.tables[sql[len("SELECT * FROM "):]]
            self.description = table.description
            self._rows = list(table.rows)
        else:
            raise ValueError(f"Unexpected SQL: {sql}")

    def fetchmany(self, size: int) -> list[tuple]:
        batch, self._rows = self._rows[:size], self._rows[size:]
        return batch

    def fetchone(self) -> tuple | None:
        return self._rows.pop(0) if self._rows else None

    def fetchall(self) -> list[tuple]:
        rows, self._rows = self._rows, []
        return rows

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    def __init__(self, tables: dict[str, FakeTable], failing_sql: Sequence[str] = ()):
        self.tables = tables
        self.failing_sql = set(failing_sql)
        self.executed: list[str] = []
        self.cursors: list[FakeCursor] = []
        self.closed = False

    def cursor(self) -> FakeCursor:
        cursor = FakeCursor(self)
        self.cursors.append(cursor)
        return cursor

    def close(self) -> None:
        self.closed = True


class FakeSource(SourceDatabase):
    """Source database backed by ``FakeTable`` objects."""

    driver = "fake"

    def __init__(self, tables: dict[str, FakeTable], failing_sql: Sequence[str] = ()):
        super().__init__("fakehost:1521/FREEPDB1", "SCOTT", "tiger")
        self.tables = tables
        self.failing_sql = failing_sql
        self.connections: list[FakeConnection] = []

    def connect(self) -> FakeConnection:
        connection = FakeConnection(self.tables, self.failing_sql)
        self.connections.append(connection)
        return connection

    def list_tables(self, connection: FakeConnection) -> list[str]:
        return sorted(name for name in self.tables if self.is_exportable(name))


@pytest.fixture
def target_dir(tmp_path: Path) -> Path:
    """Empty export directory."""
    directory = tmp_path / "export"
    directory.mkdir()
    return directory


@pytest.fixture
def check_script(target_dir: Path):
    """Loose check script wrapped in a verification sink."""
    sink = VerificationSink(ScriptWriter(target_dir, "checks.sql"))
    yield sink
    sink.close()
