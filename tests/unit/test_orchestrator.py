"""
Unit tests for ExportOrchestrator

Runs complete exports against an in-memory source and checks the
generated master, truncate and check scripts.
"""

import zipfile

import pytest

from conftest import FakeSource, FakeTable, col
from schema_export.config import ExportConfig
from schema_export.errors import ConfigurationError, ExportFailedError
from schema_export.orchestrator import ExportOrchestrator


def schema_tables() -> dict[str, FakeTable]:
    return {
        "AUDIT": FakeTable([col("ID", "NUMBER", 10, 0)], [(1,)]),
        "CUSTOMERS": FakeTable(
            [col("ID", "NUMBER", 10, 0), col("NAME", "VARCHAR2", 50)],
            [(1, "O'Brien"), (2, None)],
        ),
        "EMPTY": FakeTable([col("ID", "NUMBER", 10, 0)]),
        "SYS_IOT_OVER_74562": FakeTable([col("ID", "NUMBER", 10, 0)], [(1,)]),
    }


def make_config(target_dir, **props) -> ExportConfig:
    return ExportConfig.from_properties({
        "export.source.url": "fakehost:1521/FREEPDB1",
        "export.source.user": "SCOTT",
        "export.source.password": "tiger",
        "export.target.path": str(target_dir),
        "export.exclude.tables": "audit",
        "export.parallel.threads": "2",
        "export.target.zip": "no",
        **props,
    })


def lines(path) -> list[str]:
    return path.read_text(encoding="utf-8").splitlines()


class TestExportOrchestrator:
    """Test a complete export run"""

    def test_generated_scripts(self, target_dir):
        # Arrange
        source = FakeSource(schema_tables())
        orchestrator = ExportOrchestrator(make_config(target_dir), source=source)

        # Act
        summary = orchestrator.run()

        # Assert
        main = lines(target_dir / "main.sql")
        assert main[0] == "-- this dump file set was generated using schema-export"
        assert main[1] == "-- source database: fakehost:1521/FREEPDB1"
        assert main[2] == "-- schema: SCOTT"
        assert main[3].startswith("-- exported: ")
        assert main[4:] == [
            "",
            "SET @import_dir='/tmp/import/';",
            "",
            "SET foreign_key_checks=0;",
            "SET autocommit=1;",
            "",
            "source truncate_all.sql",
            "source insert_into_customers.sql",
            "",
            "SET foreign_key_checks=1;",
            "source checks.sql",
        ]

        assert lines(target_dir / "truncate_all.sql") == [
            "SELECT 'TRUNCATE TABLES' AS '';",
            "TRUNCATE TABLE customers;",
            "TRUNCATE TABLE empty;",
        ]

        checks = lines(target_dir / "checks.sql")
        assert checks[0] == "SELECT 'VALIDITY CHECKS' AS '';"
        assert checks[1] == (
            "SELECT IF(2 = COUNT(*), 'ok', 'FAILED') AS Result,"
            " 'customers COUNT 2' AS Test FROM customers;"
        )
        assert checks[2] == (
            "SELECT IF(0 = COUNT(*), 'ok', 'FAILED') AS Result,"
            " 'empty COUNT 0' AS Test FROM empty;"
        )
        assert len(checks) == 5
        assert all("audit" not in line for line in checks)

        assert (target_dir / "insert_into_customers.sql").exists()
        assert not (target_dir / "insert_into_empty.sql").exists()
        assert not (target_dir / "insert_into_audit.sql").exists()

        assert summary["total_tables"] == 1
        assert summary["successful"] == 1
        assert summary["tables_discovered"] == 3
        assert summary["tables_excluded"] == ["AUDIT"]
        assert summary["empty_tables"] == ["EMPTY"]

    def test_all_connections_closed(self, target_dir):
        source = FakeSource(schema_tables())

        ExportOrchestrator(make_config(target_dir), source=source).run()

        # One for discovery, one per worker
        assert len(source.connections) == 3
        assert all(connection.closed for connection in source.connections)

    def test_import_dir_configurable(self, target_dir):
        config = make_config(target_dir, **{"export.target.import_dir": "/var/lib/mysql-files/"})

        ExportOrchestrator(config, source=FakeSource(schema_tables())).run()

        assert "SET @import_dir='/var/lib/mysql-files/';" in lines(target_dir / "main.sql")

    def test_archive_mode(self, target_dir):
        config = make_config(target_dir, **{"export.target.zip": "yes"})

        ExportOrchestrator(config, source=FakeSource(schema_tables())).run()

        for name in ("main.sql", "truncate_all.sql", "checks.sql", "insert_into_customers.sql"):
            with zipfile.ZipFile(target_dir / f"{name}.zip") as zf:
                assert zf.namelist() == [name]
        with zipfile.ZipFile(target_dir / "main.sql.zip") as zf:
            assert zf.read("main.sql").decode("utf-8").endswith("source checks.sql\n")

    def test_failed_table_leaves_main_script_incomplete(self, target_dir):
        source = FakeSource(schema_tables(), failing_sql=["SELECT * FROM CUSTOMERS"])
        orchestrator = ExportOrchestrator(make_config(target_dir), source=source)

        with pytest.raises(ExportFailedError) as exc_info:
            orchestrator.run()

        assert "CUSTOMERS" in str(exc_info.value)
        assert exc_info.value.summary["failed"] == 1
        main = lines(target_dir / "main.sql")
        assert "source insert_into_customers.sql" in main
        assert "source checks.sql" not in main
        assert "SET foreign_key_checks=1;" not in main

    def test_target_not_empty(self, target_dir):
        (target_dir / "main.sql").write_text("old export")

        with pytest.raises(ConfigurationError):
            ExportOrchestrator(make_config(target_dir), source=FakeSource(schema_tables())).run()

        assert (target_dir / "main.sql").read_text() == "old export"

    def test_schema_without_tables(self, target_dir):
        summary = ExportOrchestrator(make_config(target_dir), source=FakeSource({})).run()

        assert summary["total_tables"] == 0
        assert lines(target_dir / "main.sql")[-1] == "source checks.sql"
        assert lines(target_dir / "truncate_all.sql") == ["SELECT 'TRUNCATE TABLES' AS '';"]
