"""
Source database access.

Two drivers are supported:
- ``oracle``: python-oracledb in thin mode (no Oracle client needed)
- ``odbc``: any ODBC data source through pyodbc

Only three things are needed from a source: new connections (one per
worker plus one for discovery), the list of tables and row counts.
"""

import logging
from typing import Any

import oracledb

from .errors import ConfigurationError, SourceQueryError

logger = logging.getLogger(__name__)

SELECT_TABLE_NAMES = "SELECT TABLE_NAME FROM USER_TABLES ORDER BY TABLE_NAME"
SELECT_COUNT_FROM = "SELECT COUNT(*) FROM "

# Overflow segments of index-organized tables, exported with their parent
OVERFLOW_TABLE_PREFIX = "SYS_IOT_OVER_"


class SourceDatabase:
    """Base class for source drivers."""

    driver = ""

    def __init__(self, url: str, user: str, password: str):
        self.url = url
        self.user = user
        self.password = password

    def __repr__(self) -> str:
        return f"{type(self).__name__}(url={self.url!r}, user={self.user!r})"

    def connect(self) -> Any:
        raise NotImplementedError

    def list_tables(self, connection: Any) -> list[str]:
        raise NotImplementedError

    @staticmethod
    def is_exportable(table_name: str) -> bool:
        return not table_name.startswith(OVERFLOW_TABLE_PREFIX)

    def count_rows(self, connection: Any, table_name: str) -> int:
        """
        Count the rows of a table

        Raises:
            SourceQueryError: If the count query fails
        """
        sql = SELECT_COUNT_FROM + table_name
        logger.debug(f"SQL query: {sql}")
        cursor = connection.cursor()
        try:
            cursor.execute(sql)
            row = cursor.fetchone()
        except Exception as e:
            raise SourceQueryError(table_name, sql, e) from e
        finally:
            cursor.close()
        return int(row[0])


class OracleSource(SourceDatabase):
    """Oracle schema of the connecting user."""

    driver = "oracle"

    def connect(self) -> oracledb.Connection:
        # NUMBER values must arrive as Decimal, floats would lose digits
        oracledb.defaults.fetch_decimals = True
        connection = oracledb.connect(user=self.user, password=self.password, dsn=self.url)
        logger.debug(f"Connected to Oracle source {self.url} as {self.user}")
        return connection

    def list_tables(self, connection: oracledb.Connection) -> list[str]:
        """
        Tables of the user's schema in name order, without IOT overflow tables

        Raises:
            SourceQueryError: If the dictionary query fails
        """
        logger.debug(f"SQL query: {SELECT_TABLE_NAMES}")
        cursor = connection.cursor()
        try:
            cursor.execute(SELECT_TABLE_NAMES)
            names = [row[0] for row in cursor.fetchall()]
        except Exception as e:
            raise SourceQueryError("USER_TABLES", SELECT_TABLE_NAMES, e) from e
        finally:
            cursor.close()
        return [name for name in names if name and self.is_exportable(name)]


class OdbcSource(SourceDatabase):
    """
    Any ODBC data source.

    ``url`` is an ODBC connection string, e.g.
    ``DRIVER={ODBC Driver 18 for SQL Server};SERVER=db;DATABASE=sales``.
    """

    driver = "odbc"

    def connect(self) -> Any:
        # Imported here so that the oracle driver works without an ODBC
        # driver manager installed
        import pyodbc

        kwargs = {}
        if self.user:
            kwargs["uid"] = self.user
        if self.password:
            kwargs["pwd"] = self.password
        connection = pyodbc.connect(self.url, **kwargs)
        logger.debug(f"Connected to ODBC source as {self.user or '(connection string)'}")
        return connection

    def list_tables(self, connection: Any) -> list[str]:
        """
        Base tables visible to the connection, sorted by name

        Raises:
            SourceQueryError: If the catalog call fails
        """
        cursor = connection.cursor()
        try:
            names = [row.table_name for row in cursor.tables(tableType="TABLE")]
        except Exception as e:
            raise SourceQueryError("(catalog)", "SQLTables(TABLE)", e) from e
        finally:
            cursor.close()
        return sorted(name for name in names if name and self.is_exportable(name))


SOURCE_DRIVERS = {
    OracleSource.driver: OracleSource,
    OdbcSource.driver: OdbcSource,
}


def create_source(driver: str, url: str, user: str, password: str) -> SourceDatabase:
    """
    Create the source for a driver name

    Raises:
        ConfigurationError: If the driver is unknown
    """
    try:
        source_class = SOURCE_DRIVERS[driver]
    except KeyError:
        raise ConfigurationError(
            f"Unknown source driver {driver!r}, expected one of: "
            f"{', '.join(sorted(SOURCE_DRIVERS))}"
        ) from None
    return source_class(url, user, password)
