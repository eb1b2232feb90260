"""
Database connection management for SQL Server Dumper.
"""

import logging
from typing import Any, Iterator, Optional

import pymssql

from .exceptions import ConnectivityError
from .models import ConnectionSettings


class DatabaseConnection:
    """Manages SQL Server database connections with context manager support."""

    DEFAULT_PORT = 1433
    DEFAULT_CHARSET = 'UTF-8'
    DEFAULT_BATCH_SIZE = 1000
    MASTER_DATABASE = 'master'

    def __init__(
        self,
        host: str,
        port: Optional[int],
        user: str,
        password: str,
        database: Optional[str] = None,
        query_timeout: int = 0
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.query_timeout = query_timeout
        self.connection = None

    @classmethod
    def from_settings(cls, settings: ConnectionSettings) -> "DatabaseConnection":
        return cls(
            host=settings.host,
            port=settings.port,
            user=settings.user,
            password=settings.password,
            database=settings.database,
            query_timeout=settings.query_timeout
        )

    def __enter__(self) -> "DatabaseConnection":
        """Context manager entry - establish connection."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - close connection."""
        self.disconnect()

    def connect(self) -> None:
        """Establish database connection.

        Raises:
            ConnectivityError: if the server rejects or cannot be reached.
        """
        try:
            self.connection = pymssql.connect(
                server=self.host,
                port=str(self.port or self.DEFAULT_PORT),
                user=self.user,
                password=self.password,
                database=self.database or '',
                timeout=self.query_timeout,
                charset=self.DEFAULT_CHARSET
            )
            logging.info(f"Connected to {self.host}:{self.port or self.DEFAULT_PORT}/{self.database or 'N/A'}")
        except pymssql.Error as e:
            logging.error(f"Failed to connect to database: {e}")
            raise ConnectivityError(str(e)) from e

    def disconnect(self) -> None:
        """Close database connection."""
        if self.connection is not None:
            self.connection.close()
            self.connection = None
            logging.debug("Database connection closed")

    def for_database(self, database: str) -> "DatabaseConnection":
        """Return an unopened connection to another database on the same server."""
        return DatabaseConnection(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            database=database,
            query_timeout=self.query_timeout
        )

    def execute_query(self, query: str, params: Optional[tuple] = None) -> list[tuple]:
        """Execute a query and return results."""
        cursor = self.connection.cursor()
        try:
            cursor.execute(query, params)
            return cursor.fetchall()
        finally:
            cursor.close()

    def iter_query(self, query: str, batch_size: int = DEFAULT_BATCH_SIZE) -> Iterator[tuple]:
        """Execute a query and stream its rows in batches."""
        cursor = self.connection.cursor()
        try:
            cursor.execute(query)
            while True:
                rows = cursor.fetchmany(batch_size)
                if not rows:
                    break
                yield from rows
        finally:
            cursor.close()

    def query_database(self, database: str, query: str) -> list[tuple]:
        """Execute a query against another database on a short-lived connection."""
        with self.for_database(database) as other:
            return other.execute_query(query)

    def fetch_scalar(self, query: str, params: Optional[tuple] = None) -> Any:
        """Return the first column of the first row, or None."""
        rows = self.execute_query(query, params)
        return rows[0][0] if rows else None

    def health_check(self) -> Optional[str]:
        """Verify the target database is reachable.

        The server banner is read from master when permitted; the
        target database must answer DB_NAME() (or, failing a name, a
        catalog probe).

        Returns:
            The first line of @@VERSION, or None if master was not readable.

        Raises:
            ConnectivityError: if the target database is inaccessible.
        """
        logging.info("Performing health check...")

        banner = None
        try:
            rows = self.query_database(self.MASTER_DATABASE, "SELECT @@VERSION")
            if rows and rows[0][0]:
                banner = str(rows[0][0]).splitlines()[0].strip()
                logging.info(f"Server version (master): {banner}")
        except (pymssql.Error, ConnectivityError) as e:
            logging.warning(
                f"Cannot query master for version (may be a contained user or permissions): {e}"
            )

        try:
            if self.connection is None:
                self.connect()
            name = self.fetch_scalar("SELECT DB_NAME()")
            if name is None or not str(name).strip():
                self.execute_query("SELECT TOP 1 1 FROM INFORMATION_SCHEMA.TABLES")
        except pymssql.Error as e:
            raise ConnectivityError(
                f"Target database '{self.database}' appears inaccessible: {e}"
            ) from e

        logging.info(f"Database '{self.database}' is accessible")
        return banner
