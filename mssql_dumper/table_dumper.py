"""
Table dumping functionality for SQL Server Dumper.
"""

import logging
from typing import Optional

import pymssql

from .connection import DatabaseConnection
from .ddl import build_create_table, build_drop_table, build_identity_insert, build_primary_key
from .exceptions import DataAbsenceError, MetadataError, SerializationError
from .introspector import SchemaIntrospector
from .models import ColumnMeta, DataStrategy, DumpTarget, TableRef, TableStats
from .serializer import (
    build_fallback_insert,
    build_fallback_query,
    build_primary_row_selector,
    choose_data_strategy,
)
from .writer import DumpWriter


INSERT_MARKER = 'INSERT INTO'


class TableDumper:
    """Writes one table's section of the dump: structure, then data."""

    DEFAULT_BATCH_SIZE = 1000

    def __init__(
        self,
        connection: DatabaseConnection,
        writer: DumpWriter,
        target: DumpTarget,
        modern_drop: bool = False,
        batch_size: int = DEFAULT_BATCH_SIZE
    ):
        self.connection = connection
        self.introspector = SchemaIntrospector(connection)
        self.writer = writer
        self.target = target
        self.modern_drop = modern_drop
        self.batch_size = batch_size

    def dump_table(self, table: TableRef) -> TableStats:
        """
        Write the section for a table.

        Failures in any step are written as notes and the remaining steps
        still run where they can.

        Args:
            table: Table to dump.

        Returns:
            TableStats with rows written and notes raised.
        """
        stats = TableStats(table=table.qualified)

        self.writer.write_banner(table)

        if self.target.drop_tables:
            self.writer.write(build_drop_table(table, self.modern_drop))
            self.writer.write()

        logging.info(f"  - Extracting structure for {table}...")
        columns = self._write_structure(table, stats)
        if not columns:
            return stats

        has_identity = self._has_identity(table, columns, stats)
        if has_identity:
            self.writer.write_comment("Enable identity inserts")
            self.writer.write(build_identity_insert(table, True))
            self.writer.write()

        try:
            self._write_data(table, columns, stats)
        finally:
            if has_identity:
                self.writer.write_comment("Disable identity inserts")
                self.writer.write(build_identity_insert(table, False))
                self.writer.write()

        return stats

    def _note(self, stats: TableStats, message: str) -> None:
        self.writer.write_note(message)
        stats.notes.append(message)
        logging.warning(f"  {stats.table}: {message}")

    def _write_structure(self, table: TableRef, stats: TableStats) -> list[ColumnMeta]:
        """Write CREATE TABLE and the primary key; return the columns read."""
        self.writer.write_comment("Table structure")

        columns: list[ColumnMeta] = []
        try:
            columns = self.introspector.get_columns(table)
            self.writer.write(build_create_table(table, columns))
        except MetadataError as e:
            self._note(stats, f"could not read structure for {table}: {e}")
        except DataAbsenceError as e:
            self._note(stats, str(e))

        try:
            pk_statement = build_primary_key(table, self.introspector.get_primary_key(table))
            if pk_statement:
                self.writer.write(pk_statement)
        except MetadataError as e:
            self._note(stats, f"could not read primary key for {table}: {e}")

        self.writer.write()
        return columns

    def _has_identity(self, table: TableRef, columns: list[ColumnMeta], stats: TableStats) -> bool:
        try:
            return self.introspector.has_identity_column(table)
        except MetadataError as e:
            self._note(stats, f"identity check failed for {table}, using column metadata: {e}")
            return any(col.is_identity for col in columns)

    def _has_binary(self, table: TableRef, stats: TableStats) -> bool:
        try:
            return self.introspector.has_binary_column(table)
        except MetadataError as e:
            self._note(stats, f"binary column check failed for {table}, treating as binary: {e}")
            return True

    def _write_data(self, table: TableRef, columns: list[ColumnMeta], stats: TableStats) -> None:
        rows, error = self._write_primary(table, columns)
        if error is not None:
            logging.debug(f"Primary data export failed for {table}: {error}")
            if rows:
                self._note(stats, f"data export for {table} interrupted after {rows} rows: {error}")

        has_binary = self._has_binary(table, stats) if rows == 0 else False
        stats.strategy = choose_data_strategy(rows, has_binary)

        if stats.strategy is DataStrategy.PRIMARY:
            stats.rows_dumped = rows
        elif stats.strategy is DataStrategy.SKIP_BINARY:
            self._note(stats, f"data export skipped for {table} due to binary columns")
        else:
            stats.rows_dumped = self._write_fallback(table, columns, stats)

        self.writer.write()

    def _write_primary(
        self,
        table: TableRef,
        columns: list[ColumnMeta]
    ) -> tuple[int, Optional[SerializationError]]:
        """Stream the server-rendered INSERTs; return rows written and any error."""
        query = build_primary_row_selector(table, columns, self.target.where)
        logging.debug(f"Dumping table '{table}' with query: {query[:200]}...")

        rows = 0
        try:
            for row in self.connection.iter_query(query, self.batch_size):
                statement = row[0]
                if statement and INSERT_MARKER in statement:
                    self.writer.write(statement)
                    rows += 1
        except pymssql.Error as e:
            return rows, SerializationError(str(e))
        return rows, None

    def _write_fallback(self, table: TableRef, columns: list[ColumnMeta], stats: TableStats) -> int:
        """Rebuild INSERTs from delimited lines; return rows written."""
        query = build_fallback_query(table, columns, self.target.where)
        logging.info(f"  - Falling back to delimited export for {table}")

        lines = 0
        written = 0
        unparsed = 0
        try:
            for row in self.connection.iter_query(query, self.batch_size):
                line = row[0]
                if not line or not str(line).strip():
                    continue
                lines += 1
                statement = build_fallback_insert(table, columns, str(line))
                if statement is None:
                    unparsed += 1
                    continue
                self.writer.write(statement)
                written += 1
        except pymssql.Error as e:
            self._note(stats, f"fallback export failed for {table}: {e}")
            return written

        if lines == 0:
            self._note(stats, f"fallback CSV produced no output for {table}")
        elif unparsed:
            self._note(stats, f"{unparsed} fallback row(s) for {table} could not be parsed")
        return written
