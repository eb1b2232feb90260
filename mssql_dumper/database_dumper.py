"""
Main dump orchestration for SQL Server Dumper.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import pymssql

from .connection import DatabaseConnection
from .ddl import use_modern_drop
from .exceptions import DumperError, MetadataError
from .introspector import SchemaIntrospector
from .models import DumpStats, DumpTarget, TableRef, TableStats
from .table_dumper import TableDumper
from .writer import DumpWriter


@dataclass
class DumpPlan:
    """What a run will do, decided before any table is written."""
    server_version: Optional[int]
    modern_drop: bool
    tables: list[TableRef] = field(default_factory=list)
    error: Optional[str] = None


class DatabaseDumper:
    """Runs a dump: health check, configuration, table loop, finalization."""

    def __init__(self, target: DumpTarget):
        self.target = target
        self.stats = DumpStats()

    def _connect(self) -> DatabaseConnection:
        return DatabaseConnection.from_settings(self.target.connection)

    def _plan(self, conn: DatabaseConnection) -> DumpPlan:
        """Health check, drop syntax decision and table discovery.

        Raises:
            ConnectivityError: if the target database is unreachable.
        """
        conn.health_check()
        introspector = SchemaIntrospector(conn)

        version = introspector.server_major_version()
        modern_drop = use_modern_drop(self.target.drop_tables, version)
        if version is None:
            logging.info("Server major version unknown; legacy drop syntax will be used")
        else:
            logging.info(f"Server major version: {version}")

        if self.target.where:
            logging.info(f"Global WHERE clause active: {self.target.where.clause}")
        else:
            logging.info("No global WHERE clause set.")

        plan = DumpPlan(server_version=version, modern_drop=modern_drop)
        try:
            plan.tables = introspector.discover_tables(self.target.tables)
        except MetadataError as e:
            plan.error = f"could not list tables: {e}"
        return plan

    def plan(self) -> DumpPlan:
        """Resolve what would be dumped without writing anything."""
        with self._connect() as conn:
            return self._plan(conn)

    def run(self) -> DumpStats:
        """Run the dump and return its statistics.

        Raises:
            ConnectivityError: if the target database is unreachable.
        """
        settings = self.target.connection

        with self._connect() as conn:
            plan = self._plan(conn)
            self.stats.server_version = plan.server_version
            self.stats.modern_drop = plan.modern_drop

            with DumpWriter(self.target.output_path, compress=self.target.compress) as writer:
                self.stats.output_path = str(writer.output_path)
                writer.write_header(settings.server, settings.database)

                if plan.error:
                    writer.write_note(plan.error)
                    self.stats.notes.append(plan.error)
                    logging.error(plan.error)

                logging.info(f"Dumping {len(plan.tables)} table(s) from '{settings.database}'")

                dumper = TableDumper(conn, writer, self.target, modern_drop=plan.modern_drop)
                for table in plan.tables:
                    table_stats = self._dump_single_table(dumper, writer, table)
                    self.stats.tables.append(table_stats)
                    self.stats.total_rows += table_stats.rows_dumped
                    self._log_table_result(table_stats)

                writer.write_footer()

        return self.stats

    def _dump_single_table(self, dumper: TableDumper, writer: DumpWriter, table: TableRef) -> TableStats:
        """Dump a single table, turning any leftover failure into a note."""
        try:
            return dumper.dump_table(table)
        except (DumperError, pymssql.Error) as e:
            message = f"dump of {table} aborted: {e}"
            writer.write_note(message)
            logging.error(f"Error dumping table '{table}': {e}")
            return TableStats(table=table.qualified, notes=[message])

    def _log_table_result(self, table_stats: TableStats) -> None:
        """Log the result of a table dump."""
        if table_stats.success:
            logging.info(f"  ✓ {table_stats.table}: {table_stats.rows_dumped} rows")
        else:
            logging.warning(
                f"  ! {table_stats.table}: {table_stats.rows_dumped} rows, "
                f"{len(table_stats.notes)} note(s)"
            )
