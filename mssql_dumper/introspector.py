"""
Catalog introspection for SQL Server Dumper.

Every query here reads system catalog views only. Failures are raised as
MetadataError so the caller can degrade them into notes.
"""

import logging
import re
from typing import Optional

import pymssql

from .connection import DatabaseConnection
from .exceptions import ConnectivityError, MetadataError
from .models import ColumnMeta, PrimaryKeyMeta, TableRef


TABLES_QUERY = """
SELECT TABLE_SCHEMA, TABLE_NAME
FROM INFORMATION_SCHEMA.TABLES
WHERE TABLE_TYPE = 'BASE TABLE'
ORDER BY TABLE_SCHEMA, TABLE_NAME
"""

COLUMNS_QUERY = """
SELECT c.column_id,
       c.name,
       t.name,
       c.max_length,
       c.precision,
       c.scale,
       c.is_nullable,
       c.is_identity,
       CONVERT(BIGINT, ic.seed_value),
       CONVERT(BIGINT, ic.increment_value),
       CASE WHEN c.default_object_id <> 0 THEN OBJECT_DEFINITION(c.default_object_id) END
FROM sys.columns c
JOIN sys.types t ON c.user_type_id = t.user_type_id
LEFT JOIN sys.identity_columns ic ON ic.object_id = c.object_id AND ic.column_id = c.column_id
WHERE c.object_id = OBJECT_ID(%s)
ORDER BY c.column_id
"""

PRIMARY_KEY_QUERY = """
SELECT kc.name, c.name
FROM sys.key_constraints kc
JOIN sys.index_columns ic ON kc.parent_object_id = ic.object_id AND kc.unique_index_id = ic.index_id
JOIN sys.columns c ON c.object_id = ic.object_id AND c.column_id = ic.column_id
WHERE kc.parent_object_id = OBJECT_ID(%s) AND kc.type = 'PK'
ORDER BY ic.key_ordinal
"""

IDENTITY_QUERY = """
SELECT CASE WHEN EXISTS(
    SELECT 1 FROM sys.columns c
    JOIN sys.tables t ON c.object_id = t.object_id
    JOIN sys.schemas s ON t.schema_id = s.schema_id
    WHERE s.name = %s AND t.name = %s AND c.is_identity = 1
) THEN 1 ELSE 0 END
"""

BINARY_COLUMNS_QUERY = """
SELECT COUNT(*)
FROM INFORMATION_SCHEMA.COLUMNS
WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
AND DATA_TYPE IN ('binary', 'varbinary', 'image')
"""

VERSION_QUERY = "SELECT CONVERT(varchar(128), SERVERPROPERTY('ProductVersion'))"


def parse_table_list(tables: str) -> list[TableRef]:
    """Split a comma-separated table list, keeping the caller's order.

    Entries without a schema are qualified with dbo. Duplicates are kept.

    >>> [t.qualified for t in parse_table_list("Orders, sales.Invoice")]
    ['dbo.Orders', 'sales.Invoice']
    """
    return [TableRef.parse(part) for part in tables.split(',') if part.strip()]


def parse_major_version(value) -> Optional[int]:
    """Extract the major version from a ProductVersion string like '15.0.2000.5'."""
    if value is None:
        return None
    match = re.match(r'\s*(\d+)', str(value))
    return int(match.group(1)) if match else None


class SchemaIntrospector:
    """Reads table, column and key metadata from the SQL Server catalog."""

    def __init__(self, connection: DatabaseConnection):
        self.connection = connection

    def _query(self, table: Optional[TableRef], query: str, params: Optional[tuple] = None) -> list[tuple]:
        try:
            return self.connection.execute_query(query, params)
        except pymssql.Error as e:
            target = f" for {table}" if table else ""
            raise MetadataError(f"catalog query failed{target}: {e}") from e

    def discover_tables(self, explicit: Optional[str] = None) -> list[TableRef]:
        """Return the tables to dump.

        Args:
            explicit: Optional comma-separated table list. When given, the
                catalog is not consulted.
        """
        if explicit and explicit.strip():
            return parse_table_list(explicit)

        rows = self._query(None, TABLES_QUERY)
        return [TableRef(schema=row[0], name=row[1]) for row in rows]

    def get_columns(self, table: TableRef) -> list[ColumnMeta]:
        rows = self._query(table, COLUMNS_QUERY, (table.quoted,))
        columns = []
        for row in rows:
            is_identity = bool(row[7])
            columns.append(ColumnMeta(
                ordinal=row[0],
                name=row[1],
                type_name=row[2],
                max_length=row[3],
                precision=row[4],
                scale=row[5],
                nullable=bool(row[6]),
                is_identity=is_identity,
                identity_seed=row[8] if is_identity else None,
                identity_increment=row[9] if is_identity else None,
                default_definition=row[10],
            ))
        return columns

    def get_primary_key(self, table: TableRef) -> Optional[PrimaryKeyMeta]:
        rows = self._query(table, PRIMARY_KEY_QUERY, (table.quoted,))
        if not rows:
            return None
        return PrimaryKeyMeta(name=rows[0][0], columns=tuple(row[1] for row in rows))

    def has_identity_column(self, table: TableRef) -> bool:
        rows = self._query(table, IDENTITY_QUERY, (table.schema, table.name))
        return bool(rows and rows[0][0])

    def has_binary_column(self, table: TableRef) -> bool:
        rows = self._query(table, BINARY_COLUMNS_QUERY, (table.schema, table.name))
        return bool(rows and rows[0][0])

    def server_major_version(self) -> Optional[int]:
        """Return the server's major version, or None when it cannot be read.

        master is asked first; contained users often cannot open it, so
        the target database is tried next.
        """
        try:
            version = parse_major_version(
                self.connection.query_database(DatabaseConnection.MASTER_DATABASE, VERSION_QUERY)[0][0]
            )
            if version is not None:
                return version
        except (pymssql.Error, ConnectivityError, IndexError) as e:
            logging.debug(f"Version query on master failed: {e}")

        try:
            return parse_major_version(self.connection.fetch_scalar(VERSION_QUERY))
        except pymssql.Error as e:
            logging.debug(f"Version query on target database failed: {e}")
        return None
