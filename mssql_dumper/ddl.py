"""
DDL rendering for SQL Server Dumper.

Turns catalog metadata into CREATE TABLE, primary key, DROP TABLE and
IDENTITY_INSERT statements. Nothing here touches the database.
"""

from typing import Optional

from .exceptions import DataAbsenceError
from .models import ColumnMeta, PrimaryKeyMeta, TableRef, quote_name


CHARACTER_TYPES = ('varchar', 'char', 'nvarchar', 'nchar')
DOUBLE_BYTE_TYPES = ('nvarchar', 'nchar')
EXACT_NUMERIC_TYPES = ('decimal', 'numeric')

# First server major version with DROP TABLE IF EXISTS (SQL Server 2016).
MODERN_DROP_MIN_VERSION = 13


def render_column_type(column: ColumnMeta) -> str:
    """Render a column's type with its length or precision."""
    type_name = column.type_name
    if type_name in CHARACTER_TYPES:
        if column.max_length == -1:
            return f"{type_name}(MAX)"
        length = column.max_length
        if type_name in DOUBLE_BYTE_TYPES:
            length //= 2
        return f"{type_name}({length})"
    if type_name in EXACT_NUMERIC_TYPES:
        return f"{type_name}({column.precision},{column.scale})"
    return type_name


def render_column_definition(column: ColumnMeta) -> str:
    """Render one column line of a CREATE TABLE statement."""
    parts = [column.quoted, render_column_type(column)]
    parts.append('NULL' if column.nullable else 'NOT NULL')
    if column.is_identity:
        seed = column.identity_seed if column.identity_seed is not None else 0
        increment = column.identity_increment if column.identity_increment is not None else 0
        parts.append(f"IDENTITY({seed},{increment})")
    if column.default_definition:
        parts.append(f"DEFAULT ({column.default_definition})")
    return ' '.join(parts)


def build_create_table(table: TableRef, columns: list[ColumnMeta]) -> str:
    """Build the CREATE TABLE statement for a table.

    Raises:
        DataAbsenceError: if the table has no columns.
    """
    if not columns:
        raise DataAbsenceError(f"no columns found for {table}")

    definitions = ',\n'.join(f"    {render_column_definition(col)}" for col in columns)
    return f"CREATE TABLE {table.quoted} (\n{definitions}\n);"


def build_primary_key(table: TableRef, pk: Optional[PrimaryKeyMeta]) -> Optional[str]:
    """Build the ALTER TABLE ... PRIMARY KEY statement, or None without a key."""
    if pk is None or not pk.columns:
        return None
    key_columns = ', '.join(quote_name(col) for col in pk.columns)
    return (
        f"ALTER TABLE {table.quoted} ADD CONSTRAINT {quote_name(pk.name)} "
        f"PRIMARY KEY ({key_columns});"
    )


def use_modern_drop(drop_requested: bool, server_major_version: Optional[int]) -> bool:
    """Decide whether DROP TABLE IF EXISTS can be used.

    An unknown server version always selects the legacy form.
    """
    return (
        drop_requested
        and server_major_version is not None
        and server_major_version >= MODERN_DROP_MIN_VERSION
    )


def build_drop_table(table: TableRef, use_modern_syntax: bool) -> str:
    """Build the drop statement, with its leading comment line."""
    if use_modern_syntax:
        return (
            "-- Drop table if exists (modern syntax)\n"
            f"DROP TABLE IF EXISTS {table.quoted};"
        )
    object_name = table.quoted.replace("'", "''")
    return (
        "-- Drop table if exists (legacy check)\n"
        f"IF OBJECT_ID(N'{object_name}', 'U') IS NOT NULL\n"
        f"    DROP TABLE {table.quoted};"
    )


def build_identity_insert(table: TableRef, enabled: bool) -> str:
    """Build the SET IDENTITY_INSERT toggle for a table."""
    state = 'ON' if enabled else 'OFF'
    return f"SET IDENTITY_INSERT {table.quoted} {state};"
