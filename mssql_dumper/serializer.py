"""
Row serialization for SQL Server Dumper.

The primary path builds a SELECT that makes the server render each row as
a finished INSERT statement. The fallback path asks the server for a
pipe-delimited line of quoted values per row and rebuilds the INSERT on
the client. Both are pure text builders; execution happens in the table
dumper.
"""

from typing import Callable, Optional

from .ddl import render_column_type
from .models import ColumnCategory, ColumnMeta, DataStrategy, GlobalFilter, TableRef


FALLBACK_DELIMITER = '|'
NULL_TOKEN = 'NULL'

TYPE_CATEGORIES: dict[str, ColumnCategory] = {
    'binary': ColumnCategory.BINARY,
    'varbinary': ColumnCategory.BINARY,
    'image': ColumnCategory.BINARY,
    'char': ColumnCategory.STRING,
    'varchar': ColumnCategory.STRING,
    'text': ColumnCategory.STRING,
    'nchar': ColumnCategory.STRING,
    'nvarchar': ColumnCategory.STRING,
    'ntext': ColumnCategory.STRING,
    'xml': ColumnCategory.STRING,
    'uniqueidentifier': ColumnCategory.STRING,
    'date': ColumnCategory.TEMPORAL,
    'datetime': ColumnCategory.TEMPORAL,
    'datetime2': ColumnCategory.TEMPORAL,
    'datetimeoffset': ColumnCategory.TEMPORAL,
    'time': ColumnCategory.TEMPORAL,
    'tinyint': ColumnCategory.INTEGER,
    'smallint': ColumnCategory.INTEGER,
    'int': ColumnCategory.INTEGER,
    'bigint': ColumnCategory.INTEGER,
    'bit': ColumnCategory.INTEGER,
}

# CONVERT styles that keep full precision when a value is turned into text:
# 126 is ISO 8601, 2 keeps 16 significant digits for floats and 4 decimals
# for money.
CONVERSION_STYLES: dict[str, int] = {
    'datetime': 126,
    'smalldatetime': 126,
    'float': 2,
    'real': 2,
    'money': 2,
    'smallmoney': 2,
}


def sql_string(text: str) -> str:
    """Quote text as an N'' literal, doubling embedded quotes."""
    return "N'" + text.replace("'", "''") + "'"


def categorize(type_name: str) -> ColumnCategory:
    """Map a native type name to its rendering category."""
    return TYPE_CATEGORIES.get(type_name.lower(), ColumnCategory.CAST)


def column_list(columns: list[ColumnMeta]) -> str:
    return ','.join(col.quoted for col in columns)


def _as_text(column: ColumnMeta) -> str:
    style = CONVERSION_STYLES.get(column.type_name.lower())
    if style is not None:
        return f"CONVERT(NVARCHAR(MAX), {column.quoted}, {style})"
    return f"CAST({column.quoted} AS NVARCHAR(MAX))"


def _escaped_text(column: ColumnMeta) -> str:
    return f"REPLACE({_as_text(column)}, N'''', N'''''')"


def _render_binary(column: ColumnMeta) -> str:
    return f"CONVERT(NVARCHAR(MAX), CONVERT(VARBINARY(MAX), {column.quoted}), 1)"


def _render_quoted(column: ColumnMeta) -> str:
    return f"N'N''' + {_escaped_text(column)} + N''''"


def _render_integer(column: ColumnMeta) -> str:
    return _as_text(column)


def _render_cast(column: ColumnMeta) -> str:
    declared = render_column_type(column)
    return f"N'CAST(N''' + {_escaped_text(column)} + N''' AS {declared})'"


LITERAL_RENDERERS: dict[ColumnCategory, Callable[[ColumnMeta], str]] = {
    ColumnCategory.BINARY: _render_binary,
    ColumnCategory.STRING: _render_quoted,
    ColumnCategory.TEMPORAL: _render_quoted,
    ColumnCategory.INTEGER: _render_integer,
    ColumnCategory.CAST: _render_cast,
}


def render_literal_expression(column: ColumnMeta) -> str:
    """Build the T-SQL expression that renders a column value as a literal.

    NULL is checked before the type category, so every category only ever
    sees non-null values.
    """
    renderer = LITERAL_RENDERERS[categorize(column.type_name)]
    return f"CASE WHEN {column.quoted} IS NULL THEN N'{NULL_TOKEN}' ELSE {renderer(column)} END"


def _from_clause(table: TableRef, where: GlobalFilter) -> str:
    clause = f" FROM {table.quoted}"
    if where:
        clause += f" {where.clause}"
    return clause


def build_primary_row_selector(
    table: TableRef,
    columns: list[ColumnMeta],
    where: GlobalFilter
) -> str:
    """Build a SELECT returning one ready-made INSERT statement per row."""
    prefix = sql_string(f"INSERT INTO {table.quoted} ({column_list(columns)}) VALUES (")
    separator = sql_string(', ')
    values = f" + {separator} + ".join(render_literal_expression(col) for col in columns)
    suffix = sql_string(');')
    return f"SELECT {prefix} + {values} + {suffix}{_from_clause(table, where)};"


def build_fallback_query(
    table: TableRef,
    columns: list[ColumnMeta],
    where: GlobalFilter
) -> str:
    """Build a SELECT returning one pipe-delimited line of quoted values per row."""
    delimiter = sql_string(FALLBACK_DELIMITER)
    pieces = [
        f"CASE WHEN {col.quoted} IS NULL THEN N'{NULL_TOKEN}' "
        f"ELSE N'''' + {_escaped_text(col)} + N'''' END"
        for col in columns
    ]
    return f"SELECT {f' + {delimiter} + '.join(pieces)}{_from_clause(table, where)};"


def split_fallback_line(line: str) -> Optional[list[str]]:
    """Split a fallback line into SQL literals.

    Quoted values may contain the delimiter; doubled quotes stay escaped.
    NULL tokens become bare NULL and quoted values become N'' literals.
    Returns None when any field is neither.
    """
    fields = []
    current = []
    in_quotes = False
    i = 0
    while i < len(line):
        ch = line[i]
        if in_quotes:
            current.append(ch)
            if ch == "'":
                if line[i + 1:i + 2] == "'":
                    current.append("'")
                    i += 1
                else:
                    in_quotes = False
        elif ch == "'":
            in_quotes = True
            current.append(ch)
        elif ch == FALLBACK_DELIMITER:
            fields.append(''.join(current))
            current = []
        else:
            current.append(ch)
        i += 1

    if in_quotes:
        return None
    fields.append(''.join(current))

    literals = []
    for value in fields:
        value = value.strip()
        if value == NULL_TOKEN:
            literals.append(NULL_TOKEN)
        elif len(value) >= 2 and value.startswith("'") and value.endswith("'"):
            literals.append('N' + value)
        else:
            return None
    return literals


def build_fallback_insert(
    table: TableRef,
    columns: list[ColumnMeta],
    line: Optional[str]
) -> Optional[str]:
    """Rebuild an INSERT from a fallback line, or None if it cannot be parsed."""
    if not line or not line.strip():
        return None
    literals = split_fallback_line(line)
    if literals is None or len(literals) != len(columns):
        return None
    return f"INSERT INTO {table.quoted} ({column_list(columns)}) VALUES ({', '.join(literals)});"


def choose_data_strategy(primary_rows: int, has_binary: bool) -> DataStrategy:
    """Pick how a table's data ends up in the dump.

    Rows from the primary query win. Without them, tables holding binary
    columns are skipped since the text fallback cannot carry raw bytes.
    """
    if primary_rows > 0:
        return DataStrategy.PRIMARY
    if has_binary:
        return DataStrategy.SKIP_BINARY
    return DataStrategy.FALLBACK
