"""
Data models and enums for SQL Server Dumper.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


DEFAULT_SCHEMA = "dbo"


def quote_name(name: str) -> str:
    """Quote an identifier the way QUOTENAME() does."""
    return f"[{name.replace(']', ']]')}]"


class ColumnCategory(Enum):
    """Literal rendering strategy for a column type."""
    BINARY = "binary"
    STRING = "string"
    TEMPORAL = "temporal"
    INTEGER = "integer"
    CAST = "cast"


class DataStrategy(Enum):
    """How a table's rows ended up in the dump."""
    PRIMARY = "primary"
    FALLBACK = "fallback"
    SKIP_BINARY = "skip_binary"


@dataclass(frozen=True)
class TableRef:
    """Schema-qualified table name."""
    schema: str
    name: str

    @classmethod
    def parse(cls, text: str) -> "TableRef":
        """Parse 'table' or 'schema.table', qualifying with dbo when needed."""
        text = text.strip()
        if '.' in text:
            schema, name = text.split('.', 1)
            return cls(schema=schema.strip(), name=name.strip())
        return cls(schema=DEFAULT_SCHEMA, name=text)

    @property
    def qualified(self) -> str:
        return f"{self.schema}.{self.name}"

    @property
    def quoted(self) -> str:
        return f"{quote_name(self.schema)}.{quote_name(self.name)}"

    def __str__(self) -> str:
        return self.qualified


@dataclass(frozen=True)
class ColumnMeta:
    """Catalog metadata for one column.

    ``max_length`` is the raw storage length in bytes, ``-1`` meaning MAX.
    """
    ordinal: int
    name: str
    type_name: str
    max_length: int = 0
    precision: int = 0
    scale: int = 0
    nullable: bool = True
    is_identity: bool = False
    identity_seed: Optional[int] = None
    identity_increment: Optional[int] = None
    default_definition: Optional[str] = None

    @property
    def quoted(self) -> str:
        return quote_name(self.name)


@dataclass(frozen=True)
class PrimaryKeyMeta:
    """Primary key constraint; columns are in key ordinal order."""
    name: str
    columns: tuple[str, ...] = ()


@dataclass(frozen=True)
class GlobalFilter:
    """Predicate applied to every table's data query.

    Held as the bare predicate; ``clause`` is the one canonical form
    injected into queries.
    """
    predicate: str = ""

    WHERE_PREFIX = re.compile(r'^\s*where\b\s*', re.IGNORECASE)

    @classmethod
    def from_text(cls, text: Optional[str]) -> "GlobalFilter":
        """Build a filter from user input, with or without a leading WHERE."""
        if not text:
            return cls()
        predicate = cls.WHERE_PREFIX.sub('', text.strip(), count=1).strip()
        return cls(predicate=predicate)

    @property
    def clause(self) -> str:
        return f"WHERE {self.predicate}" if self.predicate else ""

    def __bool__(self) -> bool:
        return bool(self.predicate)


@dataclass(frozen=True)
class ConnectionSettings:
    """Connection endpoint and credentials."""
    host: str
    database: str
    user: str
    password: str
    port: Optional[int] = None
    query_timeout: int = 0

    @property
    def server(self) -> str:
        """Server in the 'host,port' notation used in dump headers."""
        return f"{self.host},{self.port}" if self.port else self.host


@dataclass(frozen=True)
class DumpTarget:
    """Resolved configuration for one run; immutable once built."""
    connection: ConnectionSettings
    output_path: str
    tables: Optional[str] = None
    where: GlobalFilter = field(default_factory=GlobalFilter)
    drop_tables: bool = False
    compress: bool = False


@dataclass
class TableStats:
    """Statistics for a single table dump."""
    table: str
    rows_dumped: int = 0
    strategy: Optional[DataStrategy] = None
    notes: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.notes


@dataclass
class DumpStats:
    """Overall dump statistics."""
    output_path: str = ""
    server_version: Optional[int] = None
    modern_drop: bool = False
    tables: list[TableStats] = field(default_factory=list)
    total_rows: int = 0
    notes: list[str] = field(default_factory=list)

    @property
    def total_tables(self) -> int:
        return len(self.tables)
