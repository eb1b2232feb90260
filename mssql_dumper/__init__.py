"""
SQL Server Dumper
=================
Exports a SQL Server database into one replayable SQL script:
- CREATE TABLE and primary key statements
- One INSERT per row, with IDENTITY_INSERT toggling
- Optional DROP TABLE statements chosen by server version
- A global WHERE clause applied to every table
- Delimited-text fallback when server-side INSERT rendering fails
"""

from .config import ConfigLoader
from .connection import DatabaseConnection
from .database_dumper import DatabaseDumper, DumpPlan
from .exceptions import (
    ConfigurationError,
    ConnectivityError,
    DataAbsenceError,
    DumperError,
    MetadataError,
    SerializationError,
)
from .introspector import SchemaIntrospector
from .main import main
from .models import (
    ColumnCategory,
    ColumnMeta,
    ConnectionSettings,
    DataStrategy,
    DumpStats,
    DumpTarget,
    GlobalFilter,
    PrimaryKeyMeta,
    TableRef,
    TableStats,
)
from .table_dumper import TableDumper
from .utils import format_settings_display, print_dry_run_info, setup_logging
from .writer import DumpWriter

__version__ = "1.0.0"

__all__ = [
    # Main entry point
    "main",
    # Core classes
    "ConfigLoader",
    "DatabaseConnection",
    "DatabaseDumper",
    "DumpPlan",
    "DumpWriter",
    "SchemaIntrospector",
    "TableDumper",
    # Models
    "ColumnCategory",
    "ColumnMeta",
    "ConnectionSettings",
    "DataStrategy",
    "DumpStats",
    "DumpTarget",
    "GlobalFilter",
    "PrimaryKeyMeta",
    "TableRef",
    "TableStats",
    # Errors
    "ConfigurationError",
    "ConnectivityError",
    "DataAbsenceError",
    "DumperError",
    "MetadataError",
    "SerializationError",
    # Utilities
    "format_settings_display",
    "print_dry_run_info",
    "setup_logging",
]
