"""
Exceptions raised by SQL Server Dumper.

Only ConfigurationError and ConnectivityError end a run; the rest are
caught per table and written to the dump as notes.
"""


class DumperError(Exception):
    """Base class for dumper errors."""


class ConfigurationError(DumperError):
    """Required run configuration is missing or invalid."""


class ConnectivityError(DumperError):
    """The target database cannot be reached."""


class MetadataError(DumperError):
    """A catalog query for a table failed."""


class SerializationError(DumperError):
    """The primary INSERT-rendering query failed."""


class DataAbsenceError(DumperError):
    """A table has nothing to render (no columns, no parseable rows)."""
