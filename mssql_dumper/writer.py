"""
Output document handling for SQL Server Dumper.
"""

import gzip
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, TextIO

from .models import TableRef


BANNER_RULE = "-- " + "=" * 65

SESSION_OPTIONS = (
    "SET NOCOUNT ON;",
    "SET XACT_ABORT ON;",
    "SET ANSI_NULLS ON;",
    "SET QUOTED_IDENTIFIER ON;",
)


class DumpWriter:
    """Append-only writer for the dump script.

    Opened once per run; every section is written in order and nothing is
    ever rewritten.
    """

    def __init__(self, output_path: Path, compress: bool = False):
        self.compress = compress
        self.output_path = Path(str(output_path) + '.gz') if compress else Path(output_path)
        self._handle: Optional[TextIO] = None

    def __enter__(self) -> "DumpWriter":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def open(self) -> None:
        """Open the output file, creating parent directories as needed."""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        if self.compress:
            self._handle = gzip.open(self.output_path, 'wt', encoding='utf-8')
        else:
            self._handle = open(self.output_path, 'w', encoding='utf-8')
        logging.debug(f"Opened output file {self.output_path}")

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def write(self, text: str = "") -> None:
        """Write text followed by a newline."""
        self._handle.write(text + "\n")

    def write_lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.write(line)

    def write_header(self, server: str, database: str, generated: Optional[datetime] = None) -> None:
        generated = generated or datetime.now()
        self.write(f"-- SQL Server Backup generated on {generated.strftime('%Y-%m-%d %H:%M:%S')}")
        self.write(f"-- Server: {server}, Database: {database}")
        self.write()

    def write_banner(self, table: TableRef) -> None:
        self.write()
        self.write(BANNER_RULE)
        self.write(f"-- Table: {table.qualified}")
        self.write(BANNER_RULE)
        self.write()

    def write_comment(self, text: str) -> None:
        for line in text.splitlines() or [""]:
            self.write(f"-- {line}")

    def write_note(self, text: str) -> None:
        """Write a note; multi-line messages stay inside the comment."""
        lines = text.splitlines() or [""]
        self.write(f"-- NOTE: {lines[0]}")
        for line in lines[1:]:
            self.write(f"--   {line}")

    def write_footer(self) -> None:
        self.write("-- Set options for proper backup import")
        self.write_lines(SESSION_OPTIONS)
        self.write()
