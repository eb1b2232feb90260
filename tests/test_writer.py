"""
Unit tests for writer.py
"""

import gzip
from datetime import datetime

import pytest

from mssql_dumper.models import TableRef
from mssql_dumper.writer import BANNER_RULE, SESSION_OPTIONS, DumpWriter


@pytest.fixture
def output_path(tmp_path):
    return tmp_path / "dump.sql"


class TestDumpWriter:
    """Tests for DumpWriter."""

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "dump.sql"
        with DumpWriter(path) as writer:
            writer.write("SELECT 1;")
        assert path.read_text(encoding="utf-8") == "SELECT 1;\n"

    def test_header(self, output_path):
        with DumpWriter(output_path) as writer:
            writer.write_header("db.local,1433", "shop", generated=datetime(2024, 3, 5, 14, 7, 9))

        assert output_path.read_text().splitlines() == [
            "-- SQL Server Backup generated on 2024-03-05 14:07:09",
            "-- Server: db.local,1433, Database: shop",
            "",
        ]

    def test_banner(self, output_path):
        with DumpWriter(output_path) as writer:
            writer.write_banner(TableRef("sales", "Invoice"))

        assert output_path.read_text().splitlines() == [
            "",
            BANNER_RULE,
            "-- Table: sales.Invoice",
            BANNER_RULE,
            "",
        ]

    def test_note_single_line(self, output_path):
        with DumpWriter(output_path) as writer:
            writer.write_note("data export skipped for dbo.Files due to binary columns")

        assert output_path.read_text() == (
            "-- NOTE: data export skipped for dbo.Files due to binary columns\n"
        )

    def test_note_multi_line_stays_commented(self, output_path):
        with DumpWriter(output_path) as writer:
            writer.write_note("fallback export failed:\nMsg 208, Level 16\nInvalid object name")

        for line in output_path.read_text().splitlines():
            assert line.startswith("--")

    def test_comment(self, output_path):
        with DumpWriter(output_path) as writer:
            writer.write_comment("Table structure")
        assert output_path.read_text() == "-- Table structure\n"

    def test_footer(self, output_path):
        with DumpWriter(output_path) as writer:
            writer.write_footer()

        lines = output_path.read_text().splitlines()
        assert lines[0] == "-- Set options for proper backup import"
        assert tuple(lines[1:5]) == SESSION_OPTIONS

    def test_unicode(self, output_path):
        with DumpWriter(output_path) as writer:
            writer.write("INSERT INTO [dbo].[People] ([Name]) VALUES (N'Zoë');")
        assert "Zoë" in output_path.read_text(encoding="utf-8")

    def test_compress(self, output_path):
        writer = DumpWriter(output_path, compress=True)
        assert writer.output_path.name == "dump.sql.gz"

        with writer:
            writer.write_lines(["SELECT 1;", "SELECT 2;"])

        with gzip.open(writer.output_path, "rt", encoding="utf-8") as f:
            assert f.read() == "SELECT 1;\nSELECT 2;\n"
        assert not output_path.exists()

    def test_close_twice(self, output_path):
        writer = DumpWriter(output_path)
        writer.open()
        writer.close()
        writer.close()
