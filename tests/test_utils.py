"""
Unit tests for utils.py
"""

import logging

import pytest

from mssql_dumper.database_dumper import DumpPlan
from mssql_dumper.models import (
    ConnectionSettings,
    DumpStats,
    DumpTarget,
    GlobalFilter,
    TableRef,
    TableStats,
)
from mssql_dumper.utils import format_settings_display, log_summary, print_dry_run_info, setup_logging


def make_target(**kwargs):
    return DumpTarget(
        connection=ConnectionSettings("db.local", "shop", "sa", "s3cr3t!", port=kwargs.pop("port", None),
                                      query_timeout=kwargs.pop("query_timeout", 0)),
        output_path=kwargs.pop("output_path", "backup.sql"),
        **kwargs
    )


class TestSetupLogging:
    """Tests for setup_logging function."""

    @pytest.fixture(autouse=True)
    def reset_logging(self):
        """Reset logging configuration before each test."""
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        root_logger.setLevel(logging.NOTSET)
        yield
        for handler in root_logger.handlers[:]:
            handler.close()
            root_logger.removeHandler(handler)

    def test_default_log_level(self):
        setup_logging({})
        assert logging.getLogger().level == logging.INFO

    def test_custom_log_level(self):
        setup_logging({"level": "DEBUG"})
        assert logging.getLogger().level == logging.DEBUG

    def test_log_level_case_insensitive(self):
        setup_logging({"level": "warning"})
        assert logging.getLogger().level == logging.WARNING

    def test_log_to_file(self, tmp_path):
        """Test logging to a file in a directory that does not exist yet."""
        log_file = tmp_path / "logs" / "dump.log"
        setup_logging({"file": str(log_file)})

        logging.info("Dumping 2 table(s)")

        assert log_file.exists()


class TestFormatSettingsDisplay:
    """Tests for format_settings_display function."""

    def test_minimal(self):
        parts = format_settings_display(make_target())
        assert parts == ["server=db.local", "database=shop", "user=sa", "output=backup.sql"]

    def test_password_never_shown(self):
        parts = format_settings_display(make_target(
            port=1444, query_timeout=30, tables="Orders", drop_tables=True,
            where=GlobalFilter.from_text("IsActive = 1"),
        ))
        assert not any("s3cr3t!" in part for part in parts)

    def test_all_settings(self):
        parts = format_settings_display(make_target(
            port=1444,
            query_timeout=30,
            tables="Orders, sales.Invoice",
            drop_tables=True,
            where=GlobalFilter.from_text("WHERE IsActive = 1"),
            compress=True,
        ))
        assert "server=db.local,1444" in parts
        assert "output=backup.sql.gz" in parts
        assert "timeout=30s" in parts
        assert "tables='Orders, sales.Invoice'" in parts
        assert "drop_tables=yes" in parts
        assert "where='IsActive = 1'" in parts


class TestPrintDryRunInfo:
    """Tests for print_dry_run_info function."""

    def test_lists_tables(self, caplog):
        caplog.set_level(logging.INFO)
        plan = DumpPlan(
            server_version=15,
            modern_drop=True,
            tables=[TableRef("dbo", "Orders"), TableRef("sales", "Invoice")],
        )

        print_dry_run_info(make_target(drop_tables=True), plan)

        assert "Would dump with settings" in caplog.text
        assert "modern (DROP TABLE IF EXISTS)" in caplog.text
        assert "- dbo.Orders" in caplog.text
        assert "- sales.Invoice" in caplog.text
        assert "2 table(s)" in caplog.text

    def test_legacy_drop_and_error(self, caplog):
        caplog.set_level(logging.INFO)
        plan = DumpPlan(server_version=None, modern_drop=False, error="could not list tables: denied")

        print_dry_run_info(make_target(drop_tables=True), plan)

        assert "legacy (OBJECT_ID check)" in caplog.text
        assert "could not list tables: denied" in caplog.text
        assert "0 table(s)" in caplog.text

    def test_no_drop_line_without_drop_tables(self, caplog):
        caplog.set_level(logging.INFO)
        print_dry_run_info(make_target(), DumpPlan(server_version=15, modern_drop=False))
        assert "Drop statements" not in caplog.text


class TestLogSummary:
    """Tests for log_summary function."""

    def test_clean_run(self, caplog):
        caplog.set_level(logging.INFO)
        stats = DumpStats(output_path="backup.sql", total_rows=5)
        stats.tables.append(TableStats(table="dbo.Orders", rows_dumped=5))

        log_summary(stats)

        assert "DUMP COMPLETE" in caplog.text
        assert "Tables: 1" in caplog.text
        assert "Total Rows: 5" in caplog.text
        assert "Notes:" not in caplog.text

    def test_notes_listed(self, caplog):
        caplog.set_level(logging.INFO)
        stats = DumpStats(output_path="backup.sql", notes=["could not list tables: denied"])
        stats.tables.append(TableStats(
            table="dbo.Files", notes=["data export skipped for dbo.Files due to binary columns"]
        ))

        log_summary(stats)

        assert "Notes: 2" in caplog.text
        assert "dbo.Files: data export skipped" in caplog.text
        assert "could not list tables: denied" in caplog.text
