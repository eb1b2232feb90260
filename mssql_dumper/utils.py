"""
Utility functions for SQL Server Dumper.
"""

import logging
import sys
from pathlib import Path
from typing import Any, TYPE_CHECKING

from .models import DumpStats, DumpTarget

if TYPE_CHECKING:
    from .database_dumper import DumpPlan


def setup_logging(log_settings: dict[str, Any]) -> None:
    """Setup logging configuration."""
    log_level = getattr(logging, log_settings.get('level', 'INFO').upper())
    log_file = log_settings.get('file')

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def format_settings_display(target: DumpTarget) -> list[str]:
    """Format run settings for display; the password is never shown."""
    conn = target.connection
    parts = [
        f"server={conn.server}",
        f"database={conn.database}",
        f"user={conn.user}",
        f"output={target.output_path}{'.gz' if target.compress else ''}",
    ]
    if conn.query_timeout:
        parts.append(f"timeout={conn.query_timeout}s")
    if target.tables:
        parts.append(f"tables='{target.tables}'")
    if target.drop_tables:
        parts.append("drop_tables=yes")
    if target.where:
        parts.append(f"where='{target.where.predicate}'")
    return parts


def print_dry_run_info(target: DumpTarget, plan: "DumpPlan") -> None:
    """Log what a run would dump in dry-run mode."""
    logging.info(f"Would dump with settings: {', '.join(format_settings_display(target))}")

    if target.drop_tables:
        syntax = 'modern (DROP TABLE IF EXISTS)' if plan.modern_drop else 'legacy (OBJECT_ID check)'
        logging.info(f"  Drop statements: {syntax}")

    if plan.error:
        logging.warning(f"  {plan.error}")
    for table in plan.tables:
        logging.info(f"  - {table.qualified}")
    logging.info(f"  {len(plan.tables)} table(s)")


def log_summary(stats: DumpStats) -> None:
    """Log the end-of-run summary."""
    logging.info("=" * 50)
    logging.info("DUMP COMPLETE")
    logging.info(f"Output: {stats.output_path}")
    logging.info(f"Tables: {stats.total_tables}")
    logging.info(f"Total Rows: {stats.total_rows}")

    noted = [t for t in stats.tables if not t.success]
    if stats.notes or noted:
        logging.warning(f"Notes: {len(stats.notes) + sum(len(t.notes) for t in noted)}")
        for note in stats.notes:
            logging.warning(f"  - {note}")
        for table_stats in noted:
            for note in table_stats.notes:
                logging.warning(f"  - {table_stats.table}: {note}")
