#!/usr/bin/env python3
"""
SQL Server Dumper - CLI Entry Point
===================================
Exports a SQL Server database into a single replayable SQL script with:
- CREATE TABLE and primary key statements
- One INSERT per row, identity inserts bracketed
- Optional DROP TABLE statements (modern or legacy syntax)
- An optional WHERE clause applied to every table
"""

import argparse
import logging
import sys
from pathlib import Path

import yaml

from .config import ConfigLoader
from .database_dumper import DatabaseDumper
from .exceptions import ConfigurationError, ConnectivityError
from .utils import log_summary, print_dry_run_info, setup_logging


DEFAULT_CONFIG = 'config.yaml'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='SQL Server Dumper - export schema and data as a SQL script'
    )
    parser.add_argument('-S', '--server', help='Server as host or host,port (env: MSSQL_SERVER)')
    parser.add_argument('-d', '--database', help='Database name (env: MSSQL_DATABASE)')
    parser.add_argument('-U', '--user', help='Login name (env: MSSQL_USER)')
    parser.add_argument('-P', '--password', help='Password (env: MSSQL_PASSWORD)')
    parser.add_argument(
        '-o', '--output', dest='output_file',
        help='Output file (env: MSSQL_OUTPUT_FILE, default: backup_<timestamp>.sql)'
    )
    parser.add_argument(
        '-t', '--tables',
        help='Comma-separated tables, schema optional (env: MSSQL_TABLES, default: all)'
    )
    parser.add_argument(
        '-T', '--timeout', dest='query_timeout', type=int,
        help='Query timeout in seconds, 0 for none (env: MSSQL_QUERY_TIMEOUT)'
    )
    parser.add_argument(
        '--drop-tables', action='store_const', const=True, default=None,
        help='Emit DROP TABLE before each CREATE TABLE (env: MSSQL_DROP_TABLES)'
    )
    parser.add_argument(
        '-w', '--where',
        help='WHERE clause applied to every table, e.g. "IsActive = 1" (env: MSSQL_GLOBAL_WHERE_CLAUSE)'
    )
    parser.add_argument(
        '--compress', action='store_const', const=True, default=None,
        help='Gzip the output file'
    )
    parser.add_argument(
        '-c', '--config',
        help=f'Path to YAML configuration file (default: {DEFAULT_CONFIG} if present)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Check connectivity and list the tables without writing a dump'
    )
    return parser


def main(argv=None):
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config_path = args.config
    if config_path is None and Path(DEFAULT_CONFIG).is_file():
        config_path = DEFAULT_CONFIG

    # Load configuration
    try:
        config = ConfigLoader(config_path)
    except FileNotFoundError:
        print(f"Error: Configuration file '{config_path}' not found")
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file: {e}")
        sys.exit(1)

    # Setup logging
    log_settings = config.get_logging_settings()
    if args.verbose:
        log_settings['level'] = 'DEBUG'
    setup_logging(log_settings)

    overrides = {
        'server': args.server,
        'database': args.database,
        'user': args.user,
        'password': args.password,
        'output_file': args.output_file,
        'tables': args.tables,
        'query_timeout': args.query_timeout,
        'drop_tables': args.drop_tables,
        'where': args.where,
        'compress': args.compress,
    }

    try:
        target = config.build_target(overrides)
    except ConfigurationError as e:
        logging.error(f"Error: {e}")
        sys.exit(1)

    conn = target.connection
    logging.info(f"Connecting to SQL Server {conn.server}, database {conn.database}...")

    try:
        dumper = DatabaseDumper(target)

        if args.dry_run:
            logging.info("DRY RUN MODE - No data will be dumped")
            print_dry_run_info(target, dumper.plan())
            sys.exit(0)

        stats = dumper.run()
    except ConnectivityError as e:
        logging.error(f"Health check failed: {e}")
        logging.error(
            "Check server, database and credentials, and the server format (host[,port]). "
            "In Azure SQL the user name is usually user@servername."
        )
        sys.exit(1)
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        sys.exit(1)

    log_summary(stats)
    logging.info(f"Backup completed. Output saved to: {stats.output_path}")


if __name__ == '__main__':
    main()
