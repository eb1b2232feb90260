"""
Configuration loading and validation for SQL Server Dumper.

Settings are layered, later sources winning: built-in defaults, the YAML
config file, the .env file, the process environment, command-line flags.
"""

import os
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .models import ConnectionSettings, DumpTarget, GlobalFilter


ENV_VARS = {
    'server': 'MSSQL_SERVER',
    'database': 'MSSQL_DATABASE',
    'user': 'MSSQL_USER',
    'password': 'MSSQL_PASSWORD',
    'output_file': 'MSSQL_OUTPUT_FILE',
    'tables': 'MSSQL_TABLES',
    'query_timeout': 'MSSQL_QUERY_TIMEOUT',
    'drop_tables': 'MSSQL_DROP_TABLES',
    'where': 'MSSQL_GLOBAL_WHERE_CLAUSE',
}

REQUIRED_SETTINGS = ('server', 'database', 'user', 'password')

TRUE_VALUES = ('1', 'true', 'yes')


def parse_bool(value: Any) -> bool:
    """Interpret 1/true/yes (any case, surrounding spaces ignored) as True."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUE_VALUES


def parse_server(raw: str) -> tuple[str, Optional[int]]:
    """
    Split a server string in 'host' or 'host,port' form.

    Surrounding whitespace, whitespace around the comma and a trailing
    comma are tolerated.

    Raises:
        ConfigurationError: if the host is empty or the port is not a number.
    """
    cleaned = raw.strip().rstrip(',')
    cleaned = re.sub(r'\s*,\s*', ',', cleaned)
    host, _, rest = cleaned.partition(',')
    host = host.strip()
    port_text = rest.split(',')[0].strip()

    if not host:
        raise ConfigurationError(f"Invalid server '{raw}'")
    if not port_text:
        return host, None
    if not port_text.isdigit():
        raise ConfigurationError(f"Invalid port '{port_text}' in server '{raw}'")
    return host, int(port_text)


def default_output_file() -> str:
    return f"backup_{datetime.now().strftime('%Y%m%d_%H%M%S')}.sql"


class ConfigLoader:
    """Loads configuration from an optional YAML file, .env and the environment."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')

    def __init__(self, config_path: Optional[str] = None, env_file: Optional[str] = '.env'):
        self.config_path = config_path
        if env_file and Path(env_file).is_file():
            # Variables already set in the process environment are kept.
            load_dotenv(env_file, override=False)
        self.config = self._load_config() if config_path else {}

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self.config_path, 'r') as f:
            config = yaml.safe_load(f) or {}

        return self._resolve_env_vars(config)

    def _resolve_env_vars(self, obj: Any) -> Any:
        """Recursively resolve environment variables in config."""
        if isinstance(obj, str):
            matches = self.ENV_VAR_PATTERN.findall(obj)
            for match in matches:
                env_value = os.environ.get(match, '')
                obj = obj.replace(f'${{{match}}}', env_value)
            return obj
        elif isinstance(obj, dict):
            return {k: self._resolve_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._resolve_env_vars(item) for item in obj]
        return obj

    def get_connection_settings(self) -> dict[str, Any]:
        """Get connection settings from the config file."""
        return self.config.get('connection', {})

    def get_dump_settings(self) -> dict[str, Any]:
        """Get dump settings (tables, drop_tables, where) from the config file."""
        return self.config.get('dump', {})

    def get_output_settings(self) -> dict[str, Any]:
        """Get output settings."""
        return self.config.get('output', {})

    def get_logging_settings(self) -> dict[str, Any]:
        """Get logging settings."""
        return self.config.get('logging', {})

    def _file_settings(self) -> dict[str, Any]:
        settings = {}
        settings.update(self.get_connection_settings())
        settings.update(self.get_dump_settings())
        output = self.get_output_settings()
        if 'file' in output:
            settings['output_file'] = output['file']
        if 'compress' in output:
            settings['compress'] = output['compress']
        return settings

    def resolve(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge settings with priority: overrides > environment > config file > defaults.

        Empty strings and None never override a value from a lower layer.
        """
        settings: dict[str, Any] = {
            'query_timeout': 0,
            'drop_tables': False,
            'compress': False,
        }
        layers = [
            self._file_settings(),
            {key: os.environ.get(var) for key, var in ENV_VARS.items()},
            overrides or {},
        ]
        for layer in layers:
            for key, value in layer.items():
                if value is None or value == '':
                    continue
                settings[key] = value
        return settings

    def build_target(self, overrides: Optional[dict[str, Any]] = None) -> DumpTarget:
        """
        Build the immutable run configuration.

        Raises:
            ConfigurationError: if a required setting is missing or invalid.
        """
        settings = self.resolve(overrides)

        missing = [key for key in REQUIRED_SETTINGS if not str(settings.get(key, '')).strip()]
        if missing:
            raise ConfigurationError(
                f"Missing required parameters: {', '.join(missing)} "
                f"(set flags or {', '.join(ENV_VARS[key] for key in missing)})"
            )

        host, port = parse_server(str(settings['server']))

        try:
            query_timeout = int(settings['query_timeout'])
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid query timeout '{settings['query_timeout']}'")

        database = str(settings['database']).strip().rstrip(',')

        tables = settings.get('tables')
        if isinstance(tables, list):
            tables = ', '.join(str(t) for t in tables)

        return DumpTarget(
            connection=ConnectionSettings(
                host=host,
                port=port,
                database=database,
                user=str(settings['user']),
                password=str(settings['password']),
                query_timeout=query_timeout,
            ),
            output_path=str(settings.get('output_file') or default_output_file()),
            tables=tables,
            where=GlobalFilter.from_text(settings.get('where')),
            drop_tables=parse_bool(settings['drop_tables']),
            compress=parse_bool(settings['compress']),
        )
