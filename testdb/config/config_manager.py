"""
Configuration Manager for testdb

Handles database engine selection, engine credentials, table prefixes and
test database naming, loaded from environment files and process environment.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


class ConfigManager:
    """
    Central configuration for test database provisioning.

    Provides:
    - Database engine selection (sqlite, postgresdb, mysqldb, mariadb)
    - Per-engine host, port and credentials
    - Environment file loading with precedence
    - Configuration validation
    """

    SUPPORTED_DATABASE_TYPES = ('sqlite', 'postgresdb', 'mysqldb', 'mariadb')

    DEFAULT_PORTS = {
        'postgresdb': 5432,
        'mysqldb': 3306,
    }

    PORT_ENV_VARS = {
        'postgresdb': 'DB_POSTGRESDB_PORT',
        'mysqldb': 'DB_MYSQLDB_PORT',
    }

    def __init__(self, config_dir: Optional[str] = None, validate: bool = True):
        """
        Initialize ConfigManager.

        Args:
            config_dir: Directory containing environment files
            validate: Whether to validate engine type and ports eagerly
        """
        self.config_dir = Path(config_dir) if config_dir else Path.cwd()

        self._env_vars: Dict[str, str] = {}
        self._load_env_files()

        if validate:
            self._validate_database_type()
            self._load_ports()

    def _load_env_files(self):
        """Load environment files with precedence: .env.prod > .env.staging > .env.dev > .env"""
        env = os.getenv('ENV', 'dev')

        env_files = ['.env']
        if env in ['dev', 'staging', 'prod']:
            env_files.append('.env.dev')
        if env in ['staging', 'prod']:
            env_files.append('.env.staging')
        if env == 'prod':
            env_files.append('.env.prod')

        # Later files override earlier ones
        for env_file in env_files:
            env_path = self.config_dir / env_file
            if env_path.exists():
                self._load_env_file(env_path)

    def _load_env_file(self, env_path: Path):
        """Load a single environment file into our internal env_vars dict."""
        try:
            with open(env_path, 'r') as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        self._env_vars[key.strip()] = value.strip()
        except OSError as e:
            logger.warning(f"Could not read environment file {env_path}: {e}")

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Read a setting: os.environ first, then env files, then the default."""
        value = os.getenv(key)
        if value is None:
            value = self._env_vars.get(key)
        return default if value is None else value

    def _validate_database_type(self):
        """Validate the configured database engine."""
        db_type = self.database_type
        if db_type not in self.SUPPORTED_DATABASE_TYPES:
            raise ConfigValidationError(
                f"Invalid DB_TYPE: '{db_type}' - must be one of {', '.join(self.SUPPORTED_DATABASE_TYPES)}"
            )

    def _load_ports(self):
        """Load and validate engine ports."""
        self._ports = {}
        for engine, env_var in self.PORT_ENV_VARS.items():
            env_value = self.get(env_var)
            if env_value is None:
                self._ports[engine] = self.DEFAULT_PORTS[engine]
                continue
            try:
                port = int(env_value)
            except ValueError:
                raise ConfigValidationError(
                    f"Invalid {env_var}: '{env_value}' - port must be a number between 1 and 65535"
                )
            self._validate_port(port, env_var, env_value)
            self._ports[engine] = port

    def _validate_port(self, port: int, env_var: str, original_value: str):
        """Validate a port number."""
        if not (1 <= port <= 65535):
            raise ConfigValidationError(
                f"Invalid {env_var}: '{original_value}' - port must be between 1 and 65535"
            )

    def get_port(self, engine: str) -> int:
        """Get the configured port for a database engine family."""
        if not hasattr(self, '_ports'):
            self._load_ports()
        if engine not in self._ports:
            raise ValueError(f"Unknown engine: {engine}")
        return self._ports[engine]

    @property
    def database_type(self) -> str:
        """Get the configured database engine."""
        return self.get('DB_TYPE', 'sqlite').strip().lower()

    @property
    def table_prefix(self) -> str:
        """Get the table name prefix."""
        return self.get('DB_TABLE_PREFIX', '')

    @property
    def test_db_prefix(self) -> str:
        """Get the prefix used for generated test database names."""
        return self.get('TEST_DB_PREFIX', 'n8n_test_')

    @property
    def connection_timeout(self) -> int:
        """Get the connection timeout in seconds."""
        value = self.get('DB_CONNECTION_TIMEOUT', '20')
        try:
            return int(value)
        except ValueError:
            raise ConfigValidationError(f"Invalid DB_CONNECTION_TIMEOUT: '{value}' - must be an integer")

    @property
    def postgres_host(self) -> str:
        """Get PostgreSQL host."""
        return self.get('DB_POSTGRESDB_HOST', 'localhost')

    @property
    def postgres_port(self) -> int:
        """Get PostgreSQL port."""
        return self.get_port('postgresdb')

    @property
    def postgres_user(self) -> str:
        """Get PostgreSQL user."""
        return self.get('DB_POSTGRESDB_USER', 'postgres')

    @property
    def postgres_password(self) -> str:
        """Get PostgreSQL password."""
        return self.get('DB_POSTGRESDB_PASSWORD', '')

    @property
    def postgres_database(self) -> str:
        """Get PostgreSQL database name."""
        return self.get('DB_POSTGRESDB_DATABASE', 'postgres')

    @property
    def postgres_schema(self) -> str:
        """Get PostgreSQL schema."""
        return self.get('DB_POSTGRESDB_SCHEMA', 'public')

    @property
    def mysql_host(self) -> str:
        """Get MySQL / MariaDB host."""
        return self.get('DB_MYSQLDB_HOST', 'localhost')

    @property
    def mysql_port(self) -> int:
        """Get MySQL / MariaDB port."""
        return self.get_port('mysqldb')

    @property
    def mysql_user(self) -> str:
        """Get MySQL / MariaDB user."""
        return self.get('DB_MYSQLDB_USER', 'root')

    @property
    def mysql_password(self) -> str:
        """Get MySQL / MariaDB password."""
        return self.get('DB_MYSQLDB_PASSWORD', '')

    @property
    def mysql_database(self) -> str:
        """Get MySQL / MariaDB database name."""
        return self.get('DB_MYSQLDB_DATABASE', 'n8n')

    @property
    def sqlite_directory(self) -> str:
        """Get the directory that holds sqlite test database files."""
        return self.get('DB_SQLITE_DIRECTORY', tempfile.gettempdir())

