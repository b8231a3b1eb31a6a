"""
Database package for testdb.

Provides engine dialects, the bootstrap connector, the working connection,
migrations and repository resolution.
"""

from .bootstrap import BootstrapConnector, ProvisionError
from .connection_manager import (
    ConnectionState,
    DatabaseConnectionError,
    DatabaseConnectionManager
)
from .dialects import DatabaseType, DriverType, EngineConnectionOptions
from .migration_manager import MigrationError, MigrationManager
from .repository_resolver import RepositoryResolver, ResolutionError

__all__ = [
    'BootstrapConnector',
    'ProvisionError',
    'ConnectionState',
    'DatabaseConnectionError',
    'DatabaseConnectionManager',
    'DatabaseType',
    'DriverType',
    'EngineConnectionOptions',
    'MigrationError',
    'MigrationManager',
    'RepositoryResolver',
    'ResolutionError'
]
