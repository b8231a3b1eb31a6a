"""
Test Database Manager

Provisions one isolated, uniquely named database per test suite run,
migrates it, and tears the working connection down at the end.
"""

import logging
import re
import secrets
import string
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Iterable, List, Optional, Sequence, Tuple

from testdb.config.config_manager import ConfigManager
from testdb.container import Container
from testdb.database.bootstrap import BootstrapConnector
from testdb.database.connection_manager import ConnectionState, DatabaseConnectionManager
from testdb.database.dialects import (
    EngineConnectionOptions,
    bootstrap_family,
    get_bootstrap_options,
    get_connection_options,
)
from testdb.database.migration_manager import DEFAULT_MIGRATIONS_DIR, MigrationManager
from testdb.database.repositories.base import Repository
from testdb.database.repository_resolver import RepositoryResolver
from testdb.testing.truncation import TruncationService

logger = logging.getLogger(__name__)

TEST_DB_PREFIX = "n8n_test_"

MODULES_DIR = Path(__file__).resolve().parent.parent / "modules"

_TOKEN_ALPHABET = string.ascii_lowercase + string.digits
_EXTENSION_NAME = re.compile(r"^[a-z][a-z0-9_]*$")


class SessionStateError(Exception):
    """Raised when a session operation is called in the wrong lifecycle phase."""
    pass


def random_string(min_length: int, max_length: Optional[int] = None) -> str:
    """Random lowercase alphanumeric string of ``min_length``..``max_length`` characters."""
    max_length = max_length or min_length
    length = min_length + secrets.randbelow(max_length - min_length + 1)
    return ''.join(secrets.choice(_TOKEN_ALPHABET) for _ in range(length))


def generate_test_database_name(prefix: str = TEST_DB_PREFIX) -> str:
    """``<prefix><6-10 char token>_<epoch milliseconds>``, e.g. ``n8n_test_ab12cd_1700000000000``."""
    return f"{prefix}{random_string(6, 10)}_{int(time.time() * 1000)}"


class TestDatabaseSession:
    """
    One suite's isolated test database.

    Lifecycle: ``init`` -> any number of ``truncate`` calls -> ``terminate``.
    A session is driven by one test runner process and is not safe to share
    between concurrently running suites.
    """

    __test__ = False

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        connection_manager: Optional[DatabaseConnectionManager] = None,
        container: Optional[Container] = None,
        resolver: Optional[RepositoryResolver] = None,
        migrations_dirs: Optional[Sequence[Path]] = None
    ):
        self.config = config or ConfigManager()
        self.connection_manager = connection_manager or DatabaseConnectionManager(
            timeout=self.config.connection_timeout
        )
        self.container = container or Container()
        self.container.set(DatabaseConnectionManager, self.connection_manager)
        self.resolver = resolver or RepositoryResolver(self.container)
        self.truncation = TruncationService(self.resolver)
        self._migrations_dirs = migrations_dirs

        self.database_name: Optional[str] = None
        self.options: Optional[EngineConnectionOptions] = None
        self.loaded_extensions: Tuple[str, ...] = ()

    @property
    def state(self) -> ConnectionState:
        return self.connection_manager.state

    def migrations_dirs(self) -> List[Path]:
        """Base migrations plus those shipped by each loaded extension."""
        if self._migrations_dirs is not None:
            return [Path(d) for d in self._migrations_dirs]

        dirs = [DEFAULT_MIGRATIONS_DIR]
        for extension in self.loaded_extensions:
            extension_dir = MODULES_DIR / extension / "database" / "migrations"
            if extension_dir.exists():
                dirs.append(extension_dir)
        return dirs

    async def init(self, extension_names: Iterable[str] = ()):
        """
        Create, connect and migrate a fresh test database.

        Args:
            extension_names: Optional modules whose repositories and migrations are used

        Raises:
            SessionStateError: If the session is already connected
            ProvisionError: If the bootstrap create step fails; nothing is connected
            DatabaseConnectionError: If the working connection cannot be opened
            MigrationError: If migrations fail; the session stays connected but not ready
        """
        if self.state.connected:
            raise SessionStateError("Test database session is already initialized, call terminate() first")

        extensions = tuple(extension_names)
        for extension in extensions:
            if not _EXTENSION_NAME.match(extension):
                raise ValueError(f"Invalid extension name: '{extension}'")

        db_type = self.config.database_type
        database_name = generate_test_database_name(self.config.test_db_prefix)
        self.loaded_extensions = extensions

        family = bootstrap_family(db_type)
        if family is not None:
            connector = BootstrapConnector(
                get_bootstrap_options(self.config, family),
                timeout=self.config.connection_timeout
            )
            await connector.create_database(database_name)
        else:
            logger.debug(f"{db_type} creates its database on connect, skipping bootstrap")

        self.database_name = database_name
        self.options = get_connection_options(self.config, db_type, database_name)
        await self.connection_manager.connect(self.options)

        migration_manager = MigrationManager(self.connection_manager, self.migrations_dirs())
        await migration_manager.run_pending_migrations()
        self.state.migrated = True

        logger.info(f"Test database {database_name} is ready (extensions: {list(extensions)})")

    def is_ready(self) -> bool:
        """True once the database is connected and fully migrated."""
        return self.state.connected and self.state.migrated

    async def terminate(self):
        """
        Close the working connection. Safe to call more than once.

        The database itself is left in place for external cleanup.
        """
        await self.connection_manager.close()
        self.state.connected = False

    def get_repository(self, entity_name: str) -> Repository:
        """Repository for ``entity_name`` honouring the loaded extensions."""
        return self.resolver.resolve(entity_name, self.loaded_extensions)

    async def truncate(self, entity_names: Iterable[str]):
        """
        Delete all rows from the tables behind ``entity_names``.

        Raises:
            SessionStateError: If the session is not connected
            ResolutionError: If an entity has no repository
            TruncationError: If a delete fails
        """
        if not self.state.connected:
            raise SessionStateError("Cannot truncate: test database is not connected")
        await self.truncation.truncate(entity_names, self.loaded_extensions)


@asynccontextmanager
async def provisioned_database(
    config: Optional[ConfigManager] = None,
    extension_names: Iterable[str] = ()
) -> AsyncGenerator[TestDatabaseSession, None]:
    """
    Provision a test database for the duration of the block.

    Yields:
        An initialized session; its connection is closed on exit
    """
    session = TestDatabaseSession(config)
    try:
        await session.init(extension_names)
        yield session
    finally:
        await session.terminate()
