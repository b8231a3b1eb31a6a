"""
Bootstrap connector.

Opens a short-lived connection to an engine's administrative database to
create, drop or list test databases. The connection is closed before any
method returns, whether or not the statement succeeded, and is never handed
out for other work.
"""

import logging
import re
from contextlib import asynccontextmanager
from typing import AsyncGenerator, List, Optional

from testdb.database.dialects import MYSQL_CHARSET, DriverType, EngineConnectionOptions
from testdb.database.drivers import Driver, get_driver

logger = logging.getLogger(__name__)

SAFE_DATABASE_NAME = re.compile(r"^[a-z0-9_]+$")


class ProvisionError(Exception):
    """Raised when a bootstrap connect, create, drop or list operation fails."""
    pass


class BootstrapConnector:
    """Issues CREATE / DROP DATABASE through a privileged, short-lived connection."""

    def __init__(self, options: EngineConnectionOptions, timeout: Optional[float] = None):
        if options.type == DriverType.SQLITE:
            raise ValueError("sqlite databases are created on connect and need no bootstrap connection")
        self.options = options
        self.timeout = timeout

    @asynccontextmanager
    async def connect(self) -> AsyncGenerator[Driver, None]:
        """
        Open the bootstrap connection.

        Yields:
            Connected driver adapter

        Raises:
            ProvisionError: If the engine is unreachable or rejects the credentials
        """
        driver = get_driver(self.options.type)
        try:
            await driver.connect(self.options, timeout=self.timeout)
        except Exception as e:
            logger.error(f"Bootstrap connection to {self.options.host}:{self.options.port} failed: {e}")
            raise ProvisionError(f"Bootstrap connection failed: {e}") from e

        try:
            yield driver
        finally:
            await driver.close()
            logger.debug("Bootstrap connection closed")

    def _check_name(self, name: str):
        if not SAFE_DATABASE_NAME.match(name):
            raise ProvisionError(f"Refusing unsafe database name: '{name}'")

    async def create_database(self, name: str):
        """
        Create database ``name``.

        Raises:
            ProvisionError: On name collision, missing privilege or connection failure
        """
        self._check_name(name)
        statement = f"CREATE DATABASE {name}"
        if self.options.type == DriverType.MYSQL:
            statement += f" DEFAULT CHARACTER SET {MYSQL_CHARSET}"

        async with self.connect() as driver:
            try:
                await driver.execute(statement)
            except Exception as e:
                logger.error(f"Failed to create database {name}: {e}")
                raise ProvisionError(f"Failed to create database '{name}': {e}") from e

        logger.info(f"Created test database {name}")

    async def drop_database(self, name: str):
        """
        Drop database ``name`` if it exists.

        Raises:
            ProvisionError: If the drop is rejected or the connection fails
        """
        self._check_name(name)
        async with self.connect() as driver:
            try:
                await driver.execute(f"DROP DATABASE IF EXISTS {name}")
            except Exception as e:
                logger.error(f"Failed to drop database {name}: {e}")
                raise ProvisionError(f"Failed to drop database '{name}': {e}") from e

        logger.info(f"Dropped test database {name}")

    async def list_databases(self, prefix: str) -> List[str]:
        """List database names that start with ``prefix``."""
        if self.options.type == DriverType.POSTGRES:
            query = "SELECT datname AS name FROM pg_database WHERE datistemplate = false"
        else:
            query = "SELECT schema_name AS name FROM information_schema.schemata"

        async with self.connect() as driver:
            try:
                rows = await driver.fetch(query)
            except Exception as e:
                raise ProvisionError(f"Failed to list databases: {e}") from e

        return sorted(row['name'] for row in rows if row['name'].startswith(prefix))
