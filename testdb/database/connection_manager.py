"""
Working connection manager for testdb.

Owns the single connection used for migrations and test queries against a
provisioned test database, and the connected / migrated state flags.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Dict, List, Optional

from testdb.database.dialects import EngineConnectionOptions
from testdb.database.drivers import Driver, get_driver

logger = logging.getLogger(__name__)


class DatabaseConnectionError(Exception):
    """Raised when database connection operations fail."""
    pass


@dataclass
class ConnectionState:
    """Connection lifecycle flags."""
    connected: bool = False
    migrated: bool = False


class DatabaseConnectionManager:
    """
    Manages the working database connection.

    Features:
    - One async connection per manager, opened with explicit options
    - Driver-agnostic execute / fetch with ``$n`` placeholders
    - Transaction context manager
    - Health check
    - Idempotent close
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Initialize DatabaseConnectionManager.

        Args:
            timeout: Connection timeout in seconds
        """
        self.timeout = timeout
        self.state = ConnectionState()
        self._options: Optional[EngineConnectionOptions] = None
        self._driver: Optional[Driver] = None

    @property
    def options(self) -> Optional[EngineConnectionOptions]:
        return self._options

    @property
    def table_prefix(self) -> str:
        return self._options.entity_prefix if self._options else ""

    @property
    def dialect(self) -> Optional[str]:
        return self._options.type.value if self._options else None

    async def connect(self, options: EngineConnectionOptions, timeout: Optional[float] = None):
        """
        Open the working connection.

        Args:
            options: Where to connect
            timeout: Connection timeout in seconds

        Raises:
            DatabaseConnectionError: If connection fails
        """
        driver = get_driver(options.type)
        try:
            await driver.connect(options, timeout=timeout or self.timeout)
        except asyncio.TimeoutError as e:
            raise DatabaseConnectionError(f"Connection timeout: {e}") from e
        except OSError as e:
            raise DatabaseConnectionError(f"Cannot connect to host: {e}") from e
        except Exception as e:
            raise DatabaseConnectionError(f"Unexpected connection error: {e}") from e

        self._driver = driver
        self._options = options
        self.state.connected = True
        logger.info(f"Database connection established ({options.type.value}: {options.database})")

    @asynccontextmanager
    async def acquire(self) -> AsyncGenerator[Driver, None]:
        """
        Acquire the working connection.

        Raises:
            DatabaseConnectionError: If the connection is not open
        """
        if self._driver is None or not self._driver.is_connected:
            raise DatabaseConnectionError("Database connection is not open")
        yield self._driver

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Driver, None]:
        """Run the enclosed statements in one transaction."""
        async with self.acquire() as driver:
            async with driver.transaction():
                yield driver

    async def execute(self, query: str, *args) -> None:
        """
        Execute a SQL command.

        Raises:
            DatabaseConnectionError: If execution fails
        """
        async with self.acquire() as driver:
            try:
                await driver.execute(query, *args)
            except asyncio.TimeoutError as e:
                raise DatabaseConnectionError("Query timeout exceeded") from e
            except Exception as e:
                raise DatabaseConnectionError(f"Query execution failed: {e}") from e

    async def fetch(self, query: str, *args) -> List[Dict[str, Any]]:
        """Run a query and return its rows as dicts."""
        async with self.acquire() as driver:
            try:
                return await driver.fetch(query, *args)
            except Exception as e:
                raise DatabaseConnectionError(f"Query execution failed: {e}") from e

    async def fetchval(self, query: str, *args) -> Any:
        """Run a query and return the first column of the first row."""
        rows = await self.fetch(query, *args)
        if not rows:
            return None
        return next(iter(rows[0].values()))

    async def health_check(self) -> bool:
        """
        Perform database health check.

        Returns:
            True if database is healthy, False otherwise
        """
        try:
            is_healthy = await self.fetchval('SELECT 1') == 1
        except DatabaseConnectionError as e:
            logger.error(f"Database health check failed: {e}")
            return False

        if not is_healthy:
            logger.warning("Database health check failed - unexpected result")
        return is_healthy

    async def close(self):
        """Close the working connection. Calling it again is a no-op."""
        if self._driver is not None:
            await self._driver.close()
            self._driver = None
            logger.info("Database connection closed")

        self.state.connected = False
        self.state.migrated = False
