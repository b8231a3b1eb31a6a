"""
Async driver adapters.

Gives asyncpg, aiomysql and aiosqlite one small surface so the bootstrap
connector, the working connection and the migration runner stay engine
agnostic. Queries are written with ``$1 .. $n`` placeholders (asyncpg style)
and translated for the other drivers.
"""

import logging
import re
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence, Tuple, Type

import aiomysql
import aiosqlite
import asyncpg

from testdb.database.dialects import DriverType, EngineConnectionOptions

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$(\d+)")


class Driver:
    """Base class for driver adapters."""

    placeholder = "$"

    def __init__(self):
        self.options: Optional[EngineConnectionOptions] = None

    @property
    def is_connected(self) -> bool:
        raise NotImplementedError

    async def connect(self, options: EngineConnectionOptions, timeout: Optional[float] = None) -> None:
        raise NotImplementedError

    async def execute(self, query: str, *args) -> None:
        raise NotImplementedError

    async def fetch(self, query: str, *args) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def transaction(self):
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError

    def prepare(self, query: str, args: Sequence[Any]) -> Tuple[str, Tuple[Any, ...]]:
        """Rewrite ``$n`` placeholders into this driver's positional style."""
        if self.placeholder == "$" or not args:
            return query, tuple(args)

        ordered = []

        def substitute(match):
            ordered.append(args[int(match.group(1)) - 1])
            return self.placeholder

        return _PLACEHOLDER.sub(substitute, query), tuple(ordered)


class PostgresDriver(Driver):
    """asyncpg-backed driver."""

    def __init__(self):
        super().__init__()
        self._connection: Optional[asyncpg.Connection] = None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.is_closed()

    async def connect(self, options: EngineConnectionOptions, timeout: Optional[float] = None) -> None:
        server_settings = {'search_path': options.schema_name} if options.schema_name else None
        self._connection = await asyncpg.connect(
            host=options.host,
            port=options.port,
            user=options.user,
            password=options.password,
            database=options.database,
            timeout=timeout or 60,
            server_settings=server_settings,
        )
        self.options = options

    async def execute(self, query: str, *args) -> None:
        await self._connection.execute(query, *args)

    async def fetch(self, query: str, *args) -> List[Dict[str, Any]]:
        rows = await self._connection.fetch(query, *args)
        return [dict(row) for row in rows]

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[None, None]:
        async with self._connection.transaction():
            yield

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None


class MySQLDriver(Driver):
    """aiomysql-backed driver, used for both MySQL and MariaDB."""

    placeholder = "%s"

    def __init__(self):
        super().__init__()
        self._connection: Optional[aiomysql.Connection] = None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.closed

    async def connect(self, options: EngineConnectionOptions, timeout: Optional[float] = None) -> None:
        self._connection = await aiomysql.connect(
            host=options.host,
            port=options.port,
            user=options.user,
            password=options.password or "",
            db=options.database,
            charset=options.charset or "utf8mb4",
            autocommit=True,
            connect_timeout=timeout or 60,
        )
        self.options = options

    async def execute(self, query: str, *args) -> None:
        query, params = self.prepare(query, args)
        async with self._connection.cursor() as cursor:
            await cursor.execute(query, params or None)

    async def fetch(self, query: str, *args) -> List[Dict[str, Any]]:
        query, params = self.prepare(query, args)
        async with self._connection.cursor(aiomysql.DictCursor) as cursor:
            await cursor.execute(query, params or None)
            return list(await cursor.fetchall())

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[None, None]:
        await self._connection.begin()
        try:
            yield
        except BaseException:
            await self._connection.rollback()
            raise
        await self._connection.commit()

    async def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None


class SQLiteDriver(Driver):
    """
    aiosqlite-backed driver. The database file is created on connect.

    The connection runs in autocommit mode; ``transaction()`` issues an
    explicit BEGIN so DDL statements roll back together with the rest.
    """

    placeholder = "?"

    def __init__(self):
        super().__init__()
        self._connection: Optional[aiosqlite.Connection] = None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self, options: EngineConnectionOptions, timeout: Optional[float] = None) -> None:
        if options.database != ":memory:":
            Path(options.database).parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(
            options.database, timeout=timeout or 60, isolation_level=None
        )
        self._connection.row_factory = aiosqlite.Row
        await self.execute("PRAGMA foreign_keys = ON")
        self.options = options

    async def execute(self, query: str, *args) -> None:
        query, params = self.prepare(query, args)
        async with self._connection.execute(query, params):
            pass

    async def fetch(self, query: str, *args) -> List[Dict[str, Any]]:
        query, params = self.prepare(query, args)
        async with self._connection.execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[None, None]:
        await self.execute("BEGIN")
        try:
            yield
        except BaseException:
            await self.execute("ROLLBACK")
            raise
        await self.execute("COMMIT")

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None


DRIVERS: Dict[DriverType, Type[Driver]] = {
    DriverType.POSTGRES: PostgresDriver,
    DriverType.MYSQL: MySQLDriver,
    DriverType.SQLITE: SQLiteDriver,
}


def get_driver(driver_type: DriverType) -> Driver:
    """Create an unconnected driver adapter for ``driver_type``."""
    try:
        driver_class = DRIVERS[DriverType(driver_type)]
    except (KeyError, ValueError):
        raise ValueError(f"No driver available for '{driver_type}'")
    logger.debug(f"Using {driver_class.__name__} for {driver_type}")
    return driver_class()
