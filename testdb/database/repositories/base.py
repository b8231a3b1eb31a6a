"""
Repository base class.

A repository is the data-access handler for one entity and its table. It is
bound to the working connection it was constructed with.
"""

from typing import Any, Dict, List

from testdb.database.connection_manager import DatabaseConnectionManager


class Repository:
    """Row-level access to one table."""

    table: str = ""

    def __init__(self, database_manager: DatabaseConnectionManager):
        self._db = database_manager

    @property
    def table_name(self) -> str:
        """Table name including the configured prefix."""
        return f"{self._db.table_prefix}{self.table}"

    async def delete_all(self) -> None:
        """Delete every row, keeping the table itself."""
        await self._db.execute(f"DELETE FROM {self.table_name}")

    async def count(self) -> int:
        return int(await self._db.fetchval(f"SELECT COUNT(*) AS total FROM {self.table_name}"))

    async def insert(self, record: Dict[str, Any]) -> None:
        columns = list(record)
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        await self._db.execute(
            f"INSERT INTO {self.table_name} ({', '.join(columns)}) VALUES ({placeholders})",
            *record.values()
        )

    async def find_all(self) -> List[Dict[str, Any]]:
        return await self._db.fetch(f"SELECT * FROM {self.table_name}")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} table={self.table_name!r}>"
