from typing import Optional

from testdb.database.repositories.base import Repository


class SettingsRepository(Repository):
    table = "settings"

    async def get_value(self, name: str) -> Optional[str]:
        return await self._db.fetchval(f"SELECT value FROM {self.table_name} WHERE name = $1", name)
