from typing import Any, Dict, Optional

from testdb.database.repositories.base import Repository


class UserRepository(Repository):
    table = "users"

    async def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        rows = await self._db.fetch(f"SELECT * FROM {self.table_name} WHERE email = $1", email)
        return rows[0] if rows else None
