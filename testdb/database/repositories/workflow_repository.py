from testdb.database.repositories.base import Repository


class WorkflowRepository(Repository):
    table = "workflows"

    async def get_active_count(self) -> int:
        return int(await self._db.fetchval(
            f"SELECT COUNT(*) AS total FROM {self.table_name} WHERE active = $1", True
        ))
