from typing import Any, Dict, List

from testdb.database.repositories.base import Repository


class ExecutionRepository(Repository):
    table = "executions"

    async def find_by_workflow(self, workflow_id: str) -> List[Dict[str, Any]]:
        return await self._db.fetch(
            f"SELECT * FROM {self.table_name} WHERE workflow_id = $1", workflow_id
        )
