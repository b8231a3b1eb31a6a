"""Execution repository as seen by the insights module."""

from typing import Any, Dict, List

from testdb.database.repositories.execution_repository import ExecutionRepository as BaseExecutionRepository


class ExecutionRepository(BaseExecutionRepository):

    async def find_unrecorded(self) -> List[Dict[str, Any]]:
        """Executions not yet folded into insights."""
        return await self._db.fetch(
            f"SELECT * FROM {self.table_name} WHERE insights_recorded = $1", False
        )

    async def mark_recorded(self, execution_id: str) -> None:
        await self._db.execute(
            f"UPDATE {self.table_name} SET insights_recorded = $1 WHERE id = $2", True, execution_id
        )
