from testdb.database.repositories.base import Repository


class InsightsByPeriodRepository(Repository):
    table = "insights_by_period"

    async def delete_by_period_unit(self, period_unit: int) -> None:
        await self._db.execute(f"DELETE FROM {self.table_name} WHERE period_unit = $1", period_unit)
