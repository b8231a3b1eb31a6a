from testdb.database.repositories.base import Repository


class InsightsRawRepository(Repository):
    table = "insights_raw"
