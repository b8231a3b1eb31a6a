from testdb.database.repositories.base import Repository


class InsightsMetadataRepository(Repository):
    table = "insights_metadata"
