from testdb.database.repositories.base import Repository


class SharedWorkflowRepository(Repository):
    table = "shared_workflows"
