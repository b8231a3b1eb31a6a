from testdb.database.repositories.base import Repository


class ProjectRepository(Repository):
    table = "projects"
