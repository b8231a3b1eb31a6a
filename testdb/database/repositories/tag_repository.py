from testdb.database.repositories.base import Repository


class TagRepository(Repository):
    table = "tags"
