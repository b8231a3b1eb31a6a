from testdb.database.repositories.base import Repository


class CredentialsRepository(Repository):
    table = "credentials"
