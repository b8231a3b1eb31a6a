"""Variables are only available in the enterprise build, so there is no base module."""

from testdb.database.repositories.base import Repository


class VariablesRepository(Repository):
    table = "variables"
