"""
testdb testing utilities

Test database lifecycle management and table truncation for integration
test suites.
"""

from .test_database import (
    TEST_DB_PREFIX,
    SessionStateError,
    TestDatabaseSession,
    generate_test_database_name,
    provisioned_database
)
from .truncation import TruncationError, TruncationService

__all__ = [
    'TEST_DB_PREFIX',
    'SessionStateError',
    'TestDatabaseSession',
    'generate_test_database_name',
    'provisioned_database',
    'TruncationError',
    'TruncationService'
]
