"""
testdb

Provisions isolated, ephemeral databases for integration test suites and
resets their tables between test cases.
"""

__version__ = "0.1.0"
