"""
Shared test configuration and fixtures for testdb.

This module provides fixtures that:
1. Isolate tests from the caller's DB_* environment and .env files
2. Build ConfigManager instances for each supported engine
3. Provide a mock driver for tests that must not touch a real server
"""

import logging
import os
from unittest.mock import AsyncMock, Mock

import pytest

from testdb.config.config_manager import ConfigManager

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_MANAGED_PREFIXES = ('DB_', 'TEST_DB_')


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Strip DB_* settings inherited from the shell so every test starts from defaults."""
    for key in list(os.environ):
        if key.startswith(_MANAGED_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv('ENV', raising=False)
    yield


@pytest.fixture
def sqlite_config(tmp_path, monkeypatch):
    """ConfigManager selecting sqlite, with database files under tmp_path."""
    monkeypatch.setenv('DB_TYPE', 'sqlite')
    monkeypatch.setenv('DB_SQLITE_DIRECTORY', str(tmp_path / "databases"))
    return ConfigManager(config_dir=str(tmp_path))


@pytest.fixture
def postgres_config(tmp_path, monkeypatch):
    """ConfigManager selecting postgres with explicit credentials."""
    monkeypatch.setenv('DB_TYPE', 'postgresdb')
    monkeypatch.setenv('DB_POSTGRESDB_HOST', 'pg.test')
    monkeypatch.setenv('DB_POSTGRESDB_PORT', '5433')
    monkeypatch.setenv('DB_POSTGRESDB_USER', 'pguser')
    monkeypatch.setenv('DB_POSTGRESDB_PASSWORD', 'pgpass')
    monkeypatch.setenv('DB_POSTGRESDB_SCHEMA', 'alt_schema')
    monkeypatch.setenv('DB_TABLE_PREFIX', 'pfx_')
    return ConfigManager(config_dir=str(tmp_path))


@pytest.fixture
def mysql_config(tmp_path, monkeypatch):
    """ConfigManager selecting mysql with explicit credentials."""
    monkeypatch.setenv('DB_TYPE', 'mysqldb')
    monkeypatch.setenv('DB_MYSQLDB_HOST', 'mysql.test')
    monkeypatch.setenv('DB_MYSQLDB_PORT', '3307')
    monkeypatch.setenv('DB_MYSQLDB_USER', 'myuser')
    monkeypatch.setenv('DB_MYSQLDB_PASSWORD', 'mypass')
    return ConfigManager(config_dir=str(tmp_path))


@pytest.fixture
def mock_driver():
    """Driver adapter double that reports itself connected once connect() ran."""
    driver = Mock()
    driver.is_connected = False

    async def connect(options, timeout=None):
        driver.is_connected = True
        driver.options = options

    async def close():
        driver.is_connected = False

    driver.connect = AsyncMock(side_effect=connect)
    driver.close = AsyncMock(side_effect=close)
    driver.execute = AsyncMock()
    driver.fetch = AsyncMock(return_value=[])
    return driver


# Pytest configuration

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "server: mark test as requiring a running database server")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test location."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
